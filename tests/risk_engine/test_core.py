import pytest

from risk_coach.risk_engine.core import (
    InvalidRecord,
    Position,
    Trade,
    coerce_positions,
    coerce_trades,
    sorted_by_purchase_time,
)


def test_trade_is_loss_only_when_sold_below_stake():
    assert Trade(purchase_time=1, buy_price=10, sell_price=8).is_loss is True
    assert Trade(purchase_time=1, buy_price=10, sell_price=10).is_loss is False
    assert Trade(purchase_time=1, buy_price=10, sell_price=19.5).is_loss is False


def test_coerce_trades_accepts_mappings_and_trades():
    trades = coerce_trades(
        [
            {"purchase_time": 1700000000, "buy_price": "10", "sell_price": 0, "symbol": "R_100"},
            Trade(purchase_time=1700000060, buy_price=20, sell_price=39),
        ]
    )

    assert trades == [
        Trade(purchase_time=1700000000.0, buy_price=10.0, sell_price=0.0),
        Trade(purchase_time=1700000060, buy_price=20, sell_price=39),
    ]


def test_coerce_trades_handles_missing_input():
    assert coerce_trades(None) == []
    assert coerce_trades([]) == []


@pytest.mark.parametrize(
    "record, field",
    [
        ({"buy_price": 10, "sell_price": 5}, "purchase_time"),
        ({"purchase_time": 1, "buy_price": "ten", "sell_price": 5}, "buy_price"),
        ({"purchase_time": 1, "buy_price": 10, "sell_price": None}, "sell_price"),
        ({"purchase_time": 1, "buy_price": True, "sell_price": 5}, "buy_price"),
        ({"purchase_time": float("nan"), "buy_price": 10, "sell_price": 5}, "purchase_time"),
    ],
)
def test_coerce_trades_names_offending_field(record, field):
    good = {"purchase_time": 1, "buy_price": 1, "sell_price": 1}

    with pytest.raises(InvalidRecord) as excinfo:
        coerce_trades([good, record])

    assert excinfo.value.field == field
    assert excinfo.value.index == 1
    assert field in str(excinfo.value)


def test_coerce_positions_requires_contract_id():
    with pytest.raises(InvalidRecord) as excinfo:
        coerce_positions([{"buy_price": 10}])

    assert excinfo.value.field == "contract_id"


def test_coerce_positions_keeps_opaque_contract_ids():
    positions = coerce_positions([{"buy_price": 150, "contract_id": 245871234}, Position(20, "abc")])

    assert positions[0] == Position(buy_price=150.0, contract_id=245871234)
    assert positions[1].contract_id == "abc"


def test_sorted_by_purchase_time_is_stable_copy():
    first = Trade(purchase_time=5, buy_price=1, sell_price=0)
    second = Trade(purchase_time=5, buy_price=2, sell_price=0)
    earliest = Trade(purchase_time=1, buy_price=3, sell_price=0)
    trades = [first, second, earliest]

    ordered = sorted_by_purchase_time(trades)

    assert ordered == [earliest, first, second]
    assert trades == [first, second, earliest]
