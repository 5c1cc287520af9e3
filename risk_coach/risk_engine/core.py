from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Any, Iterable, List, Mapping, Sequence


class InvalidRecord(ValueError):
    """Raised when a trade or position record is missing or has a malformed field."""

    def __init__(self, field: str, *, index: int | None = None, reason: str = "missing or non-numeric") -> None:
        self.field = field
        self.index = index
        location = f" in record {index}" if index is not None else ""
        super().__init__(f"Invalid field '{field}'{location}: {reason}")


@dataclass(frozen=True)
class Trade:
    """Closed trade as reported by the venue's profit table."""

    purchase_time: float
    buy_price: float
    sell_price: float

    @property
    def is_loss(self) -> bool:
        return self.sell_price < self.buy_price

    @classmethod
    def from_mapping(cls, payload: Mapping[str, Any], *, index: int | None = None) -> "Trade":
        return cls(
            purchase_time=_numeric_field(payload, "purchase_time", index),
            buy_price=_numeric_field(payload, "buy_price", index),
            sell_price=_numeric_field(payload, "sell_price", index),
        )


@dataclass(frozen=True)
class Position:
    """Open, unresolved contract."""

    buy_price: float
    contract_id: Any

    @classmethod
    def from_mapping(cls, payload: Mapping[str, Any], *, index: int | None = None) -> "Position":
        buy_price = _numeric_field(payload, "buy_price", index)
        contract_id = payload.get("contract_id")
        if contract_id is None or contract_id == "":
            raise InvalidRecord("contract_id", index=index, reason="missing")
        return cls(buy_price=buy_price, contract_id=contract_id)


def _numeric_field(payload: Mapping[str, Any], field: str, index: int | None) -> float:
    if not isinstance(payload, Mapping):
        raise InvalidRecord(field, index=index, reason=f"record must be a mapping, not {type(payload).__name__}")
    value = payload.get(field)
    # bool is an int subclass but never a meaningful price or timestamp
    if isinstance(value, bool) or value is None:
        raise InvalidRecord(field, index=index)
    try:
        number = float(value)
    except (TypeError, ValueError):
        raise InvalidRecord(field, index=index) from None
    if math.isnan(number) or math.isinf(number):
        raise InvalidRecord(field, index=index, reason="not a finite number")
    return number


def _validate_trade(trade: Trade, index: int) -> Trade:
    for field in ("purchase_time", "buy_price", "sell_price"):
        value = getattr(trade, field)
        if isinstance(value, bool) or not isinstance(value, (int, float)) or not math.isfinite(value):
            raise InvalidRecord(field, index=index)
    return trade


def coerce_trades(records: Iterable[Trade | Mapping[str, Any]] | None) -> List[Trade]:
    """Return validated :class:`Trade` objects, failing on the first malformed record."""

    trades: List[Trade] = []
    for index, record in enumerate(records or ()):
        if isinstance(record, Trade):
            trades.append(_validate_trade(record, index))
        else:
            trades.append(Trade.from_mapping(record, index=index))
    return trades


def coerce_positions(records: Iterable[Position | Mapping[str, Any]] | None) -> List[Position]:
    """Return validated :class:`Position` objects, failing on the first malformed record."""

    positions: List[Position] = []
    for index, record in enumerate(records or ()):
        if isinstance(record, Position):
            if isinstance(record.buy_price, bool) or not isinstance(record.buy_price, (int, float)):
                raise InvalidRecord("buy_price", index=index)
            positions.append(record)
        else:
            positions.append(Position.from_mapping(record, index=index))
    return positions


def sorted_by_purchase_time(trades: Sequence[Trade]) -> List[Trade]:
    """Return a time-ordered copy; ties keep their original relative order."""

    return sorted(trades, key=lambda trade: trade.purchase_time)
