import time
from datetime import datetime, timedelta, timezone

import pytest

from risk_coach.risk_engine.config import ThresholdConfig
from risk_coach.risk_engine.core import Trade
from risk_coach.risk_engine.detectors import (
    check_balance_depletion,
    check_bot_activity,
    check_loss_streak,
    check_martingale_pattern,
    check_overtrading,
    check_rapid_trading,
    check_unusual_hours,
)
from risk_coach.risk_engine.risk_rules import RiskLevel, RiskType

NOW = datetime(2024, 5, 1, 15, 0, tzinfo=timezone.utc)
NOON = int(datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc).timestamp())
DEFAULTS = ThresholdConfig()
TOKYO = timezone(timedelta(hours=9))


def spaced(count: int, *, start: int = NOON, gap: int = 600, buy: float = 10, sell: float = 15) -> list[Trade]:
    return [Trade(purchase_time=start + i * gap, buy_price=buy, sell_price=sell) for i in range(count)]


def test_overtrading_counts_only_todays_trades():
    yesterday = spaced(10, start=NOON - 86400, gap=60)
    today = spaced(6, gap=60)
    thresholds = DEFAULTS.override(max_daily_trades=5)

    warnings = check_overtrading(yesterday + today, thresholds, tz=timezone.utc, now=NOW)

    assert len(warnings) == 1
    assert warnings[0].type is RiskType.OVERTRADING
    assert warnings[0].level is RiskLevel.HIGH
    assert warnings[0].value == 6


def test_overtrading_requires_strictly_more_than_limit():
    thresholds = DEFAULTS.override(max_daily_trades=6)

    assert check_overtrading(spaced(6, gap=60), thresholds, tz=timezone.utc, now=NOW) == []


def test_overtrading_uses_evaluator_time_zone():
    # 23:30 UTC on April 30th is already May 1st in Tokyo.
    late = int(datetime(2024, 4, 30, 23, 30, tzinfo=timezone.utc).timestamp())
    trades = spaced(3, start=late, gap=60)
    thresholds = DEFAULTS.override(max_daily_trades=2)
    morning = datetime(2024, 5, 1, 10, 0, tzinfo=timezone.utc)

    assert check_overtrading(trades, thresholds, tz=timezone.utc, now=morning) == []
    assert len(check_overtrading(trades, thresholds, tz=TOKYO, now=morning)) == 1


@pytest.fixture
def tokyo_local_time(monkeypatch):
    if not hasattr(time, "tzset"):
        pytest.skip("time.tzset is unavailable on this platform")
    monkeypatch.setenv("TZ", "JST-9")
    time.tzset()
    yield
    monkeypatch.undo()
    time.tzset()


def test_overtrading_without_zone_compares_in_host_local_time(tokyo_local_time):
    # 23:30 UTC on April 30th is already May 1st on a UTC+9 host.
    now = datetime(2024, 4, 30, 23, 30, tzinfo=timezone.utc)
    trades = spaced(3, start=int(datetime(2024, 4, 30, 23, 0, tzinfo=timezone.utc).timestamp()), gap=60)
    thresholds = DEFAULTS.override(max_daily_trades=2)

    warnings = check_overtrading(trades, thresholds, now=now)

    assert len(warnings) == 1
    assert warnings[0].value == 3


def test_loss_streak_of_five_is_high():
    trades = spaced(5, buy=10, sell=8)

    warnings = check_loss_streak(trades, DEFAULTS)

    assert len(warnings) == 1
    assert warnings[0].type is RiskType.HIGH_LOSS_STREAK
    assert warnings[0].level is RiskLevel.HIGH
    assert warnings[0].value == 5


def test_loss_streak_of_eight_is_critical():
    warnings = check_loss_streak(spaced(8, buy=10, sell=8), DEFAULTS)

    assert warnings[0].level is RiskLevel.CRITICAL
    assert warnings[0].value == 8


def test_loss_streak_resets_on_break_even():
    losses = spaced(4, buy=10, sell=8)
    flat = [Trade(purchase_time=NOON + 5000, buy_price=10, sell_price=10)]

    assert check_loss_streak(losses + flat + losses, DEFAULTS) == []


def test_loss_streak_scans_given_order_not_time_order():
    # Time order would interleave wins and losses; the given order is five losses in a row.
    losses = [Trade(purchase_time=NOON + i * 1200, buy_price=10, sell_price=0) for i in range(5)]
    wins = [Trade(purchase_time=NOON + 600 + i * 1200, buy_price=10, sell_price=20) for i in range(5)]

    assert len(check_loss_streak(losses + wins, DEFAULTS)) == 1


def test_rapid_trading_needs_more_than_five_fast_gaps():
    assert check_rapid_trading(spaced(6, gap=5), DEFAULTS) == []

    warnings = check_rapid_trading(spaced(7, gap=5), DEFAULTS)

    assert len(warnings) == 1
    assert warnings[0].level is RiskLevel.MEDIUM
    assert warnings[0].value == 6


def test_rapid_trading_gap_equal_to_minimum_is_not_rapid():
    assert check_rapid_trading(spaced(10, gap=10), DEFAULTS) == []


def test_rapid_trading_sorts_by_purchase_time():
    trades = list(reversed(spaced(7, gap=5)))

    assert check_rapid_trading(trades, DEFAULTS)[0].value == 6


def _stakes(pairs):
    return [
        Trade(purchase_time=NOON + i * 600, buy_price=buy, sell_price=sell)
        for i, (buy, sell) in enumerate(pairs)
    ]


def test_martingale_counts_escalations_after_losses():
    trades = _stakes([(10, 0), (20, 40), (10, 0), (18, 36), (10, 0), (20, 40)])

    warnings = check_martingale_pattern(trades, DEFAULTS)

    assert len(warnings) == 1
    assert warnings[0].type is RiskType.MARTINGALE_PATTERN
    assert warnings[0].level is RiskLevel.CRITICAL
    assert warnings[0].value == 3


def test_martingale_ignores_escalation_after_wins():
    trades = _stakes([(10, 20), (20, 40), (40, 80), (80, 160)])

    assert check_martingale_pattern(trades, DEFAULTS) == []


def test_martingale_uses_time_order():
    trades = _stakes([(10, 0), (20, 40), (10, 0), (18, 36), (10, 0), (20, 40)])

    assert check_martingale_pattern(list(reversed(trades)), DEFAULTS)[0].value == 3


def test_balance_depletion_levels():
    high = check_balance_depletion(750, 1000, DEFAULTS)
    critical = check_balance_depletion(400, 1000, DEFAULTS)

    assert high[0].level is RiskLevel.HIGH
    assert high[0].value == pytest.approx(25)
    assert critical[0].level is RiskLevel.CRITICAL
    assert critical[0].value == pytest.approx(60)


def test_balance_depletion_value_is_unrounded():
    warnings = check_balance_depletion(666.66, 1000, DEFAULTS)

    assert warnings[0].value == pytest.approx(33.334)
    assert "33.3%" in warnings[0].message


@pytest.mark.parametrize("initial", [0, None, float("nan")])
def test_balance_depletion_without_initial_balance_is_noop(initial):
    assert check_balance_depletion(10, initial, DEFAULTS) == []


def test_balance_growth_never_triggers():
    assert check_balance_depletion(1500, 1000, DEFAULTS) == []


@pytest.mark.parametrize("current", [float("nan"), float("inf"), float("-inf")])
def test_balance_depletion_with_non_finite_current_balance_is_noop(current):
    assert check_balance_depletion(current, 1000, DEFAULTS) == []


def test_bot_activity_flags_machine_speed_trading():
    warnings = check_bot_activity(spaced(6, gap=1), DEFAULTS)

    assert len(warnings) == 1
    assert warnings[0].type is RiskType.BOT_ACTIVITY
    assert warnings[0].level is RiskLevel.MEDIUM
    assert warnings[0].is_bot_likely is True
    assert warnings[0].value == 5


def test_bot_activity_examines_only_earliest_twenty_trades():
    slow = spaced(20, gap=600)
    fast = spaced(10, start=NOON + 20 * 600, gap=1)

    assert check_bot_activity(list(reversed(slow + fast)), DEFAULTS) == []


def test_bot_activity_gap_equal_to_interval_counts():
    assert check_bot_activity(spaced(6, gap=2), DEFAULTS)[0].value == 5


def test_unusual_hours_counts_early_morning_trades():
    three_am = int(datetime(2024, 5, 1, 3, 0, tzinfo=timezone.utc).timestamp())

    assert check_unusual_hours(spaced(9, start=three_am, gap=60), DEFAULTS, tz=timezone.utc) == []

    warnings = check_unusual_hours(spaced(10, start=three_am, gap=60), DEFAULTS, tz=timezone.utc)

    assert len(warnings) == 1
    assert warnings[0].level is RiskLevel.LOW
    assert warnings[0].value == 10


def test_unusual_hours_excludes_six_am():
    six_am = int(datetime(2024, 5, 1, 6, 0, tzinfo=timezone.utc).timestamp())

    assert check_unusual_hours(spaced(12, start=six_am, gap=60), DEFAULTS, tz=timezone.utc) == []
