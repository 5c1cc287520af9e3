"""Independent rules that inspect a batch of closed trades.

Every detector is a pure function returning either an empty list or a list
holding one :class:`RiskWarning`; each models a single yes/no condition over
the whole batch rather than per-trade findings.
"""

from __future__ import annotations

import math
from datetime import datetime, tzinfo
from typing import List, Optional, Sequence

from .config import ThresholdConfig
from .core import Trade, sorted_by_purchase_time
from .risk_rules import RiskLevel, RiskType, RiskWarning

CRITICAL_LOSS_STREAK = 8
RAPID_TRADING_MIN_COUNT = 5  # strictly more than this many fast gaps
MARTINGALE_MIN_COUNT = 3
CRITICAL_BALANCE_DROP_PERCENT = 50.0
BOT_SAMPLE_SIZE = 20
BOT_MIN_INTERVALS = 5
UNUSUAL_HOURS_END = 6
UNUSUAL_HOURS_MIN_COUNT = 10


def _local_time(timestamp: float, tz: Optional[tzinfo]) -> datetime:
    if tz is None:
        return datetime.fromtimestamp(timestamp)
    return datetime.fromtimestamp(timestamp, tz)


def check_overtrading(
    trades: Sequence[Trade],
    thresholds: ThresholdConfig,
    *,
    tz: Optional[tzinfo] = None,
    now: Optional[datetime] = None,
) -> List[RiskWarning]:
    # "today" and the trade dates must share a zone; astimezone(None) is host local time.
    today = (datetime.now(tz) if now is None else now.astimezone(tz)).date()
    count = sum(1 for trade in trades if _local_time(trade.purchase_time, tz).date() == today)
    if count <= thresholds.max_daily_trades:
        return []
    return [
        RiskWarning(
            type=RiskType.OVERTRADING,
            level=RiskLevel.HIGH,
            message=f"High trading frequency: {count} trades today (threshold: {thresholds.max_daily_trades:g})",
            value=count,
        )
    ]


def check_loss_streak(trades: Sequence[Trade], thresholds: ThresholdConfig) -> List[RiskWarning]:
    # Given order on purpose: the venue reports trades in settlement order.
    current = 0
    longest = 0
    for trade in trades:
        if trade.is_loss:
            current += 1
            longest = max(longest, current)
        else:
            current = 0
    if longest < thresholds.max_loss_streak:
        return []
    level = RiskLevel.CRITICAL if longest >= CRITICAL_LOSS_STREAK else RiskLevel.HIGH
    return [
        RiskWarning(
            type=RiskType.HIGH_LOSS_STREAK,
            level=level,
            message=f"Consecutive losses detected: {longest} trades in a row",
            value=longest,
        )
    ]


def check_rapid_trading(trades: Sequence[Trade], thresholds: ThresholdConfig) -> List[RiskWarning]:
    ordered = sorted_by_purchase_time(trades)
    rapid = sum(
        1
        for previous, current in zip(ordered, ordered[1:])
        if current.purchase_time - previous.purchase_time < thresholds.min_time_between_trades
    )
    if rapid <= RAPID_TRADING_MIN_COUNT:
        return []
    return [
        RiskWarning(
            type=RiskType.RAPID_TRADING,
            level=RiskLevel.MEDIUM,
            message=(
                f"Rapid trading detected: {rapid} trades with less than "
                f"{thresholds.min_time_between_trades:g}s intervals"
            ),
            value=rapid,
        )
    ]


def check_martingale_pattern(trades: Sequence[Trade], thresholds: ThresholdConfig) -> List[RiskWarning]:
    ordered = sorted_by_purchase_time(trades)
    escalations = 0
    for previous, current in zip(ordered, ordered[1:]):
        if previous.is_loss and current.buy_price >= previous.buy_price * thresholds.martingale_multiplier:
            escalations += 1
    if escalations < MARTINGALE_MIN_COUNT:
        return []
    return [
        RiskWarning(
            type=RiskType.MARTINGALE_PATTERN,
            level=RiskLevel.CRITICAL,
            message=f"Martingale pattern detected: {escalations} instances of doubled stakes after losses",
            value=escalations,
        )
    ]


def check_balance_depletion(
    current_balance: Optional[float],
    initial_balance: Optional[float],
    thresholds: ThresholdConfig,
) -> List[RiskWarning]:
    if not initial_balance or current_balance is None:
        return []
    if not (math.isfinite(initial_balance) and math.isfinite(current_balance)):
        return []
    drop_percent = (initial_balance - current_balance) / initial_balance * 100
    if drop_percent < thresholds.balance_drop_percent:
        return []
    level = RiskLevel.CRITICAL if drop_percent >= CRITICAL_BALANCE_DROP_PERCENT else RiskLevel.HIGH
    return [
        RiskWarning(
            type=RiskType.BALANCE_DEPLETION,
            level=level,
            message=f"Significant balance drop: {drop_percent:.1f}% decrease from initial balance",
            value=drop_percent,
        )
    ]


def check_bot_activity(trades: Sequence[Trade], thresholds: ThresholdConfig) -> List[RiskWarning]:
    sample = sorted_by_purchase_time(trades)[:BOT_SAMPLE_SIZE]
    suspicious = sum(
        1
        for previous, current in zip(sample, sample[1:])
        if current.purchase_time - previous.purchase_time <= thresholds.bot_trade_interval
    )
    if suspicious < BOT_MIN_INTERVALS:
        return []
    return [
        RiskWarning(
            type=RiskType.BOT_ACTIVITY,
            level=RiskLevel.MEDIUM,
            message=(
                f"Potential bot activity: {suspicious} trades executed within "
                f"{thresholds.bot_trade_interval:g}s intervals"
            ),
            value=suspicious,
            is_bot_likely=True,
        )
    ]


def check_unusual_hours(
    trades: Sequence[Trade],
    thresholds: ThresholdConfig,
    *,
    tz: Optional[tzinfo] = None,
) -> List[RiskWarning]:
    count = sum(1 for trade in trades if 0 <= _local_time(trade.purchase_time, tz).hour < UNUSUAL_HOURS_END)
    if count < UNUSUAL_HOURS_MIN_COUNT:
        return []
    return [
        RiskWarning(
            type=RiskType.UNUSUAL_HOURS,
            level=RiskLevel.LOW,
            message=f"Trading during unusual hours: {count} trades between 12 AM - 6 AM",
            value=count,
        )
    ]


__all__ = [
    "check_balance_depletion",
    "check_bot_activity",
    "check_loss_streak",
    "check_martingale_pattern",
    "check_overtrading",
    "check_rapid_trading",
    "check_unusual_hours",
]
