"""Configuration schema for the trading risk engine."""

from __future__ import annotations

import logging
import math
import os
from dataclasses import dataclass, field, fields, replace
from datetime import tzinfo
from typing import Any, Dict, Mapping, Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from risk_coach.config.models import CoachConfig

logger = logging.getLogger(__name__)

# Names used by the dashboard/alerting contract.
_CAMEL_CASE_ALIASES = {
    "maxDailyTrades": "max_daily_trades",
    "maxLossStreak": "max_loss_streak",
    "maxPositionPercent": "max_position_percent",
    "minTimeBetweenTrades": "min_time_between_trades",
    "martingaleMultiplier": "martingale_multiplier",
    "balanceDropPercent": "balance_drop_percent",
    "botTradeInterval": "bot_trade_interval",
}


@dataclass(frozen=True)
class ThresholdConfig:
    """Sensitivity knobs shared by every detector."""

    max_daily_trades: float = 50
    max_loss_streak: float = 5
    max_position_percent: float = 10.0  # % of balance
    min_time_between_trades: float = 10.0  # seconds
    martingale_multiplier: float = 1.8
    balance_drop_percent: float = 20.0
    bot_trade_interval: float = 2.0  # seconds

    @classmethod
    def defaults(cls) -> "ThresholdConfig":
        return cls()

    def override(self, partial: Optional[Mapping[str, Any]] = None, **changes: Any) -> "ThresholdConfig":
        """Return a copy with the supplied keys replaced.

        ``partial`` may use either snake_case field names or the camelCase
        names of the external contract. Keys that match no threshold are
        dropped with a warning; values are not range checked.
        """

        merged: Dict[str, Any] = {}
        known = {item.name for item in fields(self)}
        for key, value in {**dict(partial or {}), **changes}.items():
            name = _CAMEL_CASE_ALIASES.get(key, key)
            if name not in known:
                logger.warning("Ignoring unknown risk threshold", extra={"threshold": key})
                continue
            merged[name] = value
        if not merged:
            return self
        return replace(self, **merged)

    def as_dict(self) -> Dict[str, float]:
        return {item.name: getattr(self, item.name) for item in fields(self)}


@dataclass(frozen=True)
class RiskEngineConfig:
    """Thresholds plus the clock settings used for calendar based rules."""

    thresholds: ThresholdConfig = field(default_factory=ThresholdConfig)
    timezone: Optional[tzinfo] = None  # None means the host's local time zone

    @classmethod
    def from_coach_config(cls, config: CoachConfig) -> "RiskEngineConfig":
        """Populate engine settings from a loaded coach configuration file."""

        thresholds = ThresholdConfig().override(config.thresholds)
        return cls(thresholds=thresholds, timezone=resolve_timezone(config.timezone))


def resolve_timezone(name: Optional[str]) -> Optional[tzinfo]:
    """Return a :class:`ZoneInfo` for ``name``; ``None`` selects local time."""

    if not name:
        return None
    try:
        return ZoneInfo(str(name).strip())
    except (ZoneInfoNotFoundError, ValueError) as exc:
        raise ValueError(f"Unknown time zone '{name}'") from exc


_ENV_THRESHOLDS = {
    "RISK_MAX_DAILY_TRADES": "max_daily_trades",
    "RISK_MAX_LOSS_STREAK": "max_loss_streak",
    "RISK_MAX_POSITION_PERCENT": "max_position_percent",
    "RISK_MIN_TIME_BETWEEN_TRADES": "min_time_between_trades",
    "RISK_MARTINGALE_MULTIPLIER": "martingale_multiplier",
    "RISK_BALANCE_DROP_PERCENT": "balance_drop_percent",
    "RISK_BOT_TRADE_INTERVAL": "bot_trade_interval",
}


@dataclass
class Settings:
    """Single entry point for risk configuration with environment overrides."""

    risk: RiskEngineConfig
    debug_level: int = 1
    coaching: bool = True

    @classmethod
    def from_environment(
        cls, *, coach: Optional[CoachConfig] = None, env: Optional[Mapping[str, str]] = None
    ) -> "Settings":
        env = env if env is not None else os.environ
        coach = coach or CoachConfig()
        base = RiskEngineConfig.from_coach_config(coach)

        overrides: Dict[str, float] = {}
        for variable, name in _ENV_THRESHOLDS.items():
            raw = env.get(variable)
            value = _env_float(raw)
            if value is not None:
                overrides[name] = value
            elif raw is not None:
                logger.warning("Ignoring non-numeric risk threshold override", extra={"variable": variable})
        thresholds = base.thresholds.override(overrides)

        timezone = base.timezone
        tz_name = env.get("RISK_TIMEZONE")
        if tz_name:
            try:
                timezone = resolve_timezone(tz_name)
            except ValueError:
                logger.warning("Ignoring RISK_TIMEZONE override", extra={"timezone": tz_name})

        debug_level = _env_int(env.get("RISK_DEBUG"))
        coaching = _env_bool(env.get("RISK_COACHING"))

        return cls(
            risk=RiskEngineConfig(thresholds=thresholds, timezone=timezone),
            debug_level=coach.debug_level if debug_level is None else debug_level,
            coaching=coach.coaching if coaching is None else coaching,
        )


def _env_float(value: Optional[str]) -> Optional[float]:
    if value is None:
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    return number if math.isfinite(number) else None


def _env_int(value: Optional[str]) -> Optional[int]:
    if value is None:
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


def _env_bool(value: Optional[str]) -> Optional[bool]:
    if value is None:
        return None
    return str(value).strip().lower() in {"1", "true", "yes", "on"}
