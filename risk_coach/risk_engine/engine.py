"""Entry point combining the detectors, scoring and exposure check."""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, Callable, Iterable, List, Mapping, Optional

from .config import RiskEngineConfig, ThresholdConfig
from .core import Position, Trade, coerce_positions, coerce_trades
from .detectors import (
    check_balance_depletion,
    check_bot_activity,
    check_loss_streak,
    check_martingale_pattern,
    check_overtrading,
    check_rapid_trading,
    check_unusual_hours,
)
from .exposure import evaluate_position_exposure
from ..metrics import MetricRegistry
from .risk_rules import AnalysisResult, RiskLevel, RiskWarning, calculate_risk_score, risk_level_for

logger = logging.getLogger(__name__)

_LOG_LEVELS = {
    RiskLevel.LOW: logging.INFO,
    RiskLevel.MEDIUM: logging.WARNING,
    RiskLevel.HIGH: logging.WARNING,
    RiskLevel.CRITICAL: logging.ERROR,
}


class RiskEngine:
    """Evaluate trading behaviour rules without side effects.

    The engine owns one piece of state, its threshold configuration. The
    configuration is a frozen value replaced wholesale by
    :meth:`set_thresholds`, and each analysis reads it once up front, so a
    concurrent override never changes the thresholds of a run in flight.
    """

    def __init__(
        self,
        config: Optional[RiskEngineConfig] = None,
        *,
        metrics: Optional[MetricRegistry] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ) -> None:
        config = config or RiskEngineConfig()
        self._thresholds = config.thresholds
        self._timezone = config.timezone
        self._clock = clock
        self.metrics = metrics or MetricRegistry()

    @property
    def thresholds(self) -> ThresholdConfig:
        return self._thresholds

    def set_thresholds(self, partial: Optional[Mapping[str, Any]] = None, **changes: Any) -> ThresholdConfig:
        """Merge ``partial`` into the active thresholds and return the result."""

        updated = self._thresholds.override(partial, **changes)
        self._thresholds = updated
        logger.info("Updated risk thresholds", extra={"thresholds": updated.as_dict()})
        return updated

    def analyze_trade_history(
        self,
        trades: Optional[Iterable[Trade | Mapping[str, Any]]],
        current_balance: Optional[float] = None,
        initial_balance: Optional[float] = None,
    ) -> AnalysisResult:
        thresholds = self._thresholds
        records = coerce_trades(trades)
        if not records:
            return AnalysisResult(warnings=[], risk_score=0)

        tz = self._timezone
        now = self._clock() if self._clock is not None else None
        with self.metrics.time("risk_engine.analysis_seconds"):
            warnings: List[RiskWarning] = []
            warnings += check_overtrading(records, thresholds, tz=tz, now=now)
            warnings += check_loss_streak(records, thresholds)
            warnings += check_rapid_trading(records, thresholds)
            warnings += check_martingale_pattern(records, thresholds)
            warnings += check_balance_depletion(current_balance, initial_balance, thresholds)
            warnings += check_bot_activity(records, thresholds)
            warnings += check_unusual_hours(records, thresholds, tz=tz)

            risk_score = calculate_risk_score(warnings)
            risk_level = risk_level_for(risk_score)

        self.metrics.inc("risk_engine.analyses")
        for warning in warnings:
            self.metrics.inc("risk_engine.warnings", labels={"type": warning.type.value})
        logger.log(
            _LOG_LEVELS[risk_level],
            "Evaluated trade history",
            extra={
                "trades": len(records),
                "risk_score": risk_score,
                "risk_level": risk_level.value,
                "warnings": [warning.type.value for warning in warnings],
            },
        )
        return AnalysisResult(warnings=warnings, risk_score=risk_score, risk_level=risk_level)

    def analyze_open_positions(
        self,
        positions: Optional[Iterable[Position | Mapping[str, Any]]],
        balance: Optional[float],
    ) -> List[RiskWarning]:
        records = coerce_positions(positions)
        warnings = evaluate_position_exposure(records, balance, self._thresholds)
        for warning in warnings:
            self.metrics.inc("risk_engine.warnings", labels={"type": warning.type.value})
        if warnings:
            logger.warning(
                "Oversized open positions",
                extra={"contracts": [warning.contract_id for warning in warnings]},
            )
        return warnings
