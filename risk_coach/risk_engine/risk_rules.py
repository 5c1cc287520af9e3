"""Warning types and the pure scoring rules applied to them."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Iterable, List, Mapping, Optional


class RiskLevel(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"

    @property
    def rank(self) -> int:
        return _LEVEL_ORDER.index(self)


_LEVEL_ORDER = (RiskLevel.LOW, RiskLevel.MEDIUM, RiskLevel.HIGH, RiskLevel.CRITICAL)


class RiskType(str, Enum):
    OVERTRADING = "overtrading"
    HIGH_LOSS_STREAK = "high_loss_streak"
    LARGE_POSITION = "large_position"
    RAPID_TRADING = "rapid_trading"
    MARTINGALE_PATTERN = "martingale_pattern"
    BALANCE_DEPLETION = "balance_depletion"
    BOT_ACTIVITY = "bot_activity"
    UNUSUAL_HOURS = "unusual_hours"


@dataclass(frozen=True)
class RiskWarning:
    """A single detector finding."""

    type: RiskType
    level: RiskLevel
    message: str
    value: float
    is_bot_likely: Optional[bool] = None
    contract_id: Any = None

    def to_payload(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "type": self.type.value,
            "level": self.level.value,
            "message": self.message,
            "value": self.value,
        }
        if self.is_bot_likely is not None:
            payload["is_bot_likely"] = self.is_bot_likely
        if self.contract_id is not None:
            payload["contract_id"] = self.contract_id
        return payload


@dataclass(frozen=True)
class AnalysisResult:
    warnings: List[RiskWarning] = field(default_factory=list)
    risk_score: int = 0
    risk_level: Optional[RiskLevel] = None

    def to_payload(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "warnings": [warning.to_payload() for warning in self.warnings],
            "risk_score": self.risk_score,
        }
        # Empty histories short-circuit without a level.
        if self.risk_level is not None:
            payload["risk_level"] = self.risk_level.value
        return payload


SEVERITY_POINTS: Mapping[RiskLevel, int] = {
    RiskLevel.LOW: 5,
    RiskLevel.MEDIUM: 15,
    RiskLevel.HIGH: 30,
    RiskLevel.CRITICAL: 50,
}

MAX_RISK_SCORE = 100


def calculate_risk_score(warnings: Iterable[RiskWarning]) -> int:
    """Sum severity points over ``warnings``, saturating at 100."""

    score = sum(SEVERITY_POINTS[warning.level] for warning in warnings)
    return min(score, MAX_RISK_SCORE)


def risk_level_for(score: float) -> RiskLevel:
    if score >= 70:
        return RiskLevel.CRITICAL
    if score >= 40:
        return RiskLevel.HIGH
    if score >= 20:
        return RiskLevel.MEDIUM
    return RiskLevel.LOW
