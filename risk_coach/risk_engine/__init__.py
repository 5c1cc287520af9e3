"""Risk engine for retail trading behaviour.

The package is a set of pure detector rules over closed trades, an exposure
check over open positions, the scoring that folds detector warnings into a
0-100 risk score, and :class:`RiskEngine`, which runs them in a fixed order.
"""

from .config import RiskEngineConfig, Settings, ThresholdConfig
from .core import InvalidRecord, Position, Trade
from .engine import RiskEngine
from ..metrics import MetricRegistry
from .risk_rules import (
    AnalysisResult,
    RiskLevel,
    RiskType,
    RiskWarning,
    calculate_risk_score,
    risk_level_for,
)

__all__ = [
    "AnalysisResult",
    "InvalidRecord",
    "MetricRegistry",
    "Position",
    "RiskEngine",
    "RiskEngineConfig",
    "RiskLevel",
    "RiskType",
    "RiskWarning",
    "Settings",
    "ThresholdConfig",
    "Trade",
    "calculate_risk_score",
    "risk_level_for",
]
