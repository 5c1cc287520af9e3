"""API orchestrators for the risk coach service."""

from .controllers import AccountDataProvider, BalanceSnapshot, RiskCoachController

__all__ = ["AccountDataProvider", "BalanceSnapshot", "RiskCoachController"]
