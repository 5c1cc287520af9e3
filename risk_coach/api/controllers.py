"""Orchestrator bridging the venue data layer, the risk engine and presentation."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, Mapping, Optional, Protocol, Sequence

from ..coaching import coach_result, coach_warnings, risky_bot_transactions
from ..risk_engine.engine import RiskEngine
from ..telemetry import Telemetry

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class BalanceSnapshot:
    current: float
    initial: Optional[float] = None


class AccountDataProvider(Protocol):
    async def fetch_trade_history(self) -> Sequence[Mapping[str, Any]]:
        ...

    async def fetch_open_positions(self) -> Sequence[Mapping[str, Any]]:
        ...

    async def fetch_balance(self) -> BalanceSnapshot:
        ...


Notifier = Callable[[Sequence[Mapping[str, Any]], Mapping[str, Any]], Awaitable[None]]


class RiskCoachController:
    """Fetch account data, run both analyses and hand the assessment to listeners."""

    def __init__(
        self,
        provider: AccountDataProvider,
        engine: RiskEngine,
        *,
        telemetry: Optional[Telemetry] = None,
        notifier: Optional[Notifier] = None,
        coaching: bool = True,
    ) -> None:
        self.provider = provider
        self.engine = engine
        self.telemetry = telemetry or Telemetry(metrics=engine.metrics)
        self.notifier = notifier
        self.coaching = coaching
        self._session_initial_balance: Optional[float] = None

    async def assess(self) -> Dict[str, Any]:
        trades, positions, balance = await asyncio.gather(
            self.telemetry.call("trade_history", self.provider.fetch_trade_history),
            self.telemetry.call("open_positions", self.provider.fetch_open_positions),
            self.telemetry.call("balance", self.provider.fetch_balance),
        )
        initial = self._initial_balance(balance)

        history = self.engine.analyze_trade_history(trades, balance.current, initial)
        exposure = self.engine.analyze_open_positions(positions, balance.current)

        if self.coaching:
            assessment: Dict[str, Any] = coach_result(history)
            assessment["position_warnings"] = coach_warnings(exposure)
        else:
            assessment = history.to_payload()
            assessment["position_warnings"] = [warning.to_payload() for warning in exposure]
        assessment["balance"] = {"current": balance.current, "initial": initial}

        if hasattr(self.provider, "fetch_bot_activity"):
            transactions = await self.telemetry.call(
                "bot_activity", self.provider.fetch_bot_activity  # type: ignore[attr-defined]
            )
            assessment["risky_bot_transactions"] = risky_bot_transactions(transactions)

        await self._maybe_notify(assessment)
        return assessment

    def reset_session(self) -> None:
        """Forget the balance baseline captured for the current session."""

        self._session_initial_balance = None

    def _initial_balance(self, balance: BalanceSnapshot) -> Optional[float]:
        if balance.initial:
            return balance.initial
        # The venue does not report a starting balance; the first one seen is the baseline.
        if self._session_initial_balance is None:
            self._session_initial_balance = balance.current
            logger.info("Captured session starting balance", extra={"initial_balance": balance.current})
        return self._session_initial_balance

    async def _maybe_notify(self, assessment: Mapping[str, Any]) -> None:
        warnings = list(assessment.get("warnings", [])) + list(assessment.get("position_warnings", []))
        if not warnings or self.notifier is None:
            return
        try:
            await self.notifier(warnings, assessment)
        except Exception:
            # A failing alert channel must not hide the assessment from the caller.
            logger.exception("Risk notification failed")
