"""Timeouts, retries and circuit breaking around account data fetches."""

from __future__ import annotations

import asyncio
import logging
import math
import time
from dataclasses import dataclass, fields
from datetime import datetime, timezone
from typing import Any, Awaitable, Callable, Dict, Mapping, Optional, TypeVar

from .metrics import MetricRegistry

logger = logging.getLogger(__name__)

T = TypeVar("T")

_INTEGER_SETTINGS = {"max_retries", "circuit_breaker_threshold"}


@dataclass(frozen=True)
class ResiliencePolicy:
    """How hard the controller tries before giving up on a data source."""

    request_timeout: float = 10.0
    max_retries: int = 2
    retry_backoff: float = 0.5  # seconds, multiplied by the attempt number
    circuit_breaker_threshold: int = 3
    circuit_breaker_reset_s: float = 30.0

    def __post_init__(self) -> None:
        if self.max_retries < 0:
            raise ValueError("Resilience 'max_retries' must be zero or greater.")
        if self.circuit_breaker_threshold < 1:
            raise ValueError("Resilience 'circuit_breaker_threshold' must be at least 1.")
        if not self.request_timeout > 0:
            raise ValueError("Resilience 'request_timeout' must be a positive number of seconds.")
        if self.retry_backoff < 0 or self.circuit_breaker_reset_s < 0:
            raise ValueError("Resilience delays must not be negative.")

    @classmethod
    def from_mapping(cls, payload: Optional[Mapping[str, Any]]) -> "ResiliencePolicy":
        """Build a policy from a configuration section; unknown keys are ignored."""

        if not payload:
            return cls()
        kwargs: Dict[str, Any] = {}
        for item in fields(cls):
            if item.name not in payload:
                continue
            raw = payload[item.name]
            try:
                if isinstance(raw, bool):
                    raise TypeError(raw)
                value = float(raw)
            except (TypeError, ValueError) as exc:
                raise ValueError(f"Resilience '{item.name}' must be numeric.") from exc
            if not math.isfinite(value):
                raise ValueError(f"Resilience '{item.name}' must be a finite number.")
            if item.name in _INTEGER_SETTINGS:
                if not value.is_integer():
                    raise ValueError(f"Resilience '{item.name}' must be a whole number.")
                kwargs[item.name] = int(value)
            else:
                kwargs[item.name] = value
        return cls(**kwargs)


class CircuitOpenError(RuntimeError):
    """Raised instead of fetching while a source's circuit is open."""

    def __init__(self, source: str, retry_after: float) -> None:
        self.source = source
        self.retry_after = retry_after
        super().__init__(f"Circuit open for {source}; retry in {retry_after:.0f}s")


@dataclass
class _Circuit:
    threshold: int
    cooldown: float
    consecutive_failures: int = 0
    opened_at: Optional[float] = None

    def remaining(self, now: float) -> float:
        """Seconds until the circuit closes again, 0 when closed."""

        if self.opened_at is None:
            return 0.0
        left = self.cooldown - (now - self.opened_at)
        if left > 0:
            return left
        # cooled down: the next fetch is a fresh trial
        self.opened_at = None
        self.consecutive_failures = 0
        return 0.0

    def failed(self, now: float) -> bool:
        """Count a failure and return ``True`` if it opened the circuit."""

        self.consecutive_failures += 1
        if self.opened_at is None and self.consecutive_failures >= self.threshold:
            self.opened_at = now
            return True
        return False

    def succeeded(self) -> None:
        self.consecutive_failures = 0
        self.opened_at = None


@dataclass
class SourceHealth:
    healthy: bool = True
    last_error: Optional[str] = None
    last_success: Optional[datetime] = None


class Telemetry:
    """Wrap provider fetches and report per-source health.

    Durations, failures, successes and short circuits are recorded in a
    :class:`MetricRegistry` labelled with ``{"source": name}``; pass the
    engine's registry to keep every metric in one place.
    """

    def __init__(
        self,
        *,
        policy: Optional[ResiliencePolicy] = None,
        metrics: Optional[MetricRegistry] = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.policy = policy or ResiliencePolicy()
        self.metrics = metrics or MetricRegistry()
        self._clock = clock
        self._circuits: Dict[str, _Circuit] = {}
        self._health: Dict[str, SourceHealth] = {}

    def _circuit(self, source: str) -> _Circuit:
        if source not in self._circuits:
            self._circuits[source] = _Circuit(
                threshold=self.policy.circuit_breaker_threshold,
                cooldown=self.policy.circuit_breaker_reset_s,
            )
        return self._circuits[source]

    async def call(self, source: str, fetch: Callable[[], Awaitable[T]]) -> T:
        """Await ``fetch()`` under the policy's timeout, retrying failed attempts.

        Raises :class:`CircuitOpenError` without fetching while the source's
        circuit is open; otherwise re-raises the last fetch error once the
        retries are spent or the circuit opens.
        """

        labels = {"source": source}
        circuit = self._circuit(source)
        health = self._health.setdefault(source, SourceHealth())

        wait = circuit.remaining(self._clock())
        if wait > 0:
            self.metrics.inc("provider.short_circuits", labels=labels)
            logger.warning("Skipping fetch while circuit is open", extra={"source": source, "retry_after": wait})
            raise CircuitOpenError(source, wait)

        attempts = self.policy.max_retries + 1
        for attempt in range(1, attempts + 1):
            try:
                with self.metrics.time("provider.fetch_seconds", labels=labels):
                    result = await asyncio.wait_for(fetch(), timeout=self.policy.request_timeout)
            except Exception as exc:
                error = str(exc) or type(exc).__name__
                self.metrics.inc("provider.failures", labels=labels)
                health.healthy = False
                health.last_error = error
                opened = circuit.failed(self._clock())
                logger.warning(
                    "Account data fetch failed",
                    extra={"source": source, "attempt": attempt, "error": error, "circuit_opened": opened},
                )
                if opened or attempt == attempts:
                    raise
                await asyncio.sleep(self.policy.retry_backoff * attempt)
            else:
                self.metrics.inc("provider.successes", labels=labels)
                circuit.succeeded()
                health.healthy = True
                health.last_error = None
                health.last_success = datetime.now(timezone.utc)
                return result
        raise RuntimeError(f"No fetch attempted for {source}")

    def health_snapshot(self) -> Dict[str, Any]:
        now = self._clock()
        sources: Dict[str, Any] = {}
        for source, health in sorted(self._health.items()):
            labels = {"source": source}
            circuit = self._circuit(source)
            if circuit.remaining(now) > 0:
                status = "open"
            else:
                status = "healthy" if health.healthy else "degraded"
            sources[source] = {
                "status": status,
                "error": health.last_error,
                "last_success": health.last_success.isoformat() if health.last_success else None,
                "consecutive_failures": circuit.consecutive_failures,
                "failures": int(self.metrics.counter("provider.failures", labels=labels)),
                "successes": int(self.metrics.counter("provider.successes", labels=labels)),
            }
        overall = "healthy" if all(item["status"] == "healthy" for item in sources.values()) else "degraded"
        return {"status": overall, "sources": sources}


__all__ = ["CircuitOpenError", "ResiliencePolicy", "SourceHealth", "Telemetry"]
