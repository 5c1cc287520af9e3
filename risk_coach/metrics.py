"""Counters and duration samples shared by the engine and the provider layer."""

from __future__ import annotations

import time
from contextlib import contextmanager
from typing import Any, Dict, Iterator, List, Mapping, Optional, Tuple

Labels = Optional[Mapping[str, str]]
_Key = Tuple[str, Tuple[Tuple[str, str], ...]]


def _key(name: str, labels: Labels) -> _Key:
    return name, tuple(sorted((labels or {}).items()))


class MetricRegistry:
    """In-process collector keyed by metric name and label set.

    The engine counts runs and warnings per type here; :class:`Telemetry`
    records fetch durations, failures and short circuits per data source
    into the same registry so a single :meth:`snapshot` covers both.
    """

    def __init__(self) -> None:
        self._counters: Dict[_Key, float] = {}
        self._samples: Dict[_Key, List[float]] = {}

    def inc(self, name: str, *, labels: Labels = None, amount: float = 1.0) -> None:
        key = _key(name, labels)
        self._counters[key] = self._counters.get(key, 0.0) + amount

    def observe(self, name: str, value: float, *, labels: Labels = None) -> None:
        self._samples.setdefault(_key(name, labels), []).append(value)

    @contextmanager
    def time(self, name: str, *, labels: Labels = None) -> Iterator[None]:
        """Record the wall time of the block, including blocks that raise."""

        started = time.perf_counter()
        try:
            yield
        finally:
            self.observe(name, time.perf_counter() - started, labels=labels)

    def counter(self, name: str, *, labels: Labels = None) -> float:
        return self._counters.get(_key(name, labels), 0.0)

    def samples(self, name: str, *, labels: Labels = None) -> List[float]:
        return list(self._samples.get(_key(name, labels), []))

    def snapshot(self) -> Dict[str, List[Dict[str, Any]]]:
        counters = [
            {"name": name, "labels": dict(labels), "value": value}
            for (name, labels), value in sorted(self._counters.items())
        ]
        durations = [
            {"name": name, "labels": dict(labels), "count": len(values), "sum": sum(values), "max": max(values)}
            for (name, labels), values in sorted(self._samples.items())
            if values
        ]
        return {"counters": counters, "durations": durations}


__all__ = ["Labels", "MetricRegistry"]
