from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional

from risk_coach.telemetry import ResiliencePolicy


@dataclass()
class CoachConfig:
    """Top level risk coach configuration."""

    thresholds: Dict[str, Any] = field(default_factory=dict)
    timezone: Optional[str] = None
    debug_level: int = 1
    coaching: bool = True
    resilience: ResiliencePolicy = field(default_factory=ResiliencePolicy)
    config_root: Optional[Path] = None
    config_path: Optional[Path] = None


__all__ = ["CoachConfig"]
