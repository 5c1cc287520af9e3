"""Utilities for loading risk coach configuration files."""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Dict, Mapping, MutableMapping, Optional

from risk_coach.config.models import CoachConfig
from risk_coach.logging_setup import configure_logging
from risk_coach.telemetry import ResiliencePolicy


def _ensure_logger_level(logger: logging.Logger, level: int) -> None:
    """Ensure ``logger`` and its handlers are set to at most ``level``."""

    if logger.level in {logging.NOTSET} or logger.level > level:
        logger.setLevel(level)
    for handler in logger.handlers:
        if handler.level in {logging.NOTSET} or handler.level > level:
            handler.setLevel(level)


def _debug_to_logging_level(debug_level: int) -> int:
    """Map a debug verbosity integer to a logging level."""

    if debug_level <= 0:
        return logging.WARNING
    if debug_level == 1:
        return logging.INFO
    return logging.DEBUG


def configure_default_logging(debug_level: int = 1) -> bool:
    """Provision redacting logging unless the host application already did.

    Returns ``True`` when handlers were installed by this call.
    """

    root_logger = logging.getLogger()
    already_configured = bool(root_logger.handlers)
    if not already_configured:
        configure_logging(debug=debug_level)

    desired_level = _debug_to_logging_level(debug_level)
    _ensure_logger_level(logging.getLogger("risk_coach"), desired_level)
    return not already_configured


def _load_json(path: Path) -> Any:
    """Return parsed JSON payload from ``path`` with helpful error messages."""

    try:
        return json.loads(path.read_text(encoding="utf-8"))
    except FileNotFoundError as exc:
        raise FileNotFoundError(f"Configuration file not found: {path}") from exc
    except json.JSONDecodeError as exc:
        raise ValueError(f"Invalid JSON in configuration file {path}: {exc}") from exc


def _ensure_mapping(payload: Any, *, description: str) -> MutableMapping[str, Any]:
    """Return ``payload`` when it is a mapping, otherwise raise ``TypeError``."""

    if isinstance(payload, MutableMapping):
        return payload
    if isinstance(payload, Mapping):
        return dict(payload)
    raise TypeError(f"{description} must be a JSON object, not {type(payload).__name__}.")


def _coerce_bool(value: Any, default: bool = False) -> bool:
    """Return a boolean for ``value`` supporting common string representations."""

    if value is None:
        return default
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float)):
        return bool(value)
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in {"", "default", "auto"}:
            return default
        if lowered in {"1", "true", "yes", "on", "enabled", "enable"}:
            return True
        if lowered in {"0", "false", "no", "off", "disabled", "disable"}:
            return False
    return bool(value)


def _parse_thresholds(raw: Any) -> Dict[str, float]:
    if raw is None:
        return {}
    thresholds = _ensure_mapping(raw, description="Configuration 'thresholds'")
    parsed: Dict[str, float] = {}
    for name, value in thresholds.items():
        if isinstance(value, bool):
            raise ValueError(f"Threshold '{name}' must be numeric.")
        try:
            parsed[str(name)] = float(value)
        except (TypeError, ValueError) as exc:
            raise ValueError(f"Threshold '{name}' must be numeric.") from exc
    return parsed


def _parse_debug_level(raw: Any) -> int:
    if raw is None:
        return 1
    if isinstance(raw, bool):
        return 2 if raw else 1
    try:
        return int(raw)
    except (TypeError, ValueError) as exc:
        raise ValueError("Configuration 'debug' must be an integer verbosity level.") from exc


def validate_coach_config(config: Mapping[str, Any], *, source_path: Optional[Path] = None) -> CoachConfig:
    """Validate and normalise a coach configuration payload."""

    timezone_raw = config.get("timezone")
    if timezone_raw is not None and not isinstance(timezone_raw, str):
        raise TypeError("Configuration 'timezone' must be a string such as 'Europe/London'.")
    resilience_raw = config.get("resilience")
    if resilience_raw is not None:
        resilience_raw = _ensure_mapping(resilience_raw, description="Configuration 'resilience'")

    return CoachConfig(
        thresholds=_parse_thresholds(config.get("thresholds")),
        timezone=(timezone_raw.strip() or None) if timezone_raw else None,
        debug_level=_parse_debug_level(config.get("debug")),
        coaching=_coerce_bool(config.get("coaching"), True),
        resilience=ResiliencePolicy.from_mapping(resilience_raw),
        config_root=source_path.parent if source_path else Path.cwd(),
        config_path=source_path,
    )


def load_coach_config(path: Path | str) -> CoachConfig:
    """Load and validate a configuration file from disk."""

    resolved = Path(path).expanduser().resolve()
    payload = _ensure_mapping(_load_json(resolved), description="Risk coach configuration")
    return validate_coach_config(payload, source_path=resolved)


__all__ = ["CoachConfig", "configure_default_logging", "load_coach_config", "validate_coach_config"]
