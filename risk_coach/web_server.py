"""Command line entry point for the risk coach HTTP service."""

from __future__ import annotations

import argparse
import logging
from dataclasses import replace
from pathlib import Path
from typing import TYPE_CHECKING, Optional

from .config.models import CoachConfig
from .configuration import configure_default_logging, load_coach_config
from .risk_engine.config import Settings
from .risk_engine.engine import RiskEngine

if TYPE_CHECKING:  # pragma: no cover - used only for type hints
    import uvicorn

logger = logging.getLogger(__name__)


def _import_uvicorn() -> "uvicorn":
    """Import :mod:`uvicorn` with a helpful error message when missing."""

    try:
        import uvicorn  # type: ignore[import]
    except ModuleNotFoundError as exc:  # pragma: no cover - depends on runtime environment
        raise ModuleNotFoundError(
            "The 'uvicorn' package is required to run the risk coach web server. "
            "Install risk-coach with its default dependencies or add uvicorn to your environment."
        ) from exc
    return uvicorn


def _uvicorn_log_level(debug_level: int) -> str:
    if debug_level <= 0:
        return "warning"
    if debug_level == 1:
        return "info"
    return "debug"


def main(argv: Optional[list[str]] = None) -> None:
    parser = argparse.ArgumentParser(description="Launch the trading risk coach API")
    parser.add_argument("--config", type=Path, help="Path to the risk coach JSON configuration file")
    parser.add_argument("--host", default="127.0.0.1", help="Host address for the web server")
    parser.add_argument("--port", type=int, default=8000, help="Port for the web server")
    args = parser.parse_args(argv)

    try:
        config = load_coach_config(args.config) if args.config else CoachConfig()
        settings = Settings.from_environment(coach=config)
    except (FileNotFoundError, TypeError, ValueError) as exc:
        parser.error(str(exc))

    configure_default_logging(settings.debug_level)
    logger.info(
        "Starting risk coach API",
        extra={"host": args.host, "port": args.port, "config": str(args.config) if args.config else None},
    )

    from .web import create_app  # imported lazily to avoid heavy dependencies at import time

    app = create_app(replace(config, coaching=settings.coaching), engine=RiskEngine(settings.risk))

    uvicorn = _import_uvicorn()
    uvicorn.run(
        app,
        host=args.host,
        port=args.port,
        log_level=_uvicorn_log_level(settings.debug_level),
    )


if __name__ == "__main__":
    main()
