"""HTTP surface exposing the risk engine to dashboards and alerting tools."""

from __future__ import annotations

import logging
import math
from typing import Any, Dict, Mapping, Optional

from fastapi import Depends, FastAPI, HTTPException, Request, status
from fastapi.responses import JSONResponse

from .api.controllers import RiskCoachController
from .coaching import coach_result, coach_warnings
from .config.models import CoachConfig
from .risk_engine.config import RiskEngineConfig
from .risk_engine.core import InvalidRecord
from .risk_engine.engine import RiskEngine
from .telemetry import CircuitOpenError, Telemetry

logger = logging.getLogger(__name__)


def _optional_number(payload: Mapping[str, Any], *names: str) -> Optional[float]:
    for name in names:
        if name not in payload:
            continue
        value = payload[name]
        if value in (None, ""):
            return None
        if isinstance(value, bool):
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=f"'{name}' must be numeric")
        try:
            number = float(value)
        except (TypeError, ValueError):
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST, detail=f"'{name}' must be numeric"
            ) from None
        if not math.isfinite(number):
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=f"'{name}' must be a finite number")
        return number
    return None


async def _json_object(request: Request) -> Mapping[str, Any]:
    try:
        payload = await request.json()
    except Exception as exc:  # pragma: no cover - invalid JSON yields 400
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid JSON payload") from exc
    if not isinstance(payload, Mapping):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Payload must be an object")
    return payload


def create_app(
    config: Optional[CoachConfig] = None,
    *,
    engine: Optional[RiskEngine] = None,
    controller: Optional[RiskCoachController] = None,
    telemetry: Optional[Telemetry] = None,
) -> FastAPI:
    """Build the API around one engine shared by the analysis endpoints and ``controller``.

    Threshold updates must reach provider assessments, so an explicit
    ``engine`` has to be the controller's own engine.
    """

    config = config or CoachConfig()
    if controller is not None:
        if engine is not None and engine is not controller.engine:
            raise ValueError("create_app() received an engine that differs from controller.engine")
        engine = controller.engine
    elif engine is None:
        engine = RiskEngine(RiskEngineConfig.from_coach_config(config))
    if telemetry is None:
        if controller is not None:
            telemetry = controller.telemetry
        else:
            telemetry = Telemetry(policy=config.resilience, metrics=engine.metrics)

    app = FastAPI(title="Trading Risk Coach")
    app.state.engine = engine
    app.state.controller = controller
    app.state.telemetry = telemetry
    app.state.coaching = config.coaching

    def get_engine(request: Request) -> RiskEngine:
        return request.app.state.engine

    def get_controller(request: Request) -> RiskCoachController:
        controller = request.app.state.controller
        if controller is None:
            raise HTTPException(
                status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
                detail="No account data provider is configured",
            )
        return controller

    @app.get("/api/health", response_class=JSONResponse)
    async def api_health(request: Request) -> JSONResponse:
        return JSONResponse(request.app.state.telemetry.health_snapshot())

    @app.get("/api/metrics", response_class=JSONResponse)
    async def api_metrics(engine: RiskEngine = Depends(get_engine)) -> JSONResponse:
        return JSONResponse(engine.metrics.snapshot())

    @app.get("/api/thresholds", response_class=JSONResponse)
    async def api_get_thresholds(engine: RiskEngine = Depends(get_engine)) -> JSONResponse:
        return JSONResponse(engine.thresholds.as_dict())

    @app.put("/api/thresholds", response_class=JSONResponse)
    async def api_set_thresholds(request: Request, engine: RiskEngine = Depends(get_engine)) -> JSONResponse:
        payload = await _json_object(request)
        for name, value in payload.items():
            if isinstance(value, bool) or not isinstance(value, (int, float)) or not math.isfinite(value):
                raise HTTPException(
                    status_code=status.HTTP_400_BAD_REQUEST, detail=f"Threshold '{name}' must be a finite number"
                )
        updated = engine.set_thresholds(payload)
        return JSONResponse(updated.as_dict())

    @app.post("/api/analysis/trades", response_class=JSONResponse)
    async def api_analyze_trades(request: Request, engine: RiskEngine = Depends(get_engine)) -> JSONResponse:
        payload = await _json_object(request)
        trades = payload.get("trades")
        if trades is not None and not isinstance(trades, list):
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="'trades' must be an array")
        current_balance = _optional_number(payload, "current_balance", "currentBalance")
        initial_balance = _optional_number(payload, "initial_balance", "initialBalance")
        try:
            result = engine.analyze_trade_history(trades, current_balance, initial_balance)
        except InvalidRecord as exc:
            raise HTTPException(status_code=422, detail=str(exc)) from exc
        body: Dict[str, Any] = coach_result(result) if request.app.state.coaching else result.to_payload()
        return JSONResponse(body)

    @app.post("/api/analysis/positions", response_class=JSONResponse)
    async def api_analyze_positions(request: Request, engine: RiskEngine = Depends(get_engine)) -> JSONResponse:
        payload = await _json_object(request)
        positions = payload.get("positions")
        if positions is not None and not isinstance(positions, list):
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="'positions' must be an array")
        balance = _optional_number(payload, "balance")
        try:
            warnings = engine.analyze_open_positions(positions, balance)
        except InvalidRecord as exc:
            raise HTTPException(status_code=422, detail=str(exc)) from exc
        if request.app.state.coaching:
            items = coach_warnings(warnings)
        else:
            items = [warning.to_payload() for warning in warnings]
        return JSONResponse({"warnings": items})

    @app.get("/api/assessment", response_class=JSONResponse)
    async def api_assessment(controller: RiskCoachController = Depends(get_controller)) -> JSONResponse:
        try:
            assessment = await controller.assess()
        except CircuitOpenError as exc:
            raise HTTPException(
                status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
                detail=str(exc),
                headers={"Retry-After": str(max(1, math.ceil(exc.retry_after)))},
            ) from exc
        except InvalidRecord as exc:
            logger.error("Account data provider returned malformed records", extra={"error": str(exc)})
            raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=str(exc)) from exc
        except Exception as exc:
            logger.exception("Risk assessment failed")
            raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(exc)) from exc
        return JSONResponse(assessment)

    return app


__all__ = ["create_app"]
