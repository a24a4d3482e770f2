"""
FastAPI application over an Engine.

    engine = await build_engine(settings)
    app = create_app(engine)

Routes:
    POST /api/verify-customer       risk verdict for a phone number
    POST /api/facebook-conversions  forward one event to the conversions API
"""

from __future__ import annotations

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import Any

import fastapi
import structlog
from fastapi.responses import JSONResponse
from kungfu import Ok, Error
from pydantic import ValidationError

from checkout_engine.checkout import normalize_phone
from checkout_engine.engine import Engine
from checkout_engine.web._codecs import (
    ConversionsRequest,
    ConversionsResponse,
    ErrorBody,
    VerifyRequest,
    VerifyResponse,
)

logger = structlog.get_logger(__name__)


def client_ip(request: fastapi.Request) -> str:
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        return forwarded.split(",")[0].strip()
    real = request.headers.get("x-real-ip")
    if real:
        return real.strip()
    if request.client is not None:
        return request.client.host
    return "unknown"


async def _json_body(request: fastapi.Request) -> Any:
    try:
        return await request.json()
    except ValueError:
        return None


def _error(status: int, body: ErrorBody) -> JSONResponse:
    return JSONResponse(body.model_dump(by_alias=True, exclude_none=True), status_code=status)


def create_app(engine: Engine, *, manage_lifecycle: bool = False) -> fastapi.FastAPI:
    """
    Build the HTTP surface.

    With manage_lifecycle the app starts the engine on startup and stops it
    on shutdown; otherwise the caller owns the engine lifecycle.
    """

    @asynccontextmanager
    async def lifespan(_: fastapi.FastAPI) -> AsyncIterator[None]:
        if manage_lifecycle:
            engine.start()
        try:
            yield
        finally:
            if manage_lifecycle:
                await engine.stop()

    app = fastapi.FastAPI(title="checkout-engine", lifespan=lifespan)

    @app.post("/api/verify-customer", response_model=None)
    async def verify_customer(request: fastapi.Request) -> Any:
        ip = client_ip(request)
        match engine.verify_limiter.check(ip):
            case Error(limited):
                logger.info("verify rate limited", ip=ip)
                return _error(429, ErrorBody(error=limited.message, reset_time=limited.reset_time))
            case Ok(_):
                pass

        try:
            phone = VerifyRequest.model_validate(await _json_body(request)).to_domain()
        except ValidationError:
            return _error(400, ErrorBody(error="Invalid phone number"))

        match normalize_phone(phone):
            case Ok(normalized):
                pass
            case Error(e):
                return _error(400, ErrorBody(error=e.message))

        verdict = await engine.verifier.verify(normalized)
        return VerifyResponse.from_domain(verdict).model_dump(by_alias=True)

    @app.post("/api/facebook-conversions", response_model=None)
    async def facebook_conversions(request: fastapi.Request) -> Any:
        try:
            body = ConversionsRequest.model_validate(await _json_body(request))
        except ValidationError:
            return JSONResponse(
                ConversionsResponse(success=False, error="Invalid event").model_dump(exclude_none=True),
                status_code=400,
            )

        event = body.to_domain(
            client_ip=client_ip(request),
            user_agent=request.headers.get("user-agent", ""),
            default_source_url=engine.settings.event_source_url,
        )

        match await engine.conversions.send(event):
            case Ok(_):
                return ConversionsResponse(success=True).model_dump(exclude_none=True)
            case Error(e):
                logger.warning("conversions forward failed", event_name=event.event_name, error=e.message)
                return JSONResponse(
                    ConversionsResponse(success=False, error=e.message).model_dump(exclude_none=True),
                    status_code=400,
                )

    return app


__all__ = ("client_ip", "create_app")
