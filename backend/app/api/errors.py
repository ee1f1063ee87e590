"""Global error handlers ensuring request_id is included in JSON responses."""

from __future__ import annotations

import logging

import asyncpg
from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from redis.exceptions import ConnectionError as RedisConnectionError
from redis.exceptions import TimeoutError as RedisTimeoutError
from starlette.exceptions import HTTPException as StarletteHTTPException

from app.api.request_id import get_request_id
from app.domain.common.exceptions import DomainError, StoreUnavailable
from app.infra.idempotency import IdempotencyConflictError

logger = logging.getLogger(__name__)

# Storage faults surface as one retryable error, distinct from business-rule failures
STORE_FAULTS = (
    StoreUnavailable,
    asyncpg.PostgresConnectionError,
    asyncpg.InterfaceError,
    RedisConnectionError,
    RedisTimeoutError,
    ConnectionError,
    TimeoutError,
)


def _body(request: Request, detail, message: str, **extra) -> dict:
    payload = {"detail": detail, "message": message, "request_id": get_request_id(request)}
    payload.update(extra)
    return payload


def install_error_handlers(app: FastAPI) -> None:
    @app.exception_handler(DomainError)
    async def domain_exc_handler(request: Request, exc: DomainError):  # type: ignore[override]
        return JSONResponse(status_code=exc.status_code, content=_body(request, exc.reason, exc.message))

    @app.exception_handler(IdempotencyConflictError)
    async def idempotency_exc_handler(request: Request, exc: IdempotencyConflictError):  # type: ignore[override]
        message = "This request is already being processed." if exc.reason == "idempotency_in_progress" else "Idempotency key reused with a different request."
        return JSONResponse(status_code=409, content=_body(request, exc.reason, message))

    @app.exception_handler(StarletteHTTPException)
    async def http_exc_handler(request: Request, exc: StarletteHTTPException):  # type: ignore[override]
        detail = exc.detail
        message = detail if isinstance(detail, str) else "Request failed."
        return JSONResponse(status_code=exc.status_code, content=_body(request, detail, message), headers=exc.headers)

    @app.exception_handler(RequestValidationError)
    async def validation_exc_handler(request: Request, exc: RequestValidationError):  # type: ignore[override]
        payload = _body(request, "validation_error", "Some fields are missing or invalid.", errors=exc.errors())
        return JSONResponse(status_code=422, content=jsonable_encoder(payload))

    for fault in STORE_FAULTS:
        app.add_exception_handler(fault, store_fault_handler)


async def store_fault_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.error("store_unavailable", extra={"error": type(exc).__name__}, exc_info=exc)
    payload = _body(request, StoreUnavailable.reason, StoreUnavailable.message, retryable=True)
    return JSONResponse(status_code=503, content=payload, headers={"Retry-After": "1"})