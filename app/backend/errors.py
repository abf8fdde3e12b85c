from __future__ import annotations

from typing import Any
from uuid import uuid4

from fastapi import FastAPI, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse


class PriceError(Exception):
    """Base class for every failure the price check can report.

    ``status_code`` is used by the HTTP API, ``code`` is a stable machine
    readable identifier shared by the API and the CLI.
    """

    status_code = 500
    code = "PRICE_ERROR"

    def __init__(self, message: str, detail: Any = None, *, status_code: int | None = None, code: str | None = None):
        super().__init__(message)
        self.message = message
        self.detail = detail
        if status_code is not None:
            self.status_code = status_code
        if code is not None:
            self.code = code


class ConfigError(PriceError):
    status_code = 500
    code = "CONFIG_ERROR"


class InvalidAreaCodeError(PriceError):
    status_code = 400
    code = "INVALID_AREA_CODE"


class InvalidThresholdError(PriceError):
    status_code = 400
    code = "INVALID_THRESHOLD"


class InvalidTimestampError(PriceError):
    status_code = 400
    code = "INVALID_TIMESTAMP"


class CacheNotFoundError(PriceError):
    """Nothing has been stored for the area yet. Triggers a fetch."""

    status_code = 404
    code = "CACHE_NOT_FOUND"


class CacheReadError(PriceError):
    code = "CACHE_READ_ERROR"


class CacheParseError(PriceError):
    code = "CACHE_PARSE_ERROR"


class CacheWriteError(PriceError):
    """Persisting a fetched schedule failed. Reported, never fatal."""

    code = "CACHE_WRITE_ERROR"


class FetchError(PriceError):
    status_code = 502
    code = "FETCH_ERROR"

    def __init__(self, message: str, url: str, detail: Any = None):
        super().__init__(message, detail=detail)
        self.url = url


class FetchTransportError(FetchError):
    code = "FETCH_TRANSPORT_ERROR"


class FetchStatusError(FetchError):
    code = "FETCH_STATUS_ERROR"

    def __init__(self, message: str, url: str, response_status: int):
        super().__init__(message, url, detail={"url": url, "status": response_status})
        self.response_status = response_status


class FetchParseError(FetchError):
    code = "FETCH_PARSE_ERROR"


class PriceNotFoundError(PriceError):
    status_code = 404
    code = "PRICE_NOT_FOUND"


def _error_body(code: str, message: str, request_id: str | None, detail: Any = None) -> dict[str, Any]:
    payload: dict[str, Any] = {
        "error": {
            "code": code,
            "message": message,
        }
    }
    if detail is not None:
        payload["error"]["detail"] = detail
    if request_id:
        payload["error"]["request_id"] = request_id
    return payload


def _status_code_to_error_code(status_code: int) -> str:
    mapping = {
        400: "BAD_REQUEST",
        404: "NOT_FOUND",
        405: "METHOD_NOT_ALLOWED",
        422: "VALIDATION_ERROR",
        500: "INTERNAL_ERROR",
        502: "UPSTREAM_ERROR",
        503: "SERVICE_UNAVAILABLE",
    }
    return mapping.get(status_code, f"HTTP_{status_code}")


def register_error_handling(app: FastAPI, logger):
    @app.middleware("http")
    async def request_id_middleware(request: Request, call_next):
        request_id = request.headers.get("X-Request-ID") or uuid4().hex[:12]
        request.state.request_id = request_id
        response = await call_next(request)
        response.headers["X-Request-ID"] = request_id
        return response

    @app.exception_handler(PriceError)
    async def price_error_handler(request: Request, exc: PriceError):
        request_id = getattr(request.state, "request_id", None)
        if exc.status_code >= 500:
            logger.warning("Price request failed [request_id=%s]: %s", request_id, exc.message)
        return JSONResponse(
            status_code=exc.status_code,
            content=_error_body(exc.code, exc.message, request_id, detail=exc.detail),
            headers={"X-Request-ID": request_id} if request_id else None,
        )

    @app.exception_handler(RequestValidationError)
    async def request_validation_error_handler(request: Request, exc: RequestValidationError):
        request_id = getattr(request.state, "request_id", None)
        return JSONResponse(
            status_code=422,
            content=_error_body(
                "VALIDATION_ERROR",
                "Request validation failed.",
                request_id,
                detail=jsonable_errors(exc.errors()),
            ),
            headers={"X-Request-ID": request_id} if request_id else None,
        )

    @app.exception_handler(HTTPException)
    async def http_exception_handler(request: Request, exc: HTTPException):
        request_id = getattr(request.state, "request_id", None)
        code = _status_code_to_error_code(exc.status_code)
        message = str(exc.detail) if exc.detail else "Request failed."
        return JSONResponse(
            status_code=exc.status_code,
            content=_error_body(code, message, request_id),
            headers={"X-Request-ID": request_id} if request_id else None,
        )

    @app.exception_handler(Exception)
    async def unhandled_exception_handler(request: Request, exc: Exception):
        request_id = getattr(request.state, "request_id", None)
        logger.exception("Unhandled API exception [request_id=%s]", request_id)
        return JSONResponse(
            status_code=500,
            content=_error_body(
                "INTERNAL_ERROR",
                "Unexpected internal error.",
                request_id,
            ),
            headers={"X-Request-ID": request_id} if request_id else None,
        )


def jsonable_errors(errors):
    # pydantic may put the raised exception object into "ctx"
    cleaned = []
    for item in errors:
        item = dict(item)
        ctx = item.get("ctx")
        if isinstance(ctx, dict):
            item["ctx"] = {key: str(value) for key, value in ctx.items()}
        cleaned.append(item)
    return cleaned
