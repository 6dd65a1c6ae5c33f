# This file defines API error types, payloads, and exception handlers.
# Product lookups and store failures answer with short plain-text bodies ("Product not found", "Server error").
# Validation and other HTTP errors keep a structured JSON body with request trace fields.
# Internal failure details are logged server-side and never copied into a response.

from __future__ import annotations

import logging
from datetime import UTC, datetime
from typing import Any

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse, PlainTextResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

logger = logging.getLogger(__name__)

NOT_FOUND_MESSAGE = "Product not found"
SERVER_ERROR_MESSAGE = "Server error"


class ProductNotFoundError(Exception):
    """No product matches the requested identifier."""

    def __init__(self, product_id: str) -> None:
        self.product_id = product_id
        super().__init__(f"Product {product_id!r} not found")


class StoreUnavailableError(Exception):
    """The product store failed; the cause is chained but not exposed."""

    def __init__(self, action: str) -> None:
        self.action = action
        super().__init__(f"Product store failed to {action}")


def _request_id(request: Request) -> str:
    return str(getattr(request.state, "request_id", "unknown"))


def _error_body(
    *, request: Request, error_code: str, message: str, details: Any | None = None
) -> dict[str, Any]:
    return {
        "error_code": error_code,
        "message": message,
        "details": details,
        "request_id": _request_id(request),
        "timestamp": datetime.now(tz=UTC).isoformat(),
    }


def register_error_handlers(app: FastAPI) -> None:
    """Register global exception handlers."""

    @app.exception_handler(ProductNotFoundError)
    async def product_not_found_handler(
        request: Request, exc: ProductNotFoundError
    ) -> PlainTextResponse:
        logger.info("request_id=%s %s", _request_id(request), exc)
        return PlainTextResponse(NOT_FOUND_MESSAGE, status_code=404)

    @app.exception_handler(StoreUnavailableError)
    async def store_unavailable_handler(
        request: Request, exc: StoreUnavailableError
    ) -> PlainTextResponse:
        logger.error("request_id=%s %s", _request_id(request), exc)
        return PlainTextResponse(SERVER_ERROR_MESSAGE, status_code=500)

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
        return JSONResponse(
            status_code=422,
            content=_error_body(
                request=request,
                error_code="VALIDATION_ERROR",
                message="Invalid request parameters.",
                details=jsonable_errors(exc),
            ),
        )

    # Unknown paths and wrong methods are raised by Starlette's router.
    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(
        request: Request, exc: StarletteHTTPException
    ) -> JSONResponse:
        return JSONResponse(
            status_code=exc.status_code,
            content=_error_body(
                request=request,
                error_code="HTTP_ERROR",
                message=str(exc.detail),
            ),
            headers=exc.headers,
        )

    @app.exception_handler(Exception)
    async def unhandled_exception_handler(request: Request, exc: Exception) -> PlainTextResponse:
        logger.error(
            "request_id=%s unhandled error",
            _request_id(request),
            exc_info=(type(exc), exc, exc.__traceback__),
        )
        return PlainTextResponse(SERVER_ERROR_MESSAGE, status_code=500)


def jsonable_errors(exc: RequestValidationError) -> list[dict[str, Any]]:
    """Drop non-serializable exception objects pydantic attaches under `ctx`."""

    errors: list[dict[str, Any]] = []
    for error in exc.errors():
        cleaned = dict(error)
        ctx = cleaned.get("ctx")
        if isinstance(ctx, dict):
            cleaned["ctx"] = {key: str(value) for key, value in ctx.items()}
        errors.append(cleaned)
    return errors
