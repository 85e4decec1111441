"""Custom exceptions and the error envelope returned by every endpoint.

Every failure is rendered in the same shape the dashboard reads for
successes, with ``status`` set to false::

    {"status": false, "message": "...", "data": null,
     "error": {"type": "...", "title": "...", "instance": "/api/v1/..."},
     "errors": {"field": ["..."]}}
"""

from __future__ import annotations

import logging
from typing import Any, Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from slowapi.errors import RateLimitExceeded
from starlette.exceptions import HTTPException as StarletteHTTPException

logger = logging.getLogger(__name__)


# ── Exception hierarchy ─────────────────────────────────────────────

class AppException(Exception):
    """Base for all application exceptions → error envelope JSON."""

    def __init__(
        self,
        status_code: int,
        error_type: str,
        title: str,
        detail: str,
        errors: Optional[dict[str, Any]] = None,
    ) -> None:
        self.status_code = status_code
        self.error_type = error_type
        self.title = title
        self.detail = detail
        self.errors = errors
        super().__init__(detail)


class NotFoundException(AppException):
    """404 — entity not found."""

    def __init__(self, entity_type: str, entity_id: Any) -> None:
        super().__init__(
            status_code=404,
            error_type="not-found",
            title=f"{entity_type} Not Found",
            detail=f"{entity_type} with id '{entity_id}' does not exist.",
        )


class ConflictError(AppException):
    """409 — unique-constraint / duplicate / overlapping entry."""

    def __init__(self, field: str, value: Any, detail: Optional[str] = None) -> None:
        super().__init__(
            status_code=409,
            error_type="conflict",
            title="Conflict",
            detail=detail or f"An entry with {field}='{value}' already exists.",
            errors={field: [f"'{value}' is already in use."]},
        )


class UnauthorizedException(AppException):
    """401 — missing, invalid or expired credentials."""

    def __init__(self, detail: str = "Authentication required.") -> None:
        super().__init__(
            status_code=401,
            error_type="unauthorized",
            title="Unauthorized",
            detail=detail,
        )


class ForbiddenException(AppException):
    """403 — insufficient permissions."""

    def __init__(
        self,
        detail: str = "You do not have permission to perform this action.",
    ) -> None:
        super().__init__(
            status_code=403,
            error_type="forbidden",
            title="Forbidden",
            detail=detail,
        )


class ValidationException(AppException):
    """422 — business-logic validation failures."""

    def __init__(
        self,
        errors: dict[str, list[str]],
        detail: str = "One or more fields failed validation.",
    ) -> None:
        super().__init__(
            status_code=422,
            error_type="validation-error",
            title="Validation Error",
            detail=detail,
            errors=errors,
        )


# ── Envelope builder ────────────────────────────────────────────────

def _error_body(
    request: Request,
    *,
    error_type: str,
    title: str,
    detail: str,
    errors: Optional[dict[str, Any]] = None,
) -> dict[str, Any]:
    body: dict[str, Any] = {
        "status": False,
        "message": detail,
        "data": None,
        "error": {
            "type": error_type,
            "title": title,
            "instance": str(request.url.path),
        },
    }
    if errors:
        body["errors"] = errors
    return body


# ── FastAPI handlers ────────────────────────────────────────────────

async def _handle_app_exception(
    request: Request,
    exc: AppException,
) -> JSONResponse:
    if exc.status_code == 403:
        logger.warning("Access denied on %s: %s", request.url.path, exc.detail)
    return JSONResponse(
        status_code=exc.status_code,
        content=_error_body(
            request,
            error_type=exc.error_type,
            title=exc.title,
            detail=exc.detail,
            errors=exc.errors,
        ),
    )


async def _handle_http_exception(
    request: Request,
    exc: StarletteHTTPException,
) -> JSONResponse:
    titles = {
        400: "Bad Request",
        401: "Unauthorized",
        403: "Forbidden",
        404: "Not Found",
        405: "Method Not Allowed",
    }
    return JSONResponse(
        status_code=exc.status_code,
        content=_error_body(
            request,
            error_type="http-error",
            title=titles.get(exc.status_code, "Error"),
            detail=str(exc.detail),
        ),
        headers=getattr(exc, "headers", None),
    )


async def _handle_validation_error(
    request: Request,
    exc: RequestValidationError,
) -> JSONResponse:
    field_errors: dict[str, list[str]] = {}
    for err in exc.errors():
        loc = err.get("loc", ())
        name = (
            ".".join(str(p) for p in loc[1:])
            if len(loc) > 1
            else str(loc[0]) if loc else "unknown"
        )
        field_errors.setdefault(name, []).append(err.get("msg", "Invalid value"))

    return JSONResponse(
        status_code=422,
        content=_error_body(
            request,
            error_type="validation-error",
            title="Validation Error",
            detail="Request validation failed.",
            errors=field_errors,
        ),
    )


async def _handle_rate_limit(
    request: Request,
    exc: RateLimitExceeded,
) -> JSONResponse:
    logger.warning("Rate limit exceeded on %s: %s", request.url.path, exc.detail)
    response = JSONResponse(
        status_code=429,
        content=_error_body(
            request,
            error_type="rate-limited",
            title="Too Many Requests",
            detail=f"Too many requests. Limit is {exc.detail}.",
        ),
    )
    # Keep slowapi's X-RateLimit-* / Retry-After headers
    limiter = getattr(request.app.state, "limiter", None)
    view_rate_limit = getattr(request.state, "view_rate_limit", None)
    if limiter is not None and view_rate_limit is not None:
        response = limiter._inject_headers(response, view_rate_limit)
    return response


# ── Registration helper (called from main.py) ──────────────────────

def register_exception_handlers(app: FastAPI) -> None:
    """Attach all custom exception handlers to the FastAPI app."""
    app.add_exception_handler(AppException, _handle_app_exception)          # type: ignore[arg-type]
    app.add_exception_handler(StarletteHTTPException, _handle_http_exception)  # type: ignore[arg-type]
    app.add_exception_handler(RequestValidationError, _handle_validation_error)  # type: ignore[arg-type]
    app.add_exception_handler(RateLimitExceeded, _handle_rate_limit)  # type: ignore[arg-type]
