"""Uniform error envelope: every failure leaves the API as {"error", "message", ...}."""

import logging
import traceback
from http import HTTPStatus

from fastapi import FastAPI, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from slowapi.errors import RateLimitExceeded
from slowapi.util import get_remote_address
from sqlalchemy.exc import IntegrityError
from starlette.exceptions import HTTPException as StarletteHTTPException

from devspace.config import settings

logger = logging.getLogger(__name__)


class APIError(HTTPException):
    """HTTPException carrying a short error title and a human readable message"""

    def __init__(self, status_code: int, error: str, message: str, **extra):
        super().__init__(status_code=status_code, detail=message)
        self.error = error
        self.message = message
        self.extra = extra


def not_found(error: str, message: str) -> APIError:
    return APIError(404, error, message)


def _http_error_body(exc: StarletteHTTPException) -> dict:
    if isinstance(exc, APIError):
        return {"error": exc.error, "message": exc.message, **exc.extra}
    try:
        title = HTTPStatus(exc.status_code).phrase
    except ValueError:
        title = "Error"
    return {"error": title, "message": str(exc.detail)}


async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    if exc.status_code == 404 and not isinstance(exc, APIError):
        return JSONResponse(
            status_code=404,
            content={
                "error": "Not Found",
                "message": "This location does not exist on the API.",
                "suggestion": "Check the path and try again.",
            },
        )
    return JSONResponse(
        status_code=exc.status_code,
        content=_http_error_body(exc),
        headers=getattr(exc, "headers", None),
    )


async def validation_exception_handler(request: Request, exc: RequestValidationError):
    errors = exc.errors()
    if errors and all(err.get("loc", ("",))[0] == "path" for err in errors):
        return JSONResponse(
            status_code=400,
            content={"error": "Invalid ID", "message": "The identifier you provided is invalid."},
        )

    details = []
    for err in errors:
        field = ".".join(str(part) for part in err.get("loc", ())[1:])
        details.append(f"{field}: {err.get('msg')}" if field else err.get("msg"))

    return JSONResponse(
        status_code=400,
        content={
            "error": "Validation Error",
            "message": details[0] if details else "Request validation failed.",
            "details": details,
        },
    )


async def integrity_error_handler(request: Request, exc: IntegrityError):
    logger.warning("Integrity error on %s %s: %s", request.method, request.url.path, exc.orig)
    return JSONResponse(
        status_code=400,
        content={"error": "Duplicate Entry", "message": "This record already exists."},
    )


def rate_limit_exceeded_handler(request: Request, exc: RateLimitExceeded):
    # Kept sync: SlowAPIMiddleware calls it directly
    logger.warning("Rate limit hit by %s on %s", get_remote_address(request), request.url.path)
    return JSONResponse(
        status_code=429,
        content={
            "error": "Rate Limit Exceeded",
            "message": "Too many requests from this IP, please try again later.",
            "retry_after": exc.limit.limit.get_expiry(),
        },
    )


async def unhandled_exception_handler(request: Request, exc: Exception):
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    content = {
        "error": "Internal Server Error",
        "message": "Something went wrong on our side. Please try again later.",
    }
    if settings.is_development:
        content["stack"] = traceback.format_exception(type(exc), exc, exc.__traceback__)
    return JSONResponse(status_code=500, content=content)


def register_exception_handlers(app: FastAPI):
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(IntegrityError, integrity_error_handler)
    app.add_exception_handler(RateLimitExceeded, rate_limit_exceeded_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)
