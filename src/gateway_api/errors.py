"""Exception taxonomy and the FastAPI handlers that translate it into responses."""

import logging

import pydantic
from fastapi import (
    Request,
    status,
)
from fastapi.exception_handlers import http_exception_handler
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

logger = logging.getLogger(__name__)


class GatewayError(Exception):
    """Base class for every error raised by the gateway."""


class ConfigurationError(GatewayError):
    """Required connection parameters are missing. Fatal at startup."""


class TransportError(GatewayError):
    """The queue or object-storage service is unreachable or returned an error."""


class ParseError(GatewayError):
    """A queue message body is not JSON."""


class ValidationError(GatewayError):
    """A client request is missing required fields or carries invalid input."""


class ObjectNotFoundError(GatewayError):
    """The requested object key does not exist in the bucket."""


def _error_body(error: str, message: str | None = None) -> dict:
    body = {"success": False, "error": error}
    if message:
        body["message"] = message
    return body


async def handle_validation_errors(request: Request, exc: ValidationError) -> JSONResponse:
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content=_error_body(str(exc)),
    )


async def handle_object_not_found(request: Request, exc: ObjectNotFoundError) -> JSONResponse:
    return JSONResponse(
        status_code=status.HTTP_404_NOT_FOUND,
        content=_error_body("File not found", str(exc)),
    )


async def handle_transport_errors(request: Request, exc: TransportError) -> JSONResponse:
    logger.error("Upstream AWS call failed on %s %s: %s", request.method, request.url.path, exc)
    return JSONResponse(
        status_code=status.HTTP_502_BAD_GATEWAY,
        content=_error_body("Upstream service error", str(exc)),
    )


async def handle_request_validation_errors(
    request: Request, exc: RequestValidationError | pydantic.ValidationError
) -> JSONResponse:
    """Report body/query validation failures as a 400 with the offending fields."""
    errors = exc.errors()
    first = errors[0] if errors else {}
    field = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
    error = f"{field} is required" if first.get("type") == "missing" and field else "Invalid request"
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={
            **_error_body(error),
            "detail": [
                {"loc": list(err.get("loc", ())), "msg": err.get("msg")}
                for err in errors
            ],
        },
    )


async def handle_http_errors(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    """Report unmatched routes with the path that was asked for; other HTTP errors keep FastAPI's body."""
    if exc.status_code == status.HTTP_404_NOT_FOUND:
        return JSONResponse(
            status_code=status.HTTP_404_NOT_FOUND,
            content={"error": "Route not found", "path": request.url.path},
        )
    return await http_exception_handler(request, exc)


async def handle_broad_exceptions(request: Request, call_next):
    """Handle any exception that goes unhandled by a more specific exception handler."""
    try:
        return await call_next(request)
    except Exception as err:  # pylint: disable=broad-except
        logger.exception(err)
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content=_error_body("Something went wrong!", str(err)),
        )
