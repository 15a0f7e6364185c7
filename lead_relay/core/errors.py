import logging
from typing import Any

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

logger = logging.getLogger(__name__)


class LeadRelayError(Exception):
    """Base error mapped to an HTTP status and a client-safe message."""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    public_message: str = "Internal server error."

    def client_message(self) -> str:
        return self.public_message


class ConfigurationError(LeadRelayError):
    """Required configuration value is missing or malformed."""

    public_message = "Server is not configured to handle this request."


class ValidationError(LeadRelayError):
    """Request body failed shape or type checks."""

    status_code = status.HTTP_400_BAD_REQUEST
    public_message = "Invalid request body."

    def client_message(self) -> str:
        return str(self) or self.public_message


class RelayError(LeadRelayError):
    """Chat model call failed."""

    public_message = "Failed to get response from AI model."


class PersistenceError(LeadRelayError):
    """Spreadsheet append failed."""

    public_message = "Failed to save lead data."


def error_body(message: str) -> dict[str, str]:
    return {"error": message}


def describe_invalid_fields(errors: list[dict[str, Any]]) -> str:
    """
    Build a client message naming the offending body fields.

    Args:
        errors: Pydantic error list from RequestValidationError

    Returns:
        str: Message for a 400 response
    """
    fields: list[str] = []
    for err in errors:
        loc = [str(part) for part in err.get("loc", ()) if part != "body"]
        if not loc or err.get("type") == "json_invalid":
            continue
        if loc[0] not in fields:
            fields.append(loc[0])

    if not fields:
        return "Invalid request body. A JSON object is required."
    quoted = ", ".join(f'"{name}"' for name in fields)
    return f"Invalid request body. Missing or invalid field(s): {quoted}."


async def _lead_relay_error_handler(request: Request, exc: LeadRelayError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error("%s on %s %s: %s", type(exc).__name__, request.method, request.url.path, exc)
    else:
        logger.info("Rejected %s %s: %s", request.method, request.url.path, exc.client_message())
    return JSONResponse(status_code=exc.status_code, content=error_body(exc.client_message()))


async def _request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    return await _lead_relay_error_handler(request, ValidationError(describe_invalid_fields(list(exc.errors()))))


def register_exception_handlers(app: FastAPI) -> None:
    """Single place where errors become HTTP status codes and bodies."""
    app.add_exception_handler(LeadRelayError, _lead_relay_error_handler)  # type: ignore[arg-type]
    app.add_exception_handler(RequestValidationError, _request_validation_handler)  # type: ignore[arg-type]
