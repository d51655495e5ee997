"""HTTP mapping for ordering exceptions.

Protean's stock handlers cover the framework exceptions; the ordering
taxonomy is layered on top so every error body has the same shape:
``{"error": <messages>, "code": <exception class>}``.
"""

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from protean.exceptions import InvalidOperationError, ObjectNotFoundError, ValidationError
from protean.integrations.fastapi import register_exception_handlers

from ordering.exceptions import StateError, Unauthorized

_STATUS_CODES = {
    ValidationError: 422,
    ObjectNotFoundError: 404,
    InvalidOperationError: 409,
    StateError: 409,
    Unauthorized: 403,
}


def _error_body(exc: Exception) -> dict:
    messages = getattr(exc, "messages", None) or str(exc)
    return {"error": messages, "code": type(exc).__name__}


def register_error_handlers(app: FastAPI) -> None:
    register_exception_handlers(app)

    async def handle_domain_error(request: Request, exc: Exception) -> JSONResponse:
        status_code = next(_STATUS_CODES[cls] for cls in type(exc).__mro__ if cls in _STATUS_CODES)
        return JSONResponse(status_code=status_code, content=_error_body(exc))

    for exception_class in _STATUS_CODES:
        app.add_exception_handler(exception_class, handle_domain_error)
