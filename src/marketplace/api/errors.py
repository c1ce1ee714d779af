"""Translate domain exceptions into ``{"error": ...}`` JSON responses.

ValidationError and its subclasses become 400 (availability and stock errors
add their details next to the message), missing objects 404, access denied
403. Anything unexpected is logged with its traceback and answered with a
generic 500 so internals never reach the caller.
"""

import structlog
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from protean.exceptions import ObjectNotFoundError, ValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException

from marketplace.api.cookies import clear_guest_cart
from marketplace.shared.errors import AccessDeniedError, first_message

logger = structlog.get_logger(__name__)

_VALUE_ERROR_PREFIX = "Value error, "


def error_response(request: Request, status_code: int, message: str, **details) -> JSONResponse:
    response = JSONResponse(status_code=status_code, content={"error": message, **details})
    # Set by routes that consume the guest cart whatever the outcome.
    if getattr(request.state, "clear_guest_cart", False):
        clear_guest_cart(response)
    return response


async def validation_error_handler(request: Request, exc: ValidationError) -> JSONResponse:
    details = getattr(exc, "details", None) or {}
    logger.info("request_rejected", path=request.url.path, messages=exc.messages)
    return error_response(request, 400, first_message(exc), **details)


async def not_found_handler(request: Request, exc: ObjectNotFoundError) -> JSONResponse:
    return error_response(request, 404, first_message(exc))


async def access_denied_handler(request: Request, exc: AccessDeniedError) -> JSONResponse:
    return error_response(request, 403, first_message(exc))


async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    return error_response(request, exc.status_code, str(exc.detail))


async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    errors = exc.errors()
    message = errors[0]["msg"] if errors else "Invalid request"
    if message.startswith(_VALUE_ERROR_PREFIX):
        message = message[len(_VALUE_ERROR_PREFIX) :]
    logger.info("request_rejected", path=request.url.path, errors=len(errors))
    return error_response(request, 400, message)


async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("unhandled_error", path=request.url.path, method=request.method)
    return error_response(request, 500, "Internal server error")


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(ValidationError, validation_error_handler)
    app.add_exception_handler(ObjectNotFoundError, not_found_handler)
    app.add_exception_handler(AccessDeniedError, access_denied_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)
