from __future__ import annotations

import logging

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from omnichat.services.errors import (
    ConversationError,
    ConversationNotFoundError,
    InsufficientStockError,
)

logger = logging.getLogger(__name__)


def _message_response(status_code: int, message: str, headers: dict | None = None) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"message": message}, headers=headers)


async def _http_exception_handler(_: Request, exc: StarletteHTTPException) -> JSONResponse:
    detail = exc.detail if isinstance(exc.detail, str) else str(exc.detail)
    return _message_response(exc.status_code, detail, getattr(exc, "headers", None))


async def _validation_exception_handler(_: Request, exc: RequestValidationError) -> JSONResponse:
    errors = exc.errors()
    first = errors[0] if errors else {}
    location = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
    message = first.get("msg", "Invalid request")
    if location:
        message = f"{location}: {message}"
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={"message": message, "errors": jsonable_errors(errors)},
    )


async def _conversation_error_handler(_: Request, exc: ConversationError) -> JSONResponse:
    status_code = 404 if isinstance(exc, ConversationNotFoundError) else 400
    return _message_response(status_code, str(exc))


async def _insufficient_stock_handler(_: Request, exc: InsufficientStockError) -> JSONResponse:
    return _message_response(status.HTTP_400_BAD_REQUEST, str(exc))


def jsonable_errors(errors: list) -> list[dict]:
    return [
        {"loc": [str(part) for part in error.get("loc", ())], "msg": str(error.get("msg", ""))}
        for error in errors
    ]


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(StarletteHTTPException, _http_exception_handler)
    app.add_exception_handler(RequestValidationError, _validation_exception_handler)
    app.add_exception_handler(ConversationError, _conversation_error_handler)
    app.add_exception_handler(InsufficientStockError, _insufficient_stock_handler)
