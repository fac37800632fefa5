"""Render errors as ``{"error": <localized message>}``."""

import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from bazaar.errors import MarketplaceError
from bazaar.i18n.resolver import error_response

logger = logging.getLogger(__name__)


async def marketplace_error_handler(request: Request, exc: MarketplaceError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc.message_key} ({exc.detail})")
    else:
        logger.info(f"{request.method} {request.url.path} -> {exc.status_code} {exc.message_key}")
    return JSONResponse(status_code=exc.status_code, content=error_response(request, exc.message_key))


async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    logger.info(f"{request.method} {request.url.path} -> 400 invalid payload: {exc.errors()}")
    return JSONResponse(status_code=400, content=error_response(request, "INVALID_DATA"))


async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception(f"Unhandled error on {request.method} {request.url.path}")
    return JSONResponse(status_code=500, content=error_response(request, "SERVER_ERROR"))


def register_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(MarketplaceError, marketplace_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)
