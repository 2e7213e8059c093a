"""
Exception handlers.

Every engine failure is rendered as ``{"kind": ..., "detail": ...}`` with
the status code the error class declares.
"""

import logging

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from fleetride.domain.errors import RideEngineError

logger = logging.getLogger(__name__)


async def ride_engine_error_handler(request: Request, exc: RideEngineError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.warning("%s %s failed: %s", request.method, request.url.path, exc.message)
    return JSONResponse(
        status_code=exc.status_code,
        content={"kind": exc.kind, "detail": exc.message},
    )


async def request_validation_error_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    return JSONResponse(
        status_code=422,
        content={"kind": "validation_error", "detail": jsonable_encoder(exc.errors())},
    )


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(RideEngineError, ride_engine_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_error_handler)
