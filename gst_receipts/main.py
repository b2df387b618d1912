# main.py

"""FastAPI application exposing the receipt engine."""

from __future__ import annotations

import logging

from fastapi import FastAPI, Request, Response
from fastapi.responses import JSONResponse
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest

from .config import get_settings
from .errors import ReceiptError, ValidationError
from .middlewares.request_id import RequestIdMiddleware
from .obs.logging import configure_logging
from .routes_receipts import router as receipts_router
from .utils.responses import err, error_response

logger = logging.getLogger("gst_receipts.api")


async def validation_error_handler(request: Request, exc: ValidationError):
    logger.info("rejected %s: %s", request.url.path, exc)
    return error_response(exc, 422)


async def receipt_error_handler(request: Request, exc: ReceiptError):
    logger.warning("receipt error on %s: %s", request.url.path, exc)
    return error_response(exc, 400)


async def general_error_handler(request: Request, exc: Exception):
    logger.exception("unhandled error on %s", request.url.path)
    return JSONResponse(err(500, "Internal Server Error"), status_code=500)


def create_app(*, configure_logs: bool = True) -> FastAPI:
    """Build the API app; ``app.state.transports`` may hold transport overrides."""
    settings = get_settings()
    if configure_logs:
        configure_logging(settings.log_level.upper())

    app = FastAPI(title="GST Receipts")
    app.state.transports = None
    app.add_middleware(RequestIdMiddleware)
    app.add_exception_handler(ValidationError, validation_error_handler)
    app.add_exception_handler(ReceiptError, receipt_error_handler)
    app.add_exception_handler(Exception, general_error_handler)
    app.include_router(receipts_router)

    @app.get("/metrics", include_in_schema=False)
    def metrics() -> Response:
        return Response(generate_latest(), media_type=CONTENT_TYPE_LATEST)

    return app
