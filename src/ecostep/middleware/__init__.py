"""Middleware registration."""

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from ecostep.config import Settings
from ecostep.middleware.error_handler import setup_error_handlers
from ecostep.middleware.logging import setup_logging
from ecostep.middleware.request_id import HEADER as REQUEST_ID_HEADER
from ecostep.middleware.request_id import RequestIdMiddleware
from ecostep.middleware.timeout import TimeoutMiddleware


def setup_middleware(app: FastAPI, settings: Settings) -> None:
    """Register logging, error handlers and the middleware stack.

    Starlette runs middleware in reverse-add order. The request id is bound
    before the timeout starts, and CORS wraps everything so 504s and error
    responses still carry CORS headers.
    """
    setup_logging(settings)
    setup_error_handlers(app)
    app.add_middleware(TimeoutMiddleware, timeout_seconds=settings.request_timeout_seconds)
    app.add_middleware(RequestIdMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "OPTIONS"],
        allow_headers=["*"],
        expose_headers=[REQUEST_ID_HEADER],
    )
