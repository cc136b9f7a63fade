"""Middleware registration."""

from fastapi import FastAPI

from pruuf.config import Settings
from pruuf.middleware.cors import setup_cors
from pruuf.middleware.error_handler import setup_error_handlers
from pruuf.middleware.logging import setup_logging
from pruuf.middleware.request_id import RequestIdMiddleware


def setup_middleware(app: FastAPI, settings: Settings) -> None:
    """Register all middleware in the correct order.

    Starlette executes middleware in reverse-add order (last added = outermost),
    so CORS is added last to wrap error responses too.
    """
    setup_logging(settings)
    setup_error_handlers(app)
    app.add_middleware(RequestIdMiddleware)
    setup_cors(app, settings)
