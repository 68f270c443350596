"""Middleware registration."""

from fastapi import FastAPI

from iplay.config import Settings
from iplay.middleware.cors import setup_cors
from iplay.middleware.error_handler import setup_error_handlers
from iplay.middleware.logging import setup_logging
from iplay.middleware.request_id import RequestIdMiddleware


def setup_middleware(app: FastAPI, settings: Settings) -> None:
    """Register all middleware in the correct order.

    Starlette executes middleware in reverse-add order (last added = outermost),
    so CORS is added last to wrap error responses.
    """
    setup_logging(settings)
    setup_error_handlers(app)
    app.add_middleware(RequestIdMiddleware)
    setup_cors(app, settings)
