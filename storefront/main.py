"""Storefront orders API built with FastAPI.

This module assembles the application: JSON logging, request-id and body
size middleware, the orders and monitoring routers, and error handlers
that keep every error body in the ``{"detail": CODE, ...}`` shape.
Run it with ``storefront-api`` (see ``storefront.server``).
"""

import logging
import time
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.exc import OperationalError
from starlette.exceptions import HTTPException as StarletteHTTPException

from . import db
from .config import get_settings
from .gateway.logging_filters import configure_logging
from .gateway.middleware import add_request_id, limit_api_body_size
from .monitoring.api import router as monitoring_router
from .orders.views import router as orders_router

logger = logging.getLogger("storefront")


def wait_for_db(timeout: float) -> None:
    """Block until the database accepts connections or ``timeout`` elapses."""
    deadline = time.monotonic() + timeout
    while True:
        try:
            db.ping()
            return
        except OperationalError:
            if time.monotonic() > deadline:
                raise
            logger.info("database not ready, retrying")
            time.sleep(1)


@asynccontextmanager
async def lifespan(_app: FastAPI):
    wait_for_db(get_settings().db_startup_timeout)
    db.init_db()
    yield


async def validation_exception_handler(_request: Request, exc: RequestValidationError):
    fields = {}
    for err in exc.errors():
        key = ".".join(str(part) for part in err["loc"][1:]) or str(err["loc"][0])
        fields.setdefault(key, []).append(err["msg"])
    return JSONResponse(
        {"detail": "VALIDATION_ERROR", "message": "Malformed request", "fields": fields},
        status_code=400,
    )


async def http_exception_handler(_request: Request, exc: StarletteHTTPException):
    if exc.status_code == 404:
        return JSONResponse({"detail": "NOT_FOUND", "message": "Not found"}, status_code=404)
    message = str(exc.detail)
    code = message.upper().replace(" ", "_")
    return JSONResponse({"detail": code, "message": message}, status_code=exc.status_code)


def create_app(*, run_startup: bool = True) -> FastAPI:
    """Build the FastAPI application.

    Args:
        run_startup: When False the lifespan hook (wait for the database and
            create tables) is skipped; tests prepare their own database.
    """
    settings = get_settings()
    configure_logging(settings.log_level)

    app = FastAPI(title="Storefront Orders API", lifespan=lifespan if run_startup else None)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.middleware("http")(limit_api_body_size)
    app.middleware("http")(add_request_id)

    app.include_router(monitoring_router)
    app.include_router(orders_router)
    return app


app = create_app()
