"""
FastAPI application entry point for the content service.
"""

from __future__ import annotations

import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from pulpit.config import get_settings
from pulpit.errors import PulpitError
from pulpit.routes import router

logger = logging.getLogger(__name__)


def _handle_pulpit_error(request: Request, exc: PulpitError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc.detail)
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.detail})


def create_app() -> FastAPI:
    settings = get_settings()
    logging.basicConfig(
        level=settings.log_level,
        format="%(name)s %(levelname)s %(asctime)s %(message)s",
    )
    app = FastAPI(title="Pulpit Content Service", version="0.1.0")
    app.add_exception_handler(PulpitError, _handle_pulpit_error)
    app.include_router(router, prefix=settings.api_prefix)
    return app


app = create_app()
