"""
FastAPI application entry point for the duck facts service.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from duckfacts.config import get_settings
from duckfacts.dependencies import close_dependencies, get_db_client
from duckfacts.errors import DuckFactsError, StorageError
from duckfacts.routes import router

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    settings = get_settings()
    if not settings.api_key:
        raise RuntimeError("cannot start server without an API_KEY specified!")
    try:
        get_db_client()
    except StorageError:
        # Keep serving; store-backed routes answer 500 until the store opens.
        logger.exception("Failed to open fact store")
    logger.info("Duck facts server started!")
    yield
    close_dependencies()
    logger.info("Duck facts server stopped")


async def _validation_error_handler(request: Request, exc: RequestValidationError):
    logger.info("Rejected %s %s: %s", request.method, request.url.path, exc.errors())
    return JSONResponse(
        status_code=400, content={"detail": "must provide 'number' property!"}
    )


async def _service_error_handler(request: Request, exc: DuckFactsError):
    logger.error(
        "%s %s failed", request.method, request.url.path, exc_info=exc
    )
    return JSONResponse(status_code=500, content={"detail": "Internal Server Error"})


def create_app() -> FastAPI:
    settings = get_settings()
    app = FastAPI(title="Duck Facts", version="0.1.0", lifespan=lifespan)
    app.add_exception_handler(RequestValidationError, _validation_error_handler)
    app.add_exception_handler(DuckFactsError, _service_error_handler)
    app.include_router(router, prefix=settings.api_prefix)
    return app


app = create_app()
