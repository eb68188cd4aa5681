"""
Entry point for the store hours backend.

This module creates the FastAPI application, includes all API routers and
registers the handlers that turn domain errors into HTTP responses. Run
with:

    uvicorn storehours.main:app --reload

"""

from __future__ import annotations

import logging
import os

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError

from .api import api_router
from .core.config import get_app_env, settings
from .core.db import engine
from .core.errors import ForbiddenError, NotFoundError, ValidationError, log_exception
from .core.logging_config import setup_logging
from .models import Base
from .scripts.run_migrations import run_migrations_to_head


logger = logging.getLogger("store_hours.api")


def _flag(name: str, default: str) -> bool:
    return os.getenv(name, default).lower() in {"1", "true", "yes"}


def _register_error_handlers(app: FastAPI) -> None:
    @app.exception_handler(ValidationError)
    async def _validation_error(request: Request, exc: ValidationError) -> JSONResponse:
        return JSONResponse(status_code=400, content=exc.to_dict())

    @app.exception_handler(NotFoundError)
    async def _not_found(request: Request, exc: NotFoundError) -> JSONResponse:
        return JSONResponse(status_code=404, content=exc.to_dict())

    @app.exception_handler(ForbiddenError)
    async def _forbidden(request: Request, exc: ForbiddenError) -> JSONResponse:
        return JSONResponse(status_code=403, content=exc.to_dict())

    @app.exception_handler(SQLAlchemyError)
    async def _storage_error(request: Request, exc: SQLAlchemyError) -> JSONResponse:
        log_exception(logger, "Storage error", extra={"path": request.url.path}, exc=exc)
        return JSONResponse(status_code=500, content={"error": "Internal error"})


def create_app() -> FastAPI:
    app = FastAPI(title="Store Hours Backend", version="0.1.0")
    app.include_router(api_router)
    _register_error_handlers(app)

    # Ensure tables exist for local use
    @app.on_event("startup")
    def _init_db() -> None:
        setup_logging()
        startup_logger = logging.getLogger("startup")
        env = get_app_env()
        if settings.auto_create_db:
            try:
                Base.metadata.create_all(bind=engine)
            except Exception as exc:
                log_exception(startup_logger, "DB create_all failed", exc=exc)
                if env == "prod":
                    raise
        if _flag("AUTO_RUN_MIGRATIONS", "false"):
            try:
                run_migrations_to_head()
            except Exception as exc:
                log_exception(startup_logger, "DB migrations failed", exc=exc)
                if env == "prod":
                    raise
        startup_logger.info("Store hours backend started env=%s", env)

    return app


app = create_app()
