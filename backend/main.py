from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy.exc import OperationalError as SAOperationalError
from sqlalchemy.orm import Session, sessionmaker
from starlette.responses import JSONResponse

from api.router import api_router
from core.bootstrap import bootstrap
from core.config import Settings, settings as default_settings
from core.database import (
    DatabaseUnavailableError,
    build_engine,
    build_session_factory,
    is_transient_db_connectivity_error,
    validate_db_connection,
)
from core.errors import SchedulingError, StorageError, ValidationError
from core.logging import setup_logging


logger = logging.getLogger(__name__)


_DB_UNAVAILABLE = {
    "code": "DATABASE_UNAVAILABLE",
    "message": "Database temporarily unavailable. Please retry.",
}


def create_app(
    settings: Settings | None = None,
    session_factory: sessionmaker[Session] | None = None,
) -> FastAPI:
    settings = settings or default_settings
    setup_logging(settings)
    is_production = settings.is_production

    if session_factory is None:
        session_factory = build_session_factory(build_engine(settings.database_url))

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        if settings.create_schema_on_startup:
            with session_factory() as db:
                bootstrap(db.get_bind(), db, settings)
        yield

    app = FastAPI(
        title="School Scheduling API",
        version="0.1.0",
        docs_url=None if is_production else "/docs",
        redoc_url=None if is_production else "/redoc",
        openapi_url=None if is_production else "/openapi.json",
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.session_factory = session_factory

    @app.exception_handler(StorageError)
    def _storage_error(_request, exc: StorageError):
        # Detail was logged where it happened; the caller gets an opaque message.
        logger.error("Storage error surfaced to client: %s", exc.code, exc_info=exc.__cause__)
        return JSONResponse(status_code=500, content=exc.to_dict())

    @app.exception_handler(SchedulingError)
    def _scheduling_error(_request, exc: SchedulingError):
        return JSONResponse(status_code=exc.status_code, content=exc.to_dict())

    @app.exception_handler(RequestValidationError)
    def _request_validation_error(_request, exc: RequestValidationError):
        # Same payload shape as service-level validation failures.
        errors = exc.errors()
        fields = [".".join(str(p) for p in err["loc"][1:]) or str(err["loc"][0]) for err in errors]
        message = "; ".join(f"{f}: {err['msg']}" for f, err in zip(fields, errors))
        error = ValidationError("VALIDATION_ERROR", message or "Invalid request")
        return JSONResponse(status_code=error.status_code, content={**error.to_dict(), "fields": fields})

    @app.exception_handler(DatabaseUnavailableError)
    def _db_unavailable(_request, exc: DatabaseUnavailableError):
        logger.warning("Database unavailable (503)", exc_info=exc)
        return JSONResponse(status_code=503, content=_DB_UNAVAILABLE)

    @app.exception_handler(SAOperationalError)
    def _sqlalchemy_operational_error(_request, exc: SAOperationalError):
        if is_transient_db_connectivity_error(exc):
            logger.warning("Database transient connectivity error (503)", exc_info=exc)
            return JSONResponse(status_code=503, content=_DB_UNAVAILABLE)
        logger.error("Database operation failed", exc_info=exc)
        return JSONResponse(
            status_code=500,
            content={
                "code": "DATABASE_ERROR",
                "message": "Database operation failed.",
            },
        )

    allow_origins = [settings.frontend_origin]
    allow_origin_regex = None
    if not is_production:
        # Dev-friendly: allow the configured origin and any localhost port.
        allow_origins.extend(["http://localhost:5173", "http://127.0.0.1:5173"])
        allow_origin_regex = r"^https?://(localhost|127\.0\.0\.1)(:\d+)?$"

    app.add_middleware(
        CORSMiddleware,
        allow_origins=allow_origins,
        allow_origin_regex=allow_origin_regex,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.get("/health")
    def health() -> dict:
        # Always respond; reflect DB availability without crashing.
        db_status = "ok"
        try:
            with session_factory() as db:
                validate_db_connection(db)
        except Exception:
            db_status = "down"

        return {"app": "ok", "database": db_status}

    app.include_router(api_router, prefix="/api")
    return app


app = create_app()
