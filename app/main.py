# app/main.py
from __future__ import annotations

# Load .env early so settings see it everywhere
from dotenv import load_dotenv
load_dotenv()

from typing import Optional

import sqlalchemy as sa
from fastapi import FastAPI, Depends, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import Settings, get_settings
from app.core.errors import AppError, ErrorSeverity, log_error
from app.core.logging import setup_logging, LoggingMiddleware, get_logger
from app.api.auth import TokenVerifier
from app.db.base import init_db
from app.db.session import build_engine, build_session_factory, get_session

# Routers
from app.api.routes.appointments import router as appointments_router
from app.api.routes.therapies import router as therapies_router
from app.api.routes.users import router as users_router

logger = get_logger(__name__)


def _field_errors(exc: RequestValidationError) -> list[dict]:
    fields = []
    for err in exc.errors():
        loc = [str(part) for part in err.get("loc", ()) if part not in ("body", "query", "path")]
        fields.append({"field": ".".join(loc), "message": err.get("msg", "")})
    return fields


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    """
    Build the API with explicit configuration.

    The engine, session factory and token verifier all come from ``settings``
    and live on ``app.state``; nothing reads process-wide secrets.
    """
    settings = settings or get_settings()

    setup_logging(
        debug=settings.is_development,
        max_log_length=settings.MAX_LOG_LENGTH,
        level=settings.LOG_LEVEL,
    )

    app = FastAPI(title="Therapy Booking API", description="Appointment booking for therapy sessions")

    engine = build_engine(settings)
    app.state.settings = settings
    app.state.engine = engine
    app.state.session_factory = build_session_factory(engine)
    app.state.token_verifier = TokenVerifier(settings.JWT_SECRET, settings.JWT_ALGORITHM)
    if not settings.JWT_SECRET:
        logger.warning("jwt_secret_missing", detail="authenticated routes will answer 500")

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.allowed_origins_list,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.middleware("http")(LoggingMiddleware(
        log_requests=settings.LOG_REQUESTS or settings.is_development,
        log_responses=settings.LOG_RESPONSES or settings.is_development,
        slow_threshold=settings.SLOW_REQUEST_THRESHOLD,
    ))

    # -------- Error mapping (single place) --------
    @app.exception_handler(AppError)
    async def app_error_handler(request: Request, exc: AppError):
        log_error(exc, {"endpoint": request.url.path, "method": request.method})
        return JSONResponse(exc.to_dict(), status_code=exc.status_code)

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError):
        fields = _field_errors(exc)
        log_error(exc, {"endpoint": request.url.path, "fields": [f["field"] for f in fields]},
                  ErrorSeverity.LOW)
        return JSONResponse(
            {"detail": "Request validation failed", "error": "BadRequest", "fields": fields},
            status_code=400,
        )

    # -------- Health / readiness (public) --------
    @app.get("/healthz", include_in_schema=False)
    async def healthz():
        return {"ok": True}

    @app.get("/readyz", include_in_schema=False)
    async def readyz(db: AsyncSession = Depends(get_session)):
        await db.execute(sa.text("SELECT 1"))
        return {"db": "ok"}

    # -------- Include routers --------
    app.include_router(appointments_router)
    app.include_router(therapies_router)
    app.include_router(users_router)

    # -------- Application startup/shutdown events --------
    @app.on_event("startup")
    async def startup_event():
        logger.info("application_startup", env=settings.APP_ENV)
        if settings.CREATE_TABLES_ON_STARTUP:
            await init_db(engine)
            logger.info("database_tables_created")

    @app.on_event("shutdown")
    async def shutdown_event():
        logger.info("application_shutdown")
        await engine.dispose()

    return app


app = create_app()
