"""
Bulletin service - user accounts and messages behind bearer-token auth
"""
from contextlib import asynccontextmanager
from datetime import datetime, timedelta
from typing import Optional
import logging
import threading

from fastapi import FastAPI, Request, status
from fastapi.concurrency import run_in_threadpool
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError

from .accounts import provision_seed_accounts
from .auth import LegacyPlaintextFallback, PasswordHasher, TokenService
from .config import Settings, settings as default_settings
from .db import build_engine, build_session_factory, init_db
from .errors import ServiceError
from .routes import health, messages, users
from .utils.event_logger import configure_logging

logger = logging.getLogger(__name__)

SERVICE_NAME = "Bulletin API"


def ensure_initialized(app: FastAPI) -> None:
    """
    Create tables and provision seed accounts once per process.

    Safe to call from every request: a process-local flag short-circuits
    later calls, and racing instances are reconciled by the unique email
    index during seeding.
    """
    if app.state.initialized:
        return

    with app.state.init_lock:
        if app.state.initialized:
            return

        logger.info("Connecting to database...")
        init_db(app.state.engine)
        provision_seed_accounts(
            app.state.session_factory,
            app.state.hasher,
            app.state.settings.SEED_ACCOUNTS,
        )
        app.state.initialized = True
        logger.info("Initialization complete")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Initialize database and seed accounts before accepting traffic"""
    await run_in_threadpool(ensure_initialized, app)
    yield
    app.state.engine.dispose()


def _check_secret(settings: Settings) -> None:
    if not settings.uses_insecure_secret:
        return
    if settings.is_production:
        raise RuntimeError("JWT_SECRET must be set in production; refusing to start with the default secret")
    logger.warning("JWT_SECRET is not set; using the insecure development default")


def _register_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(ServiceError)
    async def service_error_handler(_request: Request, exc: ServiceError):
        return JSONResponse(
            status_code=exc.status_code,
            content={"detail": exc.message},
            headers=exc.headers,
        )

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(_request: Request, exc: RequestValidationError):
        # Malformed input is reported as 400 like missing fields
        logger.info("Rejected malformed request: %s", [error["loc"] for error in exc.errors()])
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content={"detail": "Invalid request."},
        )

    @app.exception_handler(SQLAlchemyError)
    async def store_error_handler(request: Request, exc: SQLAlchemyError):
        logger.error("Unhandled database error on %s %s", request.method, request.url.path, exc_info=exc)
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"detail": "Internal server error."},
        )

    @app.exception_handler(Exception)
    async def unexpected_error_handler(request: Request, exc: Exception):
        logger.error("Unhandled error on %s %s", request.method, request.url.path, exc_info=exc)
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"detail": "Internal server error."},
        )


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    """
    Build the application from explicit settings.

    The engine, session factory, password hasher and token service are
    created here and kept on ``app.state``; nothing else is global.
    """
    settings = settings or default_settings
    _check_secret(settings)

    app = FastAPI(
        title=SERVICE_NAME,
        description="User accounts and bulletin messages",
        version="1.0.0",
        lifespan=lifespan
    )

    engine = build_engine(settings)
    app.state.settings = settings
    app.state.engine = engine
    app.state.session_factory = build_session_factory(engine)
    app.state.hasher = PasswordHasher(LegacyPlaintextFallback(enabled=settings.LEGACY_PLAINTEXT_PASSWORDS))
    app.state.tokens = TokenService(
        settings.JWT_SECRET,
        ttl=timedelta(hours=settings.TOKEN_TTL_HOURS),
        algorithm=settings.JWT_ALGORITHM,
    )
    app.state.initialized = False
    app.state.init_lock = threading.Lock()

    if settings.LEGACY_PLAINTEXT_PASSWORDS:
        logger.warning("Legacy plaintext password fallback is enabled")

    # Configure CORS
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    if settings.SERVERLESS:
        # Cold-started instances may receive a request before (or without)
        # the lifespan hook running
        @app.middleware("http")
        async def initialize_on_request(request: Request, call_next):
            if not app.state.initialized:
                await run_in_threadpool(ensure_initialized, app)
            return await call_next(request)

    _register_exception_handlers(app)

    @app.get("/")
    def root():
        """Service banner"""
        return {
            "message": f"{SERVICE_NAME} is running!",
            "environment": settings.APP_ENV,
            "timestamp": datetime.utcnow().isoformat(),
            "database": engine.dialect.name
        }

    app.include_router(users.router)
    app.include_router(messages.router)
    app.include_router(health.router)

    return app


configure_logging(default_settings)
app = create_app()


def run() -> None:
    """Console entry point: serve the app with uvicorn on PORT."""
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=default_settings.PORT)
