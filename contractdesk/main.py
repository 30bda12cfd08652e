"""FastAPI application entrypoint. No business logic; only wiring, middleware, and error mapping."""

import logging

from dotenv import load_dotenv

load_dotenv()

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError

from contractdesk.api.deps import AppServices, build_limiters
from contractdesk.api.v1 import router as v1_router
from contractdesk.core.config import Settings, settings
from contractdesk.core.database import build_session_factory, engine
from contractdesk.core.rate_limit import RateLimitExceeded
from contractdesk.core.sessions import SessionStore

logger = logging.getLogger(__name__)

VALUE_ERROR_PREFIX = "Value error, "


def validation_message(exc: RequestValidationError) -> str:
    """Human-readable message from the first validation error, e.g. 'Validation error: ... at "password"'."""
    errors = exc.errors()
    if not errors:
        return "Validation error"
    first = errors[0]
    msg = str(first.get("msg", "Invalid value"))
    if msg.startswith(VALUE_ERROR_PREFIX):
        msg = msg[len(VALUE_ERROR_PREFIX):]
    # Integer parts are list indexes or, for JSON decode errors, character offsets.
    field = ".".join(
        str(part) for part in first.get("loc", ()) if part != "body" and not isinstance(part, int)
    )
    if field:
        return f'Validation error: {msg} at "{field}"'
    return f"Validation error: {msg}"


def create_app(
    app_settings: Settings | None = None,
    db_engine: Engine | None = None,
) -> FastAPI:
    """
    Build the application. Services (session store, rate limiters, DB session
    factory) are constructed here once and reached by handlers via app.state.
    """
    app_settings = app_settings or settings
    db_engine = db_engine or engine
    session_factory = build_session_factory(db_engine)
    login_limiter, register_limiter = build_limiters(app_settings)

    app = FastAPI(
        title="Contract Desk API",
        version="0.1.0",
        docs_url="/docs" if app_settings.APP_ENV == "dev" else None,
        redoc_url="/redoc" if app_settings.APP_ENV == "dev" else None,
    )
    app.state.session_factory = session_factory
    app.state.services = AppServices(
        settings=app_settings,
        session_store=SessionStore(db_engine, session_factory),
        login_limiter=login_limiter,
        register_limiter=register_limiter,
    )

    origins = app_settings.cors_origins()
    if origins:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=origins,
            allow_credentials=True,
            allow_methods=["*"],
            allow_headers=["*"],
        )

    @app.exception_handler(RequestValidationError)
    async def handle_validation_error(request: Request, exc: RequestValidationError) -> JSONResponse:
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content={"detail": validation_message(exc)},
        )

    @app.exception_handler(RateLimitExceeded)
    async def handle_rate_limit(request: Request, exc: RateLimitExceeded) -> JSONResponse:
        logger.warning(
            "Rate limit exceeded",
            extra={"path": request.url.path, "retry_after": exc.retry_after},
        )
        return JSONResponse(
            status_code=status.HTTP_429_TOO_MANY_REQUESTS,
            content={"detail": exc.message, "retry_after": exc.retry_after},
            headers={
                "Retry-After": str(exc.retry_after),
                "RateLimit-Limit": str(exc.limit),
                "RateLimit-Remaining": "0",
                "RateLimit-Reset": str(exc.reset_after),
            },
        )

    @app.exception_handler(SQLAlchemyError)
    async def handle_database_error(request: Request, exc: SQLAlchemyError) -> JSONResponse:
        logger.error(
            "Database error while handling request",
            exc_info=exc,
            extra={"path": request.url.path, "method": request.method},
        )
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"detail": "Internal server error"},
        )

    @app.exception_handler(Exception)
    async def handle_unexpected_error(request: Request, exc: Exception) -> JSONResponse:
        logger.error(
            "Unhandled error while handling request",
            exc_info=exc,
            extra={"path": request.url.path, "method": request.method},
        )
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"detail": "Internal server error"},
        )

    app.include_router(v1_router, prefix=app_settings.API_V1_PREFIX)

    @app.get("/")
    def root() -> dict[str, str]:
        """Root route; minimal payload for discovery."""
        return {"message": "Contract Desk API"}

    return app


app = create_app()
