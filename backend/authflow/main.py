import asyncio
import logging
import time
import traceback
from contextlib import asynccontextmanager, suppress
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy import text
from sqlalchemy.engine import Engine

from .config import Settings
from .database import build_engine, build_session_factory, create_tables, utcnow
from .email import Mailer, ResendMailer
from .errors import AuthError, ValidationFailed
from .logging_config import setup_logging
from .password_reset import reap_expired
from .routers import auth
from .security import BcryptHasher
from .store import CredentialStore
from .tokens import TokenService

logger = logging.getLogger(__name__)

GENERIC_ERROR_MESSAGE = "Something went very wrong!"


def _error_body(exc: AuthError) -> dict:
    body = {"status": exc.status, "message": exc.message, "code": exc.error_code}
    if isinstance(exc, ValidationFailed):
        body["validation_errors"] = exc.validation_errors
    return body


def _validation_errors(exc: RequestValidationError) -> list:
    errors = []
    for error in exc.errors():
        # loc looks like ("body", "email"); drop the "body" prefix
        loc = [str(part) for part in error.get("loc", ()) if part != "body"]
        errors.append({"field": ".".join(loc), "message": error.get("msg", "Invalid value")})
    return errors


def register_exception_handlers(app: FastAPI, settings: Settings) -> None:

    @app.exception_handler(AuthError)
    async def handle_auth_error(request: Request, exc: AuthError):
        if exc.is_operational:
            return JSONResponse(status_code=exc.status_code, content=_error_body(exc))
        return await handle_unexpected(request, exc)

    @app.exception_handler(RequestValidationError)
    async def handle_validation_error(request: Request, exc: RequestValidationError):
        error = ValidationFailed(validation_errors=_validation_errors(exc))
        return JSONResponse(status_code=error.status_code, content=_error_body(error))

    @app.exception_handler(Exception)
    async def handle_unexpected(request: Request, exc: Exception):
        logger.exception(f"Unhandled error on {request.method} {request.url.path}")
        content = {"status": "error", "message": GENERIC_ERROR_MESSAGE}
        if not settings.is_production:
            content["error"] = repr(exc)
            content["stack"] = traceback.format_exception(type(exc), exc, exc.__traceback__)
        return JSONResponse(status_code=500, content=content)


def reap_once(session_factory) -> int:
    db = session_factory()
    try:
        return reap_expired(CredentialStore(db), utcnow())
    finally:
        db.close()


async def reap_periodically(session_factory, interval: int):
    """Background task: delete expired OTPs and reset tokens"""
    while True:
        await asyncio.sleep(interval)
        try:
            # Session work blocks, so keep it off the event loop
            removed = await asyncio.to_thread(reap_once, session_factory)
            if removed > 0:
                logger.info(f"Reaped {removed} expired verification/reset row(s)")
        except Exception as e:
            logger.error(f"Error in expiry reaper: {e}")


def create_app(
    settings: Optional[Settings] = None,
    engine: Optional[Engine] = None,
    mailer: Optional[Mailer] = None,
) -> FastAPI:
    settings = settings or Settings.from_env()
    setup_logging(settings)
    engine = engine or build_engine(settings.database_url)
    mailer = mailer or ResendMailer(settings.resend_api_key, settings.app_name, settings.from_email)

    # Create database tables
    create_tables(engine)

    @asynccontextmanager
    async def lifespan(app):
        reaper_task = None
        if settings.reaper_interval_seconds > 0:
            logger.info("Starting expiry reaper")
            reaper_task = asyncio.create_task(
                reap_periodically(app.state.session_factory, settings.reaper_interval_seconds)
            )
        yield
        logger.info("Shutting down")
        if reaper_task:
            reaper_task.cancel()
            with suppress(asyncio.CancelledError):
                await reaper_task
        engine.dispose()

    app = FastAPI(
        title=f"{settings.app_name} Auth API",
        lifespan=lifespan,
        docs_url=None if settings.is_production else "/docs",
        redoc_url=None if settings.is_production else "/redoc",
        openapi_url=None if settings.is_production else "/openapi.json",
    )

    app.state.settings = settings
    app.state.engine = engine
    app.state.session_factory = build_session_factory(engine)
    app.state.tokens = TokenService(settings.secret_key, settings.access_token_ttl, settings.refresh_token_ttl)
    app.state.hasher = BcryptHasher(settings.bcrypt_rounds)
    app.state.mailer = mailer

    register_exception_handlers(app, settings)

    # Security headers middleware
    @app.middleware("http")
    async def add_security_headers(request: Request, call_next):
        response = await call_next(request)
        response.headers["X-Content-Type-Options"] = "nosniff"
        response.headers["X-Frame-Options"] = "DENY"
        response.headers["Referrer-Policy"] = "strict-origin-when-cross-origin"
        if request.headers.get("x-forwarded-proto") == "https":
            response.headers["Strict-Transport-Security"] = "max-age=31536000; includeSubDomains"
        return response

    if not settings.is_production:
        @app.middleware("http")
        async def log_requests(request: Request, call_next):
            start = time.perf_counter()
            response = await call_next(request)
            elapsed_ms = (time.perf_counter() - start) * 1000
            logger.info(f"{request.method} {request.url.path} {response.status_code} {elapsed_ms:.1f}ms")
            return response

    # Request size limit middleware
    @app.middleware("http")
    async def limit_request_size(request: Request, call_next):
        if request.method in ("POST", "PUT", "PATCH"):
            content_length = request.headers.get("content-length")
            try:
                if content_length and int(content_length) > 1_048_576:  # 1MB
                    return JSONResponse(status_code=413, content={"status": "fail", "message": "Request body too large"})
            except ValueError:
                return JSONResponse(status_code=400, content={"status": "fail", "message": "Invalid Content-Length header"})
        return await call_next(request)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.allowed_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(auth.router, prefix="/api", tags=["auth"])

    @app.get("/api/health")
    def health_check():
        try:
            db = app.state.session_factory()
            try:
                db.execute(text("SELECT 1"))
            finally:
                db.close()
            return {"status": "healthy", "database": "connected"}
        except Exception:
            logger.exception("Health check failed")
            return JSONResponse(status_code=503, content={"status": "unhealthy", "database": "unreachable"})

    return app


def main():
    """Entry point for ``authflow-server``."""
    import uvicorn

    settings = Settings.from_env()
    uvicorn.run(create_app(settings), host="0.0.0.0", port=8000)
