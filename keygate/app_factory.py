"""FastAPI application factory."""

import logging
from contextlib import asynccontextmanager
from datetime import datetime
from typing import Callable, Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from .config import Settings, load_settings
from .engine import KeyLifecycleEngine
from .errors import KeyGateError, StorageError
from .keys import expiry_window, utcnow
from .middleware import BodySizeLimitMiddleware, LoggingMiddleware, UnhandledErrorMiddleware
from .monetizzy import MonetizzyGateway
from .routes import ENDPOINTS, router
from .store import KeyStore
from .sweeper import ExpirySweeper

logger = logging.getLogger(__name__)


def _error_response(request: Request, status_code: int, message: str, **extra) -> JSONResponse:
    """Error body in the shape the calling endpoint uses."""
    if request.url.path.rstrip("/") == "/validar":
        body = {"valid": False, "message": message}
    else:
        body = {"success": False, "error": message}
    body.update(extra)
    return JSONResponse(body, status_code=status_code)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Load keys and start the sweeper; on shutdown stop it and flush to disk."""
    settings: Settings = app.state.settings
    store: KeyStore = app.state.store
    sweeper: ExpirySweeper = app.state.sweeper

    try:
        store.load()
    except StorageError as e:
        if settings.storage_strict:
            logger.critical(f"{e}; refusing to start (STORAGE_STRICT)")
            raise
        logger.error(f"{e}; starting with an empty key list, the file will be overwritten")

    sweeper.start()
    logger.info("Key system started")

    yield

    logger.info("Shutting down key system...")
    await sweeper.stop()
    try:
        store.flush()
    except StorageError as e:
        logger.error(f"Final flush failed: {e}")


def create_app(
    settings: Optional[Settings] = None,
    store: Optional[KeyStore] = None,
    gateway: Optional[MonetizzyGateway] = None,
    clock: Callable[[], datetime] = utcnow,
) -> FastAPI:
    """Create and configure the FastAPI application.

    Args:
        settings: Configuration (loaded from the environment if omitted)
        store: Key store (built from ``settings.keys_file`` if omitted)
        gateway: Monetizzy client (built from settings if omitted)
        clock: Source of the current UTC time

    Returns:
        Configured FastAPI app
    """
    settings = settings or load_settings()
    store = store or KeyStore(settings.keys_file)
    gateway = gateway or MonetizzyGateway(
        token=settings.monetizzy_token,
        api_url=settings.monetizzy_api_url,
        domain=settings.monetizzy_domain,
        link_type=settings.monetizzy_link_type,
        timeout=settings.gateway_timeout_seconds,
    )
    expiry = expiry_window(settings.key_expiry_hours)

    app = FastAPI(
        title="Key System Monetizzy",
        description="Single-use keys gated behind Monetizzy short links",
        version="1.0.0",
        lifespan=lifespan,
    )

    app.state.settings = settings
    app.state.store = store
    app.state.gateway = gateway
    app.state.clock = clock
    app.state.engine = KeyLifecycleEngine(store, expiry=expiry, clock=clock)
    app.state.sweeper = ExpirySweeper(
        store, interval=settings.sweep_interval_seconds, expiry=expiry, clock=clock
    )

    async def unhandled_error(request: Request, exc: Exception) -> JSONResponse:
        logger.error(f"Unhandled error on {request.method} {request.url.path}", exc_info=exc)
        extra = {"details": repr(exc)} if settings.debug else {}
        return _error_response(request, 500, "Erro interno", **extra)

    # innermost, inside CORS, so 500 bodies carry CORS headers
    app.add_middleware(UnhandledErrorMiddleware, on_error=unhandled_error)
    app.add_middleware(BodySizeLimitMiddleware, max_bytes=settings.max_body_bytes)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.origin_list,
        allow_methods=["GET", "POST"],
        allow_headers=["*"],
    )
    app.add_middleware(LoggingMiddleware)

    @app.exception_handler(KeyGateError)
    async def keygate_error_handler(request: Request, exc: KeyGateError):
        if isinstance(exc, StorageError):
            logger.error(f"Storage failure on {request.url.path}: {exc.message}")
            extra = {"details": exc.message} if settings.debug else {}
            return _error_response(request, exc.status_code, StorageError.default_message, **extra)
        return _error_response(request, exc.status_code, exc.message)

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(request: Request, exc: RequestValidationError):
        return _error_response(request, 400, "Corpo da requisição inválido")

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException):
        if exc.status_code == 404:
            return JSONResponse(
                {"error": "Endpoint não encontrado", "endpoints": ENDPOINTS},
                status_code=404,
            )
        return JSONResponse({"error": exc.detail}, status_code=exc.status_code, headers=exc.headers)

    app.include_router(router)

    return app
