# safestore_backend/app/main.py
from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import Optional

import uvicorn
from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from .core.config import Settings, settings as default_settings
from .crypto import engine_from_config
from .exceptions import SafeStoreError
from .routers import files as files_router
from .routers import health as health_router
from .storage import StorageDirectory

logger = logging.getLogger("safestore.main")
logger.setLevel(logging.INFO)


def _error(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"success": False, "error": message})


def _register_error_handlers(app: FastAPI) -> None:
    @app.exception_handler(SafeStoreError)
    async def safestore_error_handler(request: Request, exc: SafeStoreError):
        if exc.status_code >= 500:
            logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
        return _error(exc.status_code, exc.message)

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(request: Request, exc: RequestValidationError):
        return _error(status.HTTP_400_BAD_REQUEST, "Invalid request")

    @app.exception_handler(StarletteHTTPException)
    async def http_error_handler(request: Request, exc: StarletteHTTPException):
        return _error(exc.status_code, str(exc.detail))

    # catch-all: never leak paths or key material
    @app.exception_handler(Exception)
    async def unhandled_error_handler(request: Request, exc: Exception):
        logger.exception("Server error on %s %s", request.method, request.url.path)
        return _error(status.HTTP_500_INTERNAL_SERVER_ERROR, "Internal server error")


def create_app(app_settings: Optional[Settings] = None) -> FastAPI:
    """
    Build the API. Nothing touches the disk or the key here: the encryption
    engine and storage directory are created once at startup and shared by
    every request through ``app.state``.
    """
    cfg = app_settings or default_settings

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info(">>>> SAFESTORE STARTUP (max upload %d bytes)", cfg.MAX_UPLOAD_BYTES)
        storage = StorageDirectory(
            root=cfg.UPLOAD_DIR,
            engine=engine_from_config(cfg.ENCRYPTION_KEY),
            max_upload_bytes=cfg.MAX_UPLOAD_BYTES,
        )
        storage.ensure()
        app.state.storage = storage
        yield
        logger.info(">>>> SAFESTORE SHUTDOWN")

    app = FastAPI(title="SafeStore API", version="0.1.0", lifespan=lifespan)
    app.state.settings = cfg

    # --- CORS ---
    app.add_middleware(
        CORSMiddleware,
        allow_origins=cfg.CORS_ALLOW_ORIGINS,
        allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
        allow_headers=["Origin", "X-Requested-With", "Content-Type", "Accept"],
    )

    _register_error_handlers(app)

    app.include_router(files_router.router)
    app.include_router(health_router.router)
    return app


def configure_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, level, logging.INFO),
        format="%(asctime)s - %(name)s - [%(levelname)s] - %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )


app = create_app()


def run() -> None:
    """Console entry point: serve the default app with uvicorn."""
    configure_logging(default_settings.LOG_LEVEL)
    logger.info("Server running on port %s", default_settings.PORT)
    logger.info("Upload directory: %s", default_settings.UPLOAD_DIR)
    uvicorn.run(app, host=default_settings.HOST, port=default_settings.PORT)


if __name__ == "__main__":
    run()
