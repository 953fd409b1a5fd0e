"""
Unisocial FastAPI Application Entry Point

This module initializes and configures the FastAPI application with all routes,
middleware, exception handlers and the background scheduler.
"""

import asyncio
import time
from contextlib import asynccontextmanager, suppress
from pathlib import Path
from typing import AsyncGenerator

import structlog
from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles

from unisocial import __description__, __version__
from unisocial.api import ai, auth, media, oauth, posts, social, subscription
from unisocial.config.database import close_db, init_db
from unisocial.config.i18n import detect_language, t
from unisocial.config.settings import get_settings
from unisocial.services.scheduler import BackgroundScheduler
from unisocial.utils.error_handling import UnisocialError
from unisocial.utils.logger import log_api_response, setup_logging


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan manager for startup and shutdown events."""
    # Startup
    setup_logging()
    settings = get_settings()
    logger = structlog.get_logger(__name__)
    logger.info("Unisocial application starting up", environment=settings.environment)

    await init_db()

    scheduler_task = None
    if settings.enable_scheduler:
        scheduler = BackgroundScheduler()
        app.state.scheduler = scheduler
        scheduler_task = asyncio.create_task(scheduler.start())

    yield

    # Shutdown
    logger.info("Unisocial application shutting down")
    if scheduler_task is not None:
        await app.state.scheduler.stop()
        scheduler_task.cancel()
        with suppress(asyncio.CancelledError):
            await scheduler_task
    await close_db()


def _lang(request: Request) -> str:
    return getattr(request.state, "lang", None) or detect_language(
        request.query_params.get("lang"),
        request.headers.get("x-language"),
        request.headers.get("accept-language"),
    )


def create_application() -> FastAPI:
    """Create and configure the FastAPI application."""
    settings = get_settings()

    app = FastAPI(
        title="Unisocial API",
        description=__description__,
        version=__version__,
        docs_url="/docs" if settings.is_development else None,
        redoc_url="/redoc" if settings.is_development else None,
        lifespan=lifespan,
    )

    @app.middleware("http")
    async def monitor_requests(request: Request, call_next):
        start_time = time.time()
        request.state.lang = _lang(request)

        response = await call_next(request)

        process_time = time.time() - start_time
        log_api_response(
            method=request.method,
            path=request.url.path,
            status_code=response.status_code,
            duration_ms=round(process_time * 1000, 2),
        )

        response.headers["X-Process-Time"] = str(process_time)
        response.headers["Content-Language"] = request.state.lang
        return response

    # Configure CORS
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.allowed_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=["X-Usage-Used", "X-Usage-Limit", "X-Usage-Remaining", "Content-Language"],
    )

    @app.exception_handler(UnisocialError)
    async def unisocial_error_handler(request: Request, exc: UnisocialError):
        logger = structlog.get_logger(__name__)
        log = logger.error if exc.status_code >= 500 else logger.info
        log(
            "Request failed",
            path=request.url.path,
            method=request.method,
            status_code=exc.status_code,
            message_key=exc.message_key,
            error=str(exc),
        )
        headers = {"WWW-Authenticate": "Bearer"} if exc.status_code == 401 else None
        return JSONResponse(
            status_code=exc.status_code,
            content=jsonable_encoder(exc.to_response(_lang(request))),
            headers=headers,
        )

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError):
        return JSONResponse(
            status_code=400,
            content={
                "error": t(_lang(request), "error_validation"),
                "details": jsonable_encoder(exc.errors()),
            },
        )

    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception):
        """Global exception handler for unhandled errors."""
        logger = structlog.get_logger(__name__)
        logger.error(
            "Unhandled exception occurred",
            path=request.url.path,
            method=request.method,
            error=str(exc),
            exc_info=True
        )
        return JSONResponse(
            status_code=500,
            content={"error": t(_lang(request), "error_server")},
        )

    # Auth first so its fixed paths win over the OAuth /{provider} routes
    app.include_router(auth.router, prefix="/api/auth", tags=["authentication"])
    app.include_router(oauth.router, prefix="/api/auth", tags=["oauth"])
    app.include_router(social.router, prefix="/api/social", tags=["social"])
    app.include_router(posts.router, prefix="/api/posts", tags=["posts"])
    app.include_router(ai.router, prefix="/api/ai", tags=["ai"])
    app.include_router(subscription.router, prefix="/api/subscription", tags=["subscription"])
    app.include_router(media.router, prefix="/api", tags=["media"])

    upload_dir = Path(settings.upload_dir)
    upload_dir.mkdir(parents=True, exist_ok=True)
    app.mount("/uploads", StaticFiles(directory=str(upload_dir)), name="uploads")

    return app


# Create the application instance
app = create_application()


@app.get("/")
async def root():
    """Root endpoint with basic application information."""
    return {
        "name": "Unisocial API",
        "version": __version__,
        "description": __description__,
        "status": "operational"
    }


if __name__ == "__main__":
    import uvicorn

    settings = get_settings()
    uvicorn.run(
        "unisocial.main:app",
        host="0.0.0.0",
        port=3001,
        reload=settings.is_development,
        log_level=settings.log_level.lower()
    )
