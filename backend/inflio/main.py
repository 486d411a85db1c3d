"""
FastAPI application entry point.
Configures the application with all routes, middleware, and lifecycle handlers.
"""

import uuid
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from inflio.api.v1.router import api_router
from inflio.api.v1.websocket import router as websocket_router
from inflio.config import settings
from inflio.database import close_db, init_db
from inflio.errors import AppError
from inflio.services.scheduler_service import start_scheduler, stop_scheduler
from inflio.utils.logging import bind_context, clear_context, configure_logging, get_logger

configure_logging()
logger = get_logger(__name__)

REQUEST_ID_HEADER = "X-Request-ID"


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan manager.

    - Startup: create tables in debug, start the publishing scheduler
    - Shutdown: stop the scheduler, close DB connections
    """
    logger.info("Starting application...", debug=settings.debug)

    # Production schemas are managed by migrations
    if settings.debug:
        await init_db()
        logger.info("Database tables ensured")

    if settings.enable_scheduler:
        await start_scheduler()

    logger.info("Application startup complete")

    yield

    logger.info("Shutting down application")
    if settings.enable_scheduler:
        await stop_scheduler()
    await close_db()
    logger.info("Database connection closed")


app = FastAPI(
    title=settings.app_name,
    description="Social publishing backend: post suggestions, staging and platform publishing",
    version="1.0.0",
    docs_url="/docs" if settings.debug else None,
    redoc_url="/redoc" if settings.debug else None,
    lifespan=lifespan,
)

app.include_router(api_router, prefix=settings.api_v1_prefix)
app.include_router(websocket_router)

# Middleware

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.middleware("http")
async def log_requests(request: Request, call_next):
    """
    Bind a ``request_id`` to every log event of the request.

    An incoming ``X-Request-ID`` header is reused; the id is echoed back.
    """
    request_id = request.headers.get(REQUEST_ID_HEADER) or uuid.uuid4().hex[:12]
    bind_context(request_id=request_id)

    logger.info("Request started", method=request.method, path=request.url.path)

    try:
        response = await call_next(request)
        logger.info(
            "Request completed",
            method=request.method,
            path=request.url.path,
            status_code=response.status_code,
        )
        response.headers[REQUEST_ID_HEADER] = request_id
        return response
    except Exception as e:
        logger.exception(
            "Request failed", method=request.method, path=request.url.path, error=str(e)
        )
        raise
    finally:
        clear_context()


# Root


@app.get("/", tags=["Root"])
async def root():
    """Root endpoint with API information."""
    return {
        "app": settings.app_name,
        "version": "1.0.0",
        "docs": "/docs" if settings.debug else "Disabled in production",
        "health": f"{settings.api_v1_prefix}/health",
    }


# Exception handlers


@app.exception_handler(AppError)
async def app_error_handler(request: Request, exc: AppError):
    """Application errors carry their own status and code."""
    log = logger.error if exc.status_code >= 500 else logger.warning
    log("Application error", code=exc.code, error=exc.message, path=request.url.path)
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


@app.exception_handler(ValueError)
async def value_error_handler(request: Request, exc: ValueError):
    """Handle validation errors with 400 response."""
    logger.warning("Validation error", error=str(exc), path=request.url.path)
    return JSONResponse(status_code=400, content={"detail": str(exc), "code": "VALIDATION_ERROR"})


@app.exception_handler(Exception)
async def general_exception_handler(request: Request, exc: Exception):
    """Handle unexpected errors with 500 response."""
    logger.exception("Unhandled exception", error=str(exc), path=request.url.path)

    if settings.debug:
        return JSONResponse(
            status_code=500,
            content={"detail": str(exc), "code": "INTERNAL_ERROR", "type": type(exc).__name__},
        )
    return JSONResponse(
        status_code=500, content={"detail": "Internal server error", "code": "INTERNAL_ERROR"}
    )
