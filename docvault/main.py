"""
FastAPI Application Entry Point
Main application with all routes and middleware
"""

import time
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import JSONResponse, Response
from prometheus_client import CONTENT_TYPE_LATEST
from starlette.exceptions import HTTPException as StarletteHTTPException

from docvault.api.v1 import router as api_v1_router
from docvault.core.config import settings
from docvault.core.exceptions import AppException
from docvault.core.logging import get_logger, setup_logging
from docvault.models.common import ErrorDetail, ErrorResponse, HealthResponse
from docvault.monitoring import get_metrics, record_request

# Setup logging
setup_logging()
logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator:
    """Application lifespan management"""
    logger.info("Starting DocVault...")
    logger.info(f"Environment: {settings.ENVIRONMENT}")
    logger.info(f"Debug: {settings.DEBUG}")

    from docvault.db.session import close_db, init_db
    from docvault.storage.client import init_minio

    # The database is required; the content store is not
    await init_db()

    try:
        await init_minio()
    except AppException as e:
        logger.warning(f"Content store unavailable, uploads will be local-only: {e.message}")

    logger.info("Services initialized")

    yield

    logger.info("Shutting down...")
    await close_db()
    logger.info("Shutdown complete")


# Create FastAPI application
app = FastAPI(
    title=settings.APP_NAME,
    description="Project-scoped document management with access control",
    version=settings.APP_VERSION,
    docs_url="/docs" if settings.DEBUG else None,
    redoc_url="/redoc" if settings.DEBUG else None,
    openapi_url="/openapi.json" if settings.DEBUG else None,
    lifespan=lifespan
)


# CORS Middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# GZip Middleware
app.add_middleware(GZipMiddleware, minimum_size=1000)


@app.middleware("http")
async def metrics_middleware(request: Request, call_next):
    """Record request count and latency per route template"""
    start = time.perf_counter()
    response = await call_next(request)

    if settings.ENABLE_METRICS:
        route = request.scope.get("route")
        endpoint = getattr(route, "path", "unmatched")
        record_request(
            request.method,
            endpoint,
            response.status_code,
            time.perf_counter() - start,
        )
    return response


# Exception Handlers
def _error_content(code: str, message: str, details=None, timestamp=None) -> dict:
    return ErrorResponse(
        error=ErrorDetail(code=code, message=message, details=details, timestamp=timestamp)
    ).model_dump()


@app.exception_handler(AppException)
async def app_exception_handler(request: Request, exc: AppException) -> JSONResponse:
    """Handle application-specific exceptions"""
    if exc.status_code >= 500:
        logger.error(f"{exc.code} on {request.method} {request.url.path}: {exc.message}")
    return JSONResponse(
        status_code=exc.status_code,
        content=_error_content(exc.code, exc.message, exc.details, exc.timestamp),
    )


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    """Handle HTTP exceptions (unknown routes, wrong methods)"""
    return JSONResponse(
        status_code=exc.status_code,
        content=_error_content(
            str(exc.detail).lower().replace(" ", "_"),
            str(exc.detail),
        ),
    )


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Handle validation errors"""
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content=_error_content(
            "validation_error",
            "Invalid request parameters",
            {"errors": jsonable_encoder(exc.errors())},
        ),
    )


# Include routers
app.include_router(api_v1_router, prefix="/api/v1")


# Root endpoint
@app.get("/", tags=["Root"])
async def root():
    """Root endpoint"""
    return {
        "name": settings.APP_NAME,
        "version": settings.APP_VERSION,
        "environment": settings.ENVIRONMENT,
        "docs_url": "/docs" if settings.DEBUG else None,
    }


# Health check endpoint
@app.get("/health", response_model=HealthResponse, tags=["Health"])
async def health_check():
    """Health check endpoint"""
    import docvault.db.session as session_module
    from docvault.storage.client import get_minio_client

    health_status = {
        "status": "healthy",
        "version": settings.APP_VERSION,
        "services": {},
    }

    healthy = False
    if session_module.async_session_maker is not None:
        async with session_module.async_session_maker() as session:
            healthy = await session_module.check_database(session)

    health_status["services"]["postgres"] = "healthy" if healthy else "unhealthy"
    if not healthy:
        health_status["status"] = "degraded"

    # The content store is optional; its absence only means local-only uploads
    try:
        get_minio_client()
        health_status["services"]["minio"] = "healthy"
    except AppException:
        health_status["services"]["minio"] = "unavailable"

    return health_status


@app.get("/metrics", tags=["Monitoring"])
async def metrics():
    """Prometheus metrics"""
    if not settings.ENABLE_METRICS:
        return JSONResponse(
            status_code=status.HTTP_404_NOT_FOUND,
            content=_error_content("not_found", "Metrics are disabled"),
        )
    return Response(content=get_metrics(), media_type=CONTENT_TYPE_LATEST)


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "docvault.main:app",
        host=settings.HOST,
        port=settings.PORT,
        reload=settings.DEBUG,
        log_level="info",
    )
