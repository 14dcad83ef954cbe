"""
FastAPI application entry point for the AppWhistler fact-check service.
Configures the application, middleware, routes, and error handlers.
"""

from contextlib import asynccontextmanager
from typing import AsyncGenerator, Dict

from fastapi import FastAPI, Request, Response
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from appwhistler.config import get_settings
from appwhistler.db.database import init_db
from appwhistler.routers import reverification
from appwhistler.services.fact_check_service import FactCheckNotFoundError
from appwhistler.services.kafka_service import KafkaConnectionError
from appwhistler.utils.logger import get_correlation_id, set_correlation_id, setup_logging

settings = get_settings()
logger = setup_logging(settings.log_level)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan manager for startup and shutdown events."""
    logger.info("Starting AppWhistler Fact-Check API", version="1.0.0")

    try:
        init_db()
        logger.info("Database initialization completed")
    except Exception as e:
        logger.error("Database initialization failed", error=str(e))
        raise

    yield

    logger.info("Shutting down AppWhistler Fact-Check API")


app = FastAPI(
    title="AppWhistler Fact-Check API",
    description="Automated re-verification of crowd-sourced fact-checks",
    version="1.0.0",
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["GET", "POST"],
    allow_headers=["*"],
)


@app.middleware("http")
async def correlation_id_middleware(request: Request, call_next) -> Response:
    """Add correlation ID to all requests for tracing."""
    correlation_id = set_correlation_id()

    logger.info("Request started",
               method=request.method,
               url=str(request.url),
               client_ip=request.client.host if request.client else "unknown")

    response = await call_next(request)
    response.headers["X-Correlation-ID"] = correlation_id

    logger.info("Request completed",
               method=request.method,
               url=str(request.url),
               status_code=response.status_code)

    return response


def _error_response(status_code: int, code: str, message: str) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={
            "error": {
                "code": code,
                "message": message,
                "correlation_id": get_correlation_id() or set_correlation_id()
            }
        }
    )


@app.exception_handler(FactCheckNotFoundError)
async def fact_check_not_found_handler(request: Request, exc: FactCheckNotFoundError) -> JSONResponse:
    """Handle fact-check not found errors."""
    logger.warning("Fact-check not found", error=str(exc), url=str(request.url))
    return _error_response(404, "FACT_CHECK_NOT_FOUND", "The requested fact-check does not exist")


@app.exception_handler(KafkaConnectionError)
async def kafka_connection_handler(request: Request, exc: KafkaConnectionError) -> JSONResponse:
    """Handle Kafka connection errors."""
    logger.error("Kafka connection error", error=str(exc), url=str(request.url))
    return _error_response(503, "SERVICE_UNAVAILABLE", "Re-verification service temporarily unavailable")


@app.exception_handler(Exception)
async def general_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Handle all other unhandled exceptions."""
    logger.error("Unhandled exception",
                error=str(exc),
                error_type=type(exc).__name__,
                url=str(request.url))
    return _error_response(500, "INTERNAL_ERROR", "An unexpected error occurred")


app.include_router(reverification.router)


@app.get("/health")
async def health_check() -> Dict[str, str]:
    """Health check endpoint for monitoring."""
    return {
        "status": "healthy",
        "service": "appwhistler-factcheck-api",
        "version": "1.0.0"
    }


@app.get("/")
async def root() -> Dict[str, str]:
    """Root endpoint with API information."""
    return {
        "service": "AppWhistler Fact-Check API",
        "version": "1.0.0",
        "description": "Automated re-verification of crowd-sourced fact-checks",
        "docs": "/docs",
        "health": "/health"
    }


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "appwhistler.main:app",
        host="0.0.0.0",
        port=8000,
        reload=True,
        log_level=settings.log_level.lower()
    )
