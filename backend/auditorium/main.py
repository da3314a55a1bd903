"""
Auditorium Booking API - Main Application Entry Point

Seat reservations reviewed by an admin before they are committed:
- Users submit seats + a payment screenshot; bookings start pending
- Admin approval occupies all requested seats atomically or nothing
- Concurrent approvals can never hand the same seat to two bookings
- Structured logging with request correlation, Prometheus metrics
"""

from contextlib import asynccontextmanager
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy import text

from auditorium.core.config import get_settings
from auditorium.core.exceptions import BookingSystemError
from auditorium.core.logging import setup_logging, get_logger
from auditorium.core.metrics import metrics_endpoint
from auditorium.api.router import api_router
from auditorium.api.middleware import RequestLoggingMiddleware, SecurityHeadersMiddleware
from auditorium.db.session import SessionLocal
from auditorium.services.cache_service import seat_cache

settings = get_settings()
logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifecycle: startup and shutdown hooks."""
    setup_logging()

    logger.info(
        "application_starting",
        app=settings.APP_NAME,
        version=settings.APP_VERSION,
        environment=settings.ENVIRONMENT,
    )

    redis_client = await seat_cache.connect()
    if redis_client:
        logger.info("redis_ready")
    else:
        logger.warning("redis_unavailable", message="Running without seat map cache")

    yield

    await seat_cache.close()
    logger.info("application_shutdown")


app = FastAPI(
    title=settings.APP_NAME,
    version=settings.APP_VERSION,
    description="Seat booking API with admin-reviewed, concurrency-safe seat allocation",
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.allowed_origins,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PATCH", "PUT", "DELETE", "OPTIONS"],
    allow_headers=["Content-Type", "Authorization"],
)
app.add_middleware(SecurityHeadersMiddleware)
app.add_middleware(RequestLoggingMiddleware)

app.include_router(api_router)


@app.exception_handler(BookingSystemError)
async def booking_error_handler(request: Request, exc: BookingSystemError):
    return JSONResponse(status_code=exc.status_code, content={"error": exc.to_dict()})


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    errors = exc.errors()
    field = ".".join(str(part) for part in errors[0]["loc"]) if errors else None
    return JSONResponse(
        status_code=422,
        content={
            "error": {
                "code": "VALIDATION_ERROR",
                "message": errors[0]["msg"] if errors else "Invalid request",
                "details": {"field": field},
            }
        },
    )


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception):
    logger.error("unhandled_error", error_type=type(exc).__name__, exc_info=exc)
    return JSONResponse(
        status_code=500,
        content={"error": {"code": "INTERNAL_ERROR", "message": "Server error", "details": {}}},
    )


async def _database_status() -> str:
    try:
        async with SessionLocal() as session:
            await session.execute(text("SELECT 1"))
        return "connected"
    except Exception as e:
        logger.error("health_db_check_failed", error=str(e))
        return "error"


@app.get("/health", tags=["Health"])
@app.get("/api/health", tags=["Health"])
async def health_check():
    """Health check endpoint for Docker and load balancers."""
    database = await _database_status()
    return {
        "status": "healthy" if database == "connected" else "degraded",
        "version": settings.APP_VERSION,
        "environment": settings.ENVIRONMENT,
        "database": database,
        "cache": await seat_cache.stats(),
    }


@app.get("/metrics", include_in_schema=False)
def metrics():
    return metrics_endpoint()


@app.get("/", tags=["Root"])
async def root():
    return {
        "message": f"{settings.APP_NAME} OK",
        "version": settings.APP_VERSION,
        "docs": "/docs",
    }
