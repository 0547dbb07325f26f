from fastapi import FastAPI, Request
from contextlib import asynccontextmanager
import structlog
import time

from engagement_metrics.core.config import settings
from engagement_metrics.api import stats
from engagement_metrics.services.analytics import AnalyticsService
from engagement_metrics.services.event_store import EventStore

# Configure structured logging
structlog.configure(
    processors=[
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.JSONRenderer()
    ]
)

logger = structlog.get_logger()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Lifecycle events"""
    logger.info("application_startup", app_name=settings.app_name)

    if settings.events_csv_path:
        store = EventStore.from_csv(settings.events_csv_path)
    else:
        logger.warning("no_events_csv_configured")
        store = EventStore()

    app.state.analytics_service = AnalyticsService(store)
    logger.info("analytics_service_ready", backend=app.state.analytics_service.backend, events=len(store))

    yield

    app.state.analytics_service.close()
    logger.info("application_shutdown")


app = FastAPI(
    title=settings.app_name,
    debug=settings.debug,
    lifespan=lifespan
)


# Middleware for logging requests
@app.middleware("http")
async def log_requests(request: Request, call_next):
    start_time = time.time()

    response = await call_next(request)

    duration = time.time() - start_time
    logger.info(
        "request_completed",
        method=request.method,
        path=request.url.path,
        status_code=response.status_code,
        duration_ms=round(duration * 1000, 2)
    )

    return response


# Include routers
app.include_router(stats.router)


@app.get("/health")
async def health_check():
    """Health check endpoint"""
    return {"status": "healthy", "app": settings.app_name}


@app.get("/")
async def root():
    """Root endpoint"""
    return {
        "message": "Engagement Metrics API",
        "endpoints": {
            "health": "/health",
            "daily": "/stats/daily",
            "dau_average": "/stats/dau-average",
            "mau": "/stats/mau",
            "growth_rate": "/stats/growth-rate",
            "docs": "/docs"
        }
    }
