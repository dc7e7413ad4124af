"""FastAPI application entry point."""
import logging
from contextlib import asynccontextmanager
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from eventsphere.config import get_settings, get_version
from eventsphere.api.routes import admin, events
from eventsphere.tasks.scheduler import LifecycleScheduler, register_default_tasks


# Configure logging - force INFO level even if uvicorn configured it already
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)

# Explicitly set root logger level to ensure INFO logs are visible
logging.getLogger().setLevel(logging.INFO)

# Silence SQLAlchemy query logging (too verbose)
logging.getLogger('sqlalchemy.engine').setLevel(logging.WARNING)
logging.getLogger('sqlalchemy.pool').setLevel(logging.WARNING)

# APScheduler logs every tick at INFO
logging.getLogger('apscheduler.executors.default').setLevel(logging.WARNING)

settings = get_settings()
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager for startup and shutdown events."""
    # Startup
    logger.info("EventSphere API starting...")
    logger.info("  Environment: %s", settings.ENVIRONMENT.upper())
    logger.info("  Database: %s", settings.DATABASE_URL.split('@')[1] if '@' in settings.DATABASE_URL else 'configured')
    logger.info("  Transaction mode: %s", settings.DB_TRANSACTION_MODE)
    logger.info("  Event status sync interval: %d minutes", settings.EVENT_STATUS_SYNC_INTERVAL_MINUTES)

    scheduler = LifecycleScheduler()
    app.state.scheduler = scheduler

    if settings.SCHEDULER_ENABLED:
        logger.info("  Lifecycle scheduler: Starting...")
        try:
            register_default_tasks(scheduler, settings=settings)
            scheduler.start()
            logger.info("  Lifecycle scheduler: Started successfully")
        except Exception as e:
            logger.error("  Lifecycle scheduler: Failed to start - %s", e)
            # Don't fail startup if scheduler fails
    else:
        logger.info("  Lifecycle scheduler: Disabled (SCHEDULER_ENABLED=false)")

    yield  # Application runs

    # Shutdown
    logger.info("EventSphere API shutting down...")
    try:
        await scheduler.stop()
        logger.info("  Lifecycle scheduler: Stopped")
    except Exception as e:
        logger.error("  Lifecycle scheduler: Error during shutdown - %s", e)


# Create FastAPI application
app = FastAPI(
    title="EventSphere API",
    description="API for managing events, their lifecycle and team membership",
    version=get_version(),
    docs_url="/api/docs" if settings.DEBUG else None,  # Disable docs in production
    redoc_url="/api/redoc" if settings.DEBUG else None,
    lifespan=lifespan,
)


# CORS configuration
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS", "PATCH"],  # Restrict methods
    allow_headers=["*"],
)


# Include API routers
app.include_router(events.router)
app.include_router(admin.router)


# Health check endpoint
@app.get("/health")
async def health_check():
    """Health check endpoint."""
    return {"status": "healthy", "version": get_version()}
