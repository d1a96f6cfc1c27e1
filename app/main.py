"""
geo-attendance - Geofenced chat attendance with fraud heuristics
"""
import asyncio
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from atams.logging import get_logger, setup_logging_from_settings
from atams.middleware import RequestIDMiddleware
from atams.exceptions import setup_exception_handlers
from atams.api import health_router

from app.core.config import settings
from app.api.deps import cleanup_service
from app.api.v1.api import api_router

# Setup logging
setup_logging_from_settings(settings)
logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    sweeper = None
    if settings.PENDING_SWEEP_INTERVAL_SECONDS > 0:
        sweeper = asyncio.create_task(cleanup_service.run_periodic(settings.PENDING_SWEEP_INTERVAL_SECONDS))
        logger.info(f"Pending action sweep every {settings.PENDING_SWEEP_INTERVAL_SECONDS}s")
    try:
        yield
    finally:
        if sweeper is not None:
            sweeper.cancel()


# Create FastAPI app
app = FastAPI(
    title=settings.APP_NAME,
    version=settings.APP_VERSION,
    debug=settings.DEBUG,
    description="Geofenced attendance over a messaging channel, with GPS fraud heuristics",
    lifespan=lifespan,
)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins_list,
    allow_credentials=settings.CORS_ALLOW_CREDENTIALS,
    allow_methods=settings.cors_methods_list,
    allow_headers=settings.cors_headers_list,
)

# Request ID middleware
app.add_middleware(RequestIDMiddleware)

# Exception handlers
setup_exception_handlers(app)

# Include routers
app.include_router(health_router, prefix="/health", tags=["Health"])
app.include_router(api_router, prefix="/api/v1")


@app.get("/", tags=["Root"])
async def root():
    """API Root - Basic information"""
    return {"name": settings.APP_NAME, "version": settings.APP_VERSION}
