
"""
FastAPI application initialization
"""

from fastapi import FastAPI
from api.routes import health, ingest
from core.config import settings
from core.logging import setup_logging
import logging
from api.middleware import RequestContextMiddleware

# Configure logging
setup_logging()

logger = logging.getLogger(__name__)

# Create FastAPI app
app = FastAPI(
    title="Report Ingestion API",
    description="Ingests CM360 and DV360 report files into BigQuery",
    version=settings.APP_VERSION,
    docs_url="/docs",
    redoc_url="/redoc"
)

app.add_middleware(RequestContextMiddleware)


# Include routers
app.include_router(health.router)
app.include_router(ingest.router)


@app.on_event("startup")
async def startup_event():
    """Application startup event"""
    logger.info(f"Starting Report Ingestion API version {settings.APP_VERSION}")
    logger.info(f"Environment: {settings.ENVIRONMENT}")


@app.on_event("shutdown")
async def shutdown_event():
    """Application shutdown event"""
    logger.info("Shutting down Report Ingestion API")
