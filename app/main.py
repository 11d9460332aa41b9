from contextlib import asynccontextmanager
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
import structlog
from sqlalchemy.exc import SQLAlchemyError
from app.core.config import settings
from app.core.cache import close_redis_pool
from app.core.database import AsyncSessionLocal, create_tables
from app.core.exceptions import PersistenceError
from app.core.logging import configure_logging
from app.api.v1 import trending, admin_trending
from app.services.catalog_service import HttpCatalogClient
from app.services.persistence_service import PersistenceWriter
from app.services.trending_service import TrendingService

configure_logging(settings.app_env)
logger = structlog.get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    catalog = HttpCatalogClient(settings.catalog_api_url, timeout=settings.catalog_timeout_seconds)
    writer = PersistenceWriter(
        AsyncSessionLocal,
        timeout=settings.persistence_timeout_seconds,
        max_pending=settings.persistence_queue_size,
        enabled=settings.persistence_enabled,
    )
    service = TrendingService.from_settings(settings, catalog=catalog, writer=writer)

    if settings.persistence_enabled:
        try:
            await create_tables()
            await service.hydrate()
        except (PersistenceError, SQLAlchemyError, OSError) as e:
            # Serve from memory; writes keep being attempted in the background
            logger.error("trending_hydration_failed", error=str(e))
    else:
        await service.refresh_brands()

    await writer.start()
    app.state.trending_service = service
    logger.info("trending_service_started", env=settings.app_env)

    yield

    await writer.stop()
    await catalog.close()
    await close_redis_pool()
    logger.info("trending_service_stopped")


app = FastAPI(
    title="Storefront Trending API",
    description="Trending scores and fire badges for the storefront catalog",
    version="1.0.0",
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan
)

# Add CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.allowed_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include API routers
app.include_router(trending.router, prefix="/api/v1/trending", tags=["Trending"])
app.include_router(admin_trending.router, prefix="/api/v1/admin/trending", tags=["Trending Admin"])


@app.get("/healthz")
async def health_check():
    """Health check endpoint"""
    return {"status": "ok", "version": "1.0.0"}


@app.get("/")
async def root():
    """Root endpoint"""
    return {"message": "Storefront Trending API", "docs": "/docs"}
