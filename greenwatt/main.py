from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.trustedhost import TrustedHostMiddleware
import uvicorn
import logging
from contextlib import asynccontextmanager
from typing import Optional

from greenwatt.core.config import settings
from greenwatt.core.device_store import DeviceStore, InMemoryDeviceStore
from greenwatt.core.redis_client import init_redis, close_redis, RedisDeviceStore
from greenwatt.api.v1.api import api_router
from greenwatt.core.logging import setup_logging
from greenwatt.schemas.dashboard import HealthResponse
from greenwatt.services.household import HouseholdHub

# Setup logging
setup_logging()
logger = logging.getLogger(__name__)


async def build_store() -> DeviceStore:
    """Device store selected by configuration"""
    if settings.STORE_BACKEND == "memory":
        logger.warning("Using in-memory device store, devices are not persisted")
        return InMemoryDeviceStore()
    client = await init_redis()
    return RedisDeviceStore(client)


def create_app(hub: Optional[HouseholdHub] = None) -> FastAPI:
    """Build the application, a prepared hub replaces the configured store"""

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Application lifespan events"""
        # Startup
        logger.info("Starting up GreenWatt Energy Core...")
        app.state.hub = hub or HouseholdHub(await build_store())
        logger.info("GreenWatt Energy Core startup complete")

        yield

        # Shutdown
        logger.info("Shutting down GreenWatt Energy Core...")
        await app.state.hub.shutdown()
        await close_redis()

    app = FastAPI(
        title=settings.APP_NAME,
        description="Real-time energy usage aggregation, trends and insights for smart home dashboards",
        version=settings.VERSION,
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan
    )

    # Add middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.ALLOWED_HOSTS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.add_middleware(
        TrustedHostMiddleware,
        allowed_hosts=settings.ALLOWED_HOSTS
    )

    # Include API routes
    app.include_router(api_router, prefix="/api/v1")

    @app.get("/api/health", response_model=HealthResponse)
    async def health_check(request: Request):
        """Main health check endpoint"""
        households = request.app.state.hub.households.values()
        return HealthResponse(
            status="healthy",
            service="greenwatt",
            version=settings.VERSION,
            store=type(request.app.state.hub.store).__name__,
            devices=sum(len(household.registry) for household in households),
            ticks=sum(household.aggregator.tick_count for household in households),
            dropped_ticks=sum(household.aggregator.dropped_ticks for household in households),
            scheduler_running=any(household.scheduler.running for household in households)
        )

    # Root endpoint
    @app.get("/")
    async def root():
        """Root endpoint"""
        return {
            "message": settings.APP_NAME,
            "description": "Device registry, usage aggregation and energy insights",
            "version": settings.VERSION,
            "docs": "/docs",
            "modules": ["devices", "dashboard", "insights"]
        }

    return app


# Create FastAPI app
app = create_app()


if __name__ == "__main__":
    uvicorn.run(
        "greenwatt.main:app",
        host="0.0.0.0",
        port=settings.PORT,
        reload=settings.DEBUG,
        log_level="info"
    )
