"""Main entry point for dinner-groups-server.

Startup sequence:
1. Initialize DI container (fails fast without a Places API key or Redis)
2. Inject the restaurant handler into the router
3. Serve HTTP with FastAPI
"""
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.responses import PlainTextResponse
from prometheus_client import generate_latest, CONTENT_TYPE_LATEST

from app.config import Settings
from app.container import Container
from app.routers import restaurant_router, set_restaurant_handler
from app.middleware import PrometheusMiddleware

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)

# Global container
container: Container = None


async def startup_sequence(settings: Settings):
    """Build dependencies and wire the router."""
    global container

    logger.info("[Main] Starting startup sequence")
    logging.getLogger().setLevel(settings.log_level.upper())

    logger.info("[Main] Initializing DI container")
    container = Container(settings)

    logger.info("[Main] Injecting handler into router")
    set_restaurant_handler(container.restaurant_handler)

    logger.info("[Main] Startup sequence completed")


async def shutdown_sequence():
    """Clean up resources on shutdown."""
    global container

    logger.info("[Main] Starting shutdown sequence")

    if container:
        await container.shutdown()
        logger.info("[Main] Container shut down")

    logger.info("[Main] Shutdown sequence completed")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """FastAPI lifespan context manager for startup and shutdown."""
    await startup_sequence(Settings())
    yield
    await shutdown_sequence()


# Create FastAPI app
settings = Settings()
app = FastAPI(
    title="Dinner Groups API",
    description="Nearby restaurants and who is dining where",
    version="1.0.0",
    lifespan=lifespan,
)

# Add Prometheus metrics middleware
app.add_middleware(PrometheusMiddleware)

# Register router at app creation time (before uvicorn starts)
app.include_router(restaurant_router)


@app.get("/health")
def health():
    """Health check endpoint."""
    return {"status": "healthy"}


@app.get("/metrics", response_class=PlainTextResponse)
def metrics():
    """Prometheus metrics endpoint for scraping."""
    return PlainTextResponse(
        content=generate_latest(),
        media_type=CONTENT_TYPE_LATEST,
    )


if __name__ == "__main__":
    import uvicorn

    logger.info("[Main] Starting dinner-groups-server")
    uvicorn.run(
        "main:app",
        host="0.0.0.0",
        port=settings.server_port,
        log_level=settings.log_level.lower(),
    )
