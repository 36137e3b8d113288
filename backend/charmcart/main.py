from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
import asyncio
import logging

from charmcart.core.config import settings
from charmcart.core.database import connect_to_mongo, close_mongo_connection, get_database
from charmcart.core.sessions import init_session_registry, close_session_registry, get_session_registry
from charmcart.api.routes import cart, design

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)

# Create FastAPI app
app = FastAPI(
    title=settings.PROJECT_NAME,
    description="Backend API for Charm Cart - cart and design state for the custom jewelry designer",
    version="1.0.0",
    docs_url="/docs",
    redoc_url="/redoc"
)

# Configure CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.BACKEND_CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

_cleanup_task = None


async def cleanup_sessions_periodically():
    """Close idle cart sessions and purge expired guest carts."""
    while True:
        await asyncio.sleep(settings.CLEANUP_INTERVAL_SECONDS)
        registry = get_session_registry()
        if registry is not None:
            await registry.close_idle_sessions()
            await registry.cleanup_expired_guest_carts()


# Startup and shutdown events
@app.on_event("startup")
async def startup_event():
    """Connect to MongoDB and open the cart session registry."""
    global _cleanup_task
    logger.info("Starting up Charm Cart backend...")
    await connect_to_mongo()
    init_session_registry(get_database())
    _cleanup_task = asyncio.ensure_future(cleanup_sessions_periodically())
    logger.info("Charm Cart backend started successfully")


@app.on_event("shutdown")
async def shutdown_event():
    """Flush open cart sessions and close the MongoDB connection."""
    logger.info("Shutting down Charm Cart backend...")
    if _cleanup_task:
        _cleanup_task.cancel()
    await close_session_registry()
    await close_mongo_connection()
    logger.info("Charm Cart backend shut down successfully")


# Health
@app.get("/health")
async def health_check():
    """Report service health and the number of open cart sessions."""
    registry = get_session_registry()
    return {
        "status": "healthy",
        "service": "charmcart-backend",
        "version": "1.0.0",
        "active_sessions": len(registry) if registry is not None else 0
    }


@app.get("/")
async def root():
    """Describe the API and where its docs live."""
    return {
        "name": settings.PROJECT_NAME,
        "version": "1.0.0",
        "description": "Charm Cart Backend API",
        "docs": "/docs",
        "health": "/health"
    }


# Include routers
app.include_router(cart.router, prefix=f"{settings.API_V1_PREFIX}/cart", tags=["Cart"])
app.include_router(design.router, prefix=f"{settings.API_V1_PREFIX}/design", tags=["Design"])


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
