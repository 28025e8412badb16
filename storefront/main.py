"""
Storefront Application

Cart and checkout service for Biosell shop pages. Keeps each shopper's
cart durable across reloads and places orders with the backend API.
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from dotenv import load_dotenv

from .core.config import settings
from .routes import session_router, cart_router, checkout_router
from .routes.deps import close_storefront_client

# Load environment variables
load_dotenv()

# Configure logging
logging.basicConfig(
    level=logging.DEBUG if settings.debug else logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan events"""
    logger.info("Storefront starting up...")
    logger.info(f"Backend API: {settings.api_base_url}")
    logger.info(f"Cart storage: {settings.storage_dir or 'in-memory'}")

    yield

    logger.info("Storefront shutting down...")
    await close_storefront_client()


# Create FastAPI app
app = FastAPI(
    title=settings.app_name,
    description="Cart and checkout for Biosell storefronts",
    version="1.0.0",
    lifespan=lifespan,
)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # In production, restrict this
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include API routers
app.include_router(session_router)
app.include_router(cart_router)
app.include_router(checkout_router)


@app.get("/")
async def home():
    return {
        "message": "Biosell Storefront API",
        "docs": "/docs",
        "endpoints": {
            "session": "/api/session",
            "cart": "/api/cart",
            "checkout": "/api/checkout",
        },
    }


@app.get("/health")
async def health_check():
    """Health check endpoint"""
    return {
        "status": "healthy",
        "service": "storefront",
        "backend_configured": bool(settings.api_base_url),
        "persistent_storage": settings.persistent_storage,
    }


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "storefront.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug,
    )
