"""
Wedding Lead Marketplace API - Main Application.

FastAPI application with CORS enabled for frontend communication.
"""

import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from api import __version__
from config import get_settings

settings = get_settings()

logging.basicConfig(
    level=settings.log_level,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)

# Create FastAPI application
app = FastAPI(
    title="Wedding Lead Marketplace API",
    description="REST API for browsing, purchasing and managing wedding leads against a prepaid balance",
    version=__version__,
    docs_url="/docs",
    redoc_url="/redoc",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=list(settings.cors_origins),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.get("/health", tags=["Health"])
def health_check():
    """
    Health check endpoint.

    Returns the API status, version and configured store backend.
    """
    return {
        "status": "healthy",
        "version": __version__,
        "service": "lead-marketplace-api",
        "store": settings.store_backend,
    }


@app.get("/", tags=["Root"])
def root():
    """
    Root endpoint with API information.
    """
    return {
        "message": "Wedding Lead Marketplace API",
        "version": __version__,
        "docs": "/docs",
        "health": "/health"
    }


# Import and include routers
from api.routers import admin, catalog, favorites, ledger, purchases

app.include_router(catalog.router, prefix="/api/v1", tags=["Catalog"])
app.include_router(favorites.router, prefix="/api/v1", tags=["Favorites"])
app.include_router(purchases.router, prefix="/api/v1", tags=["Purchases"])
app.include_router(ledger.router, prefix="/api/v1", tags=["Ledger"])
app.include_router(admin.router, prefix="/api/v1", tags=["Admin"])
