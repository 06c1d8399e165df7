"""
Printly API - Main application entry point.

Print-shop marketplace: customers submit print jobs, shop printer agents
receive them over a WebSocket and report progress back.
"""

import logging
from contextlib import asynccontextmanager
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from app.core.config import get_settings
from app.core.database import Database
from app.realtime.channel import ConnectionRegistry
from app.auth.views import router as auth_router
from app.shops.views import router as shops_router
from app.printers.views import router as printers_router
from app.jobs.views import router as jobs_router
from app.api.files import router as files_router
from app.realtime.views import router as realtime_router

settings = get_settings()
API_PREFIX = "/api"

logging.basicConfig(
    level=settings.LOG_LEVEL,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan - startup and shutdown events."""
    # Startup
    await Database.connect()
    app.state.channel = ConnectionRegistry()
    yield
    # Shutdown
    await app.state.channel.close_all()
    await Database.disconnect()


# Create FastAPI app
app = FastAPI(
    title=settings.APP_NAME,
    version=settings.APP_VERSION,
    description="""
## Printly API

Print jobs for neighbourhood print shops.

### Features

- 🧾 **Jobs**: Submit a file with print settings and track it to completion
- 🖨️ **Printer agents**: Shops receive jobs live over `/ws?shopId=...`
- 🏪 **Shops**: Onboarding, pricing and printer roster
- 📁 **Files**: Direct-to-S3 uploads with presigned URLs
    """,
    lifespan=lifespan,
    docs_url=f"{API_PREFIX}/docs",
    redoc_url=f"{API_PREFIX}/redoc",
)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # Configure appropriately for production
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include routers
routers = [
    auth_router,
    shops_router,
    printers_router,
    jobs_router,
    files_router,
]

for router in routers:
    app.include_router(router, prefix=API_PREFIX)

# Agents connect to /ws at the root
app.include_router(realtime_router)


@app.get("/", tags=["Health"])
async def root():
    """Health check endpoint."""
    return {
        "status": "healthy",
        "app": settings.APP_NAME,
        "version": settings.APP_VERSION,
    }


@app.get("/health", tags=["Health"])
async def health_check():
    """Detailed health check."""
    return {
        "status": "healthy",
        "database": "connected" if Database.client else "disconnected",
        "version": settings.APP_VERSION,
    }
