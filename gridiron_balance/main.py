"""
FastAPI application entry point for the Gridiron Balance API.

Configures logging and CORS, registers the balance router and exposes the
health and root endpoints.
"""

import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from gridiron_balance import __version__
from gridiron_balance.api import api_router
from gridiron_balance.core.config import get_settings

settings = get_settings()

# Configure logging
logging.basicConfig(
    level=settings.log_level.upper(),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """
    Lifespan context manager for application startup and shutdown.

    Logs the effective run defaults on startup so operators can see which
    sample size and seed requests will use when they do not override them.
    """
    logger.info(
        f"Gridiron Balance API starting (sample size {settings.sample_size}, "
        f"seed {settings.seed}, concurrency {settings.max_concurrency})"
    )
    yield
    logger.info("Gridiron Balance API shutting down")


# Create FastAPI application
app = FastAPI(
    title="Gridiron Balance API",
    version=__version__,
    description=(
        "Automated balance playtesting for Gridiron Strategy matchup tables. "
        "Provides the guardrail catalog, table discovery and full balance runs."
    ),
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(api_router)


@app.get("/health")
async def health_check():
    """Liveness check; the service holds no external connections to verify."""
    return {"status": "healthy"}


@app.get("/")
async def root():
    """API name, version and documentation links."""
    return {
        "name": "Gridiron Balance API",
        "version": __version__,
        "docs": "/docs",
        "openapi": "/openapi.json",
    }


# Run with uvicorn when executed directly
if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "gridiron_balance.main:app",
        host="0.0.0.0",
        port=8000,
        reload=True,
    )
