"""
API package initialization.

This package contains FastAPI router modules for the Gridiron Balance service:
- balance: Guardrail catalog, table discovery and balance runs
"""

from fastapi import APIRouter

from gridiron_balance.api.balance import router as balance_router

# Create main API router
api_router = APIRouter()

api_router.include_router(balance_router, prefix="/balance", tags=["balance"])

__all__ = [
    "api_router",
    "balance_router",
]
