"""
Core infrastructure for the Gridiron Balance package.

- config: pydantic-settings Settings and the cached get_settings() accessor
- dependencies: FastAPI dependency aliases
"""

from gridiron_balance.core.config import Settings, get_settings

__all__ = ["Settings", "get_settings"]
