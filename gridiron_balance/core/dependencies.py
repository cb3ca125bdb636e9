"""
FastAPI dependency injection for the Gridiron Balance API.

Usage:
    @router.get("/guardrails")
    async def list_guardrails(settings: SettingsDep):
        ...
"""

from typing import Annotated

from fastapi import Depends

from gridiron_balance.core.config import Settings, get_settings


def get_settings_dependency() -> Settings:
    """
    Return the Settings singleton instance.

    This is a thin wrapper around get_settings() so tests can swap settings with
    ``app.dependency_overrides[get_settings_dependency] = lambda: test_settings``.
    """
    return get_settings()


# Usage: async def endpoint(settings: SettingsDep)
SettingsDep = Annotated[Settings, Depends(get_settings_dependency)]
