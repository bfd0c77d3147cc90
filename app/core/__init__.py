"""
Core Module - Configuration and dependency injection.

Getters for shared instances live in app.core.dependencies; they are not
re-exported here because they import the agents, which import this package.
"""

from app.core.config import Settings, get_settings, resolve_github_token, settings

__all__ = [
    "Settings",
    "get_settings",
    "resolve_github_token",
    "settings",
]
