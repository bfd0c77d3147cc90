"""
Application Configuration - Environment settings and constants.

Loads configuration from environment variables with sensible defaults.
Uses Pydantic Settings for validation and type safety.

Only the LLM key is required for agent-backed steps; the deterministic
tools (changelog parsing, import analysis, upgrade detection) run without
any credentials.
"""

import os
from typing import List, Optional
from pydantic_settings import BaseSettings
from functools import lru_cache


# Environment variables consulted for a GitHub token, in priority order
GITHUB_TOKEN_ENV_VARS = ("GITHUB_TOKEN", "GH_TOKEN", "GITHUB_ACCESS_TOKEN")


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    Usage:
        from app.core.config import get_settings
        settings = get_settings()
    """

    # Application
    app_name: str = "Evergreen Dependency Review"
    app_version: str = "1.0.0"
    debug: bool = False
    environment: str = "development"

    # HTTP Server Configuration
    server_host: str = "0.0.0.0"
    server_port: int = 8000
    api_prefix: str = "/api"
    allowed_origins: List[str] = ["*"]

    # LLM Configuration (OpenAI-compatible endpoint)
    openai_api_key: Optional[str] = None
    openai_base_url: Optional[str] = None
    llm_model: str = "gpt-4o"
    llm_temperature: float = 0.0
    llm_max_tokens: int = 4096
    agent_max_iterations: int = 8

    # GitHub
    github_token: Optional[str] = None
    github_api_url: str = "https://api.github.com"
    github_raw_url: str = "https://raw.githubusercontent.com"

    # Package registries
    npm_registry_url: str = "https://registry.npmjs.org"
    pypi_url: str = "https://pypi.org/pypi"
    rubygems_url: str = "https://rubygems.org"

    # Timeouts
    http_timeout_seconds: float = 30.0
    command_timeout_seconds: int = 30
    dependency_tree_timeout_seconds: int = 10

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        case_sensitive = False


@lru_cache()
def get_settings() -> Settings:
    """
    Get cached settings instance.

    Uses lru_cache to ensure settings are only loaded once.
    """
    return Settings()


def resolve_github_token(explicit: Optional[str] = None) -> Optional[str]:
    """Pick a GitHub token: explicit argument, then settings, then env vars."""
    if explicit:
        return explicit
    configured = get_settings().github_token
    if configured:
        return configured
    for name in GITHUB_TOKEN_ENV_VARS:
        value = os.environ.get(name)
        if value:
            return value
    return None


# Convenience access
settings = get_settings()
