"""
API Middleware - Request/response processing middleware.
"""

from app.api.middleware.error_handler import (
    AppException,
    InvalidPullRequestUrlError,
    PullRequestNotFoundError,
    GitHubAPIError,
    GitHubNotFoundError,
    ChangelogError,
    VersionNotFoundError,
    LLMError,
    app_exception_handler,
    http_exception_handler,
    validation_exception_handler,
    generic_exception_handler,
)

__all__ = [
    "AppException",
    "InvalidPullRequestUrlError",
    "PullRequestNotFoundError",
    "GitHubAPIError",
    "GitHubNotFoundError",
    "ChangelogError",
    "VersionNotFoundError",
    "LLMError",
    "app_exception_handler",
    "http_exception_handler",
    "validation_exception_handler",
    "generic_exception_handler",
]
