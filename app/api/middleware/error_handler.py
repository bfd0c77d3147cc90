"""
Error Handler Middleware - Global exception handling for the API.

The exception classes in this module are also raised by services and
tools outside the HTTP layer; tools convert them into ToolResult errors
and the MCP servers serialize them into the response body.

Catches exceptions and returns consistent error responses.
"""

import logging
import traceback
from datetime import datetime

from fastapi import Request, status
from fastapi.responses import JSONResponse
from fastapi.exceptions import RequestValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException

from app.core.config import get_settings

logger = logging.getLogger(__name__)


class AppException(Exception):
    """Base exception for application errors."""

    def __init__(
        self,
        message: str,
        error_code: str = "INTERNAL_ERROR",
        status_code: int = 500,
        details: dict = None
    ):
        self.message = message
        self.error_code = error_code
        self.status_code = status_code
        self.details = details or {}
        super().__init__(self.message)


class InvalidPullRequestUrlError(AppException):
    """Raised when a pull request URL is not a github.com PR link."""

    def __init__(self, pr_url: str):
        super().__init__(
            message=(
                "Invalid GitHub PR URL format. "
                "Expected: https://github.com/owner/repo/pull/123"
            ),
            error_code="INVALID_PR_URL",
            status_code=400,
            details={"pr_url": pr_url}
        )


class PullRequestNotFoundError(AppException):
    """Raised when GitHub reports the pull request does not exist."""

    def __init__(self, pr_url: str):
        super().__init__(
            message=(
                f"Pull request not found: {pr_url}. "
                "Make sure the PR exists and you have access to it."
            ),
            error_code="PR_NOT_FOUND",
            status_code=404,
            details={"pr_url": pr_url}
        )


class GitHubAPIError(AppException):
    """Raised when the GitHub REST API returns an unexpected response."""

    def __init__(self, message: str, status: int = None):
        super().__init__(
            message=message,
            error_code="GITHUB_API_ERROR",
            status_code=502,
            details={"upstream_status": status} if status else {}
        )


class GitHubNotFoundError(GitHubAPIError):
    """Raised when a GitHub resource returns 404."""

    def __init__(self, resource: str):
        super().__init__(message=f"GitHub resource not found: {resource}", status=404)
        self.error_code = "GITHUB_NOT_FOUND"
        self.status_code = 404


class ChangelogError(AppException):
    """Raised when a changelog cannot be located or read."""

    def __init__(self, message: str, repository: str = None):
        super().__init__(
            message=message,
            error_code="CHANGELOG_ERROR",
            status_code=404,
            details={"repository": repository} if repository else {}
        )


class VersionNotFoundError(AppException):
    """Raised when requested versions are missing from a changelog."""

    def __init__(self, missing: list):
        super().__init__(
            message=f"Version(s) not found in changelog: {', '.join(missing)}",
            error_code="VERSION_NOT_FOUND",
            status_code=404,
            details={"missing": list(missing)}
        )


class LLMError(AppException):
    """Raised when the language model call fails."""

    def __init__(self, message: str):
        super().__init__(
            message=message,
            error_code="LLM_ERROR",
            status_code=502
        )


def create_error_response(
    message: str,
    error_code: str = "INTERNAL_ERROR",
    status_code: int = 500,
    details: dict = None
) -> JSONResponse:
    """Create a standardized error response."""
    settings = get_settings()

    content = {
        "success": False,
        "error": message,
        "error_code": error_code,
        "timestamp": datetime.utcnow().isoformat()
    }

    # Include details in debug mode
    if details and settings.debug:
        content["details"] = details

    return JSONResponse(
        status_code=status_code,
        content=content
    )


async def app_exception_handler(
    request: Request,
    exc: AppException
) -> JSONResponse:
    """Handle application-specific exceptions."""
    logger.warning(f"{exc.error_code} on {request.url.path}: {exc.message}")
    return create_error_response(
        message=exc.message,
        error_code=exc.error_code,
        status_code=exc.status_code,
        details=exc.details
    )


async def http_exception_handler(
    request: Request,
    exc: StarletteHTTPException
) -> JSONResponse:
    """Handle HTTP exceptions."""
    return create_error_response(
        message=str(exc.detail),
        error_code="HTTP_ERROR",
        status_code=exc.status_code
    )


async def validation_exception_handler(
    request: Request,
    exc: RequestValidationError
) -> JSONResponse:
    """Handle request validation errors."""
    errors = []
    for error in exc.errors():
        loc = " -> ".join(str(part) for part in error["loc"])
        errors.append(f"{loc}: {error['msg']}")

    return create_error_response(
        message="Validation error",
        error_code="VALIDATION_ERROR",
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        details={"errors": errors}
    )


async def generic_exception_handler(
    request: Request,
    exc: Exception
) -> JSONResponse:
    """Handle unexpected exceptions."""
    settings = get_settings()

    traceback_str = traceback.format_exc()
    logger.error(f"Unexpected error on {request.url.path}: {traceback_str}")

    details = None
    if settings.debug:
        details = {
            "exception_type": type(exc).__name__,
            "traceback": traceback_str
        }

    return create_error_response(
        message="An unexpected error occurred",
        error_code="INTERNAL_ERROR",
        status_code=500,
        details=details
    )
