"""
Data Models for Evergreen Dependency Review
===========================================

Organized into three categories:
- schemas: Core domain models used across the application
- requests: API request validation models
- responses: API response models
"""

from app.models.schemas import (
    Ecosystem,
    StepStatus,
    Criticality,
    AnalysisStep,
    DependencyInfo,
)

from app.models.requests import ChangelogSummaryRequest

from app.models.responses import (
    HealthResponse,
    AnalyzePRResponse,
    ChangelogSummaryResponse,
    ErrorResponse,
)

__all__ = [
    # Schemas
    "Ecosystem",
    "StepStatus",
    "Criticality",
    "AnalysisStep",
    "DependencyInfo",
    # Requests
    "ChangelogSummaryRequest",
    # Responses
    "HealthResponse",
    "AnalyzePRResponse",
    "ChangelogSummaryResponse",
    "ErrorResponse",
]
