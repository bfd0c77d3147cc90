"""
Core Domain Schemas - Shared data models used across the application.
"""

from typing import Optional, List, Any
from pydantic import BaseModel, Field
from enum import Enum


class Ecosystem(str, Enum):
    """Package ecosystems the review pipeline understands."""
    JAVASCRIPT = "javascript"
    JAVA = "java"
    GO = "go"
    PYTHON = "python"
    RUBY = "ruby"
    UNKNOWN = "unknown"


class StepStatus(str, Enum):
    """Status of one analysis step."""
    PENDING = "pending"
    RUNNING = "running"
    COMPLETED = "completed"
    ERROR = "error"


class Criticality(str, Enum):
    """How much a project leans on a dependency."""
    HIGH = "HIGH"
    MEDIUM = "MEDIUM"
    LOW = "LOW"


class AnalysisStep(BaseModel):
    """A step of the analyze-PR pipeline."""
    id: str
    name: str
    status: StepStatus = StepStatus.PENDING
    result: Optional[Any] = None
    error: Optional[str] = None


class DependencyInfo(BaseModel):
    """What the upgrade heuristic learned from a pull request."""
    is_dependency_upgrade: bool = False
    ecosystem: Optional[Ecosystem] = None
    dependency_name: Optional[str] = None
    old_version: Optional[str] = None
    new_version: Optional[str] = None
    change_type: Optional[str] = None  # major | minor | patch | unknown
    confidence: str = "low"
    detected_files: List[str] = Field(default_factory=list)
