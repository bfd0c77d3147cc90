"""
API Request Models - Pydantic models for request validation.
"""

from typing import List, Optional

from pydantic import BaseModel, Field, field_validator


class ChangelogSummaryRequest(BaseModel):
    """
    Request to summarize a repository's changelog.

    Example:
        {
            "owner": "facebook",
            "repo": "react",
            "from_version": "18.2.0",
            "to_version": "18.3.1"
        }
    """
    owner: str = Field(..., min_length=1, description="Repository owner", examples=["facebook"])
    repo: str = Field(..., min_length=1, description="Repository name", examples=["react"])
    from_version: Optional[str] = Field(default=None, description="Start of the version range (exclusive)")
    to_version: Optional[str] = Field(default=None, description="End of the version range (inclusive)")
    keywords: Optional[List[str]] = Field(
        default=None,
        description="Only report changes mentioning these keywords",
        examples=[["hooks", "breaking"]],
    )

    @field_validator("owner", "repo")
    @classmethod
    def strip_name(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("must not be blank")
        return v
