"""
Data models for the Package Research MCP.

Provides Pydantic models for research records, tool input validation,
and configuration for the research pipeline.
"""

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from models.config import ResearchSettings, ResponseFormat
from models.research import (
    CacheEntry,
    Ecosystem,
    PackageIdentity,
    PackageMetadata,
    ResearchRecord,
)

__all__ = [
    "CacheEntry",
    "Ecosystem",
    "PackageIdentity",
    "PackageMetadata",
    "ResearchRecord",
    "ResearchSettings",
    "ResponseFormat",
    "ResearchPackageInput",
    "PackageSearchInput",
]

# ══════════════════════════════════════════════════════════════════════════════
# Input Models
# ══════════════════════════════════════════════════════════════════════════════


class ResearchPackageInput(BaseModel):
    """Input model for package research."""

    model_config = ConfigDict(
        str_strip_whitespace=True,
        validate_assignment=True,
        extra="forbid",
    )

    package_name: str = Field(
        ...,
        description="Package name as published (e.g., 'left-pad', 'requests', 'rails', '@types/node')",
        min_length=1,
        max_length=214,
    )

    ecosystem: Ecosystem = Field(
        default=Ecosystem.AUTO,
        description="'node', 'python', 'ruby', or 'auto' (default) to probe the registries",
    )

    force_refresh: bool = Field(
        default=False,
        description="Ignore any cached research and query the sources again",
    )

    response_format: ResponseFormat = Field(
        default=ResponseFormat.JSON,
        description="Output format: 'json' (default) or 'markdown'",
    )

    @field_validator("package_name")
    @classmethod
    def validate_package_name(cls, v: str) -> str:
        """Reject names that cannot be a registry package."""
        if any(ch.isspace() for ch in v):
            raise ValueError(f"Package name '{v}' must not contain whitespace.")
        return v


class PackageSearchInput(BaseModel):
    """Input model for registry search."""

    model_config = ConfigDict(
        str_strip_whitespace=True,
        validate_assignment=True,
        extra="forbid",
    )

    query: str = Field(
        ...,
        description="Search terms (e.g., 'markdown parser', 'http client')",
        min_length=2,
        max_length=200,
    )

    ecosystem: Ecosystem = Field(
        default=Ecosystem.AUTO,
        description="Registry to search. 'auto' uses the workspace's project type, else npm",
    )

    limit: int = Field(default=10, ge=1, le=50)

    workspace_path: Optional[str] = Field(
        default=None,
        description="Directory used to detect the project type (defaults to current directory)",
    )
