"""Research data models: identities, metadata, and research records."""

from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Any, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel


class Ecosystem(str, Enum):
    """Package universes the pipeline can research."""

    NODE = "node"
    PYTHON = "python"
    RUBY = "ruby"
    UNKNOWN = "unknown"
    AUTO = "auto"  # Resolution request, never stored in an identity

    @classmethod
    def concrete(cls) -> tuple["Ecosystem", ...]:
        return (cls.NODE, cls.PYTHON, cls.RUBY)

    @property
    def is_concrete(self) -> bool:
        return self in Ecosystem.concrete()

    @property
    def package_manager(self) -> str:
        return {
            Ecosystem.NODE: "npm",
            Ecosystem.PYTHON: "pip",
            Ecosystem.RUBY: "gem",
        }.get(self, "unknown")


class _RecordModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        validate_assignment=True,
    )


class PackageIdentity(_RecordModel):
    """Cache key: the same name in two ecosystems is two packages."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        frozen=True,
        str_strip_whitespace=True,
    )

    name: str = Field(..., min_length=1)
    ecosystem: Ecosystem

    def __str__(self) -> str:
        return f"{self.ecosystem.value}:{self.name}"


class PackageMetadata(_RecordModel):
    """Ecosystem-agnostic metadata. Missing fields stay empty."""

    name: str
    version: Optional[str] = None
    description: Optional[str] = None
    homepage: Optional[str] = None
    repository_url: Optional[str] = None
    license: Optional[str] = None
    author: Optional[str] = None
    keywords: List[str] = Field(default_factory=list)

    # Ecosystem-specific extras
    types: Optional[str] = None
    main: Optional[str] = None
    downloads: Optional[int] = None
    requires: List[str] = Field(default_factory=list)

    @field_validator("keywords", "requires", mode="before")
    @classmethod
    def _drop_blank_items(cls, v: Any) -> Any:
        if v is None:
            return []
        if isinstance(v, list):
            return [str(item).strip() for item in v if item and str(item).strip()]
        return v

    def is_bare(self) -> bool:
        """True when nothing beyond the name is known."""
        populated = self.model_dump(exclude={"name"}, exclude_defaults=True)
        return not any(value not in (None, "", []) for value in populated.values())


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ResearchRecord(_RecordModel):
    """The unit of work product for one researched package."""

    identity: PackageIdentity
    metadata: PackageMetadata
    readme: str = ""
    examples: List[str] = Field(default_factory=list)
    additional_resources: List[str] = Field(default_factory=list)
    sources: List[str] = Field(default_factory=list)
    fetched_at: datetime = Field(default_factory=_utcnow)

    @property
    def is_degraded(self) -> bool:
        return self.metadata.is_bare() and not self.readme.strip()

    @classmethod
    def degraded(cls, identity: PackageIdentity) -> "ResearchRecord":
        """Record returned when every source failed."""
        return cls(identity=identity, metadata=PackageMetadata(name=identity.name))

    def to_payload(self) -> dict[str, Any]:
        """JSON-ready dict using the consumer field names."""
        return self.model_dump(mode="json", by_alias=True)


@dataclass
class CacheEntry:
    """A stored research record."""

    key: PackageIdentity
    record: ResearchRecord
    stored_at: datetime
