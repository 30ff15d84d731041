"""
Platform catalog schemas.

A platform is a storefront export format: its header vocabulary, the columns
an import requires, and how its labels line up with the canonical product
fields. The catalog is versioned data (config/platforms.json), so adding a new
export format means adding an entry, not code.
"""

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from typing import Optional

CANONICAL_FIELDS: tuple[str, ...] = ("name", "code", "price", "brand")
MULTI_VALUED_FIELDS: tuple[str, ...] = ("brand",)


class Platform(BaseModel):
    """A known source spreadsheet schema. Immutable once loaded."""

    model_config = ConfigDict(frozen=True, str_strip_whitespace=True)

    id: str = Field(..., min_length=1, description="Stable platform id")
    name: str = Field(..., min_length=1, description="Display name")
    description: str = Field("", description="Short description for the picker")
    detection_keywords: tuple[str, ...] = Field(
        ...,
        min_length=1,
        description="Header substrings that identify this platform"
    )
    required_fields: tuple[str, ...] = Field(
        default=(),
        description="Platform columns that must be mapped before submit"
    )
    field_labels: dict[str, tuple[str, ...]] = Field(
        default_factory=dict,
        description="Canonical field id -> platform column labels"
    )
    template_extra_headers: tuple[str, ...] = Field(
        default=(),
        description="Optional columns added to the downloadable template"
    )

    @field_validator("field_labels")
    @classmethod
    def labels_use_canonical_fields(cls, v: dict[str, tuple[str, ...]]) -> dict[str, tuple[str, ...]]:
        unknown = sorted(set(v) - set(CANONICAL_FIELDS))
        if unknown:
            raise ValueError(f"Unknown canonical fields: {', '.join(unknown)}")
        return v

    def labels_for(self, field: str) -> tuple[str, ...]:
        """Platform labels for a canonical field (may be empty)."""
        return self.field_labels.get(field, ())


class PlatformCatalog(BaseModel):
    """Versioned list of platforms."""

    model_config = ConfigDict(frozen=True)

    version: str = Field(..., min_length=1)
    platforms: tuple[Platform, ...] = Field(..., min_length=1)

    @model_validator(mode="after")
    def ids_are_unique(self) -> "PlatformCatalog":
        ids = [p.id for p in self.platforms]
        duplicates = sorted({i for i in ids if ids.count(i) > 1})
        if duplicates:
            raise ValueError(f"Duplicate platform ids: {', '.join(duplicates)}")
        return self

    def get(self, platform_id: str) -> Optional[Platform]:
        for platform in self.platforms:
            if platform.id == platform_id:
                return platform
        return None


class PlatformCandidate(BaseModel):
    """How well a header row matches one platform."""

    platform_id: str
    platform_name: str
    confidence: int = Field(..., ge=0, le=100, description="Matched keywords, percent")
    matched_keywords: list[str] = Field(default_factory=list)


class PlatformSummary(BaseModel):
    """Platform as shown in the catalog listing."""

    id: str
    name: str
    description: str
    detection_keywords: list[str]
    required_fields: list[str]

    @classmethod
    def from_platform(cls, platform: Platform) -> "PlatformSummary":
        return cls(
            id=platform.id,
            name=platform.name,
            description=platform.description,
            detection_keywords=list(platform.detection_keywords),
            required_fields=list(platform.required_fields),
        )


class PlatformListResponse(BaseModel):
    version: str
    platforms: list[PlatformSummary]
