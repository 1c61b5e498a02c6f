"""Type definitions for the thesis asset registrar."""

from datetime import datetime, timezone
from enum import Enum

from pydantic import BaseModel, Field, field_validator


class AssetCategory(str, Enum):
    """Kinds of analysis artifacts the registrar persists."""

    FIGURE = "figure"
    TABLE = "table"
    DATA_SNAPSHOT = "data_snapshot"
    MODEL = "model"
    SUMMARY = "summary"

    @property
    def subdirectory(self) -> str:
        """Storage subdirectory under the registrar root."""
        return CATEGORY_SUBDIRECTORIES[self]

    @property
    def extension(self) -> str:
        """File extension shared by every asset of this category."""
        return CATEGORY_EXTENSIONS[self]


CATEGORY_SUBDIRECTORIES: dict[AssetCategory, str] = {
    AssetCategory.FIGURE: "figures",
    AssetCategory.TABLE: "tables",
    AssetCategory.DATA_SNAPSHOT: "data_snapshots",
    AssetCategory.MODEL: "models",
    AssetCategory.SUMMARY: "summaries",
}

CATEGORY_EXTENSIONS: dict[AssetCategory, str] = {
    AssetCategory.FIGURE: "png",
    AssetCategory.TABLE: "csv",
    AssetCategory.DATA_SNAPSHOT: "csv",
    AssetCategory.MODEL: "pkl",
    AssetCategory.SUMMARY: "json",
}

MANIFEST_SUBDIRECTORY = "manifests"
MANIFEST_JSON_NAME = "asset_manifest.json"
MANIFEST_CSV_NAME = "asset_manifest.csv"
TAG_SEPARATOR = ";"

# Column order of both persisted manifest forms.
MANIFEST_FIELDS: tuple[str, ...] = (
    "id",
    "category",
    "section",
    "name",
    "version",
    "filename",
    "path",
    "created_at",
    "tags",
    "description",
    "source_code_reference",
)


class DuplicatePolicy(str, Enum):
    """What to do when a (category, section, name, version) key is re-saved."""

    OVERWRITE = "overwrite"
    ERROR = "error"


class VersionBump(str, Enum):
    """Which part of a major.minor version to increment."""

    MAJOR = "major"
    MINOR = "minor"


def utc_now_iso() -> str:
    """Current UTC time as an ISO-8601 string."""
    return datetime.now(timezone.utc).isoformat()


class Asset(BaseModel):
    """A single persisted analysis artifact recorded in the manifest."""

    id: str = Field(..., description="Unique asset identifier")
    category: AssetCategory = Field(..., description="Artifact category")
    section: str = Field(..., min_length=1, description="Thematic section tag")
    name: str = Field(..., min_length=1, description="Short descriptor")
    version: str = Field(default="1.0", pattern=r"^\d+\.\d+$")
    filename: str = Field(..., description="Derived file name")
    path: str = Field(..., description="Location of the artifact file")
    created_at: str = Field(default_factory=utc_now_iso)
    tags: list[str] = Field(default_factory=list, description="Free-form labels")
    description: str = Field(default="", description="Free-text note")
    source_code_reference: str | None = Field(
        None, description="Pointer back to the producing code"
    )

    @field_validator("tags")
    @classmethod
    def dedupe_tags(cls, v: list[str]) -> list[str]:
        """Drop blank and repeated tags, keeping first-seen order."""
        seen: list[str] = []
        for tag in v:
            tag = tag.strip()
            if TAG_SEPARATOR in tag:
                raise ValueError(f"Tag {tag!r} contains {TAG_SEPARATOR!r}")
            if tag and tag not in seen:
                seen.append(tag)
        return seen

    @property
    def key(self) -> tuple[str, str, str, str]:
        """Deduplication key of the asset."""
        return (self.category.value, self.section, self.name, self.version)

    @property
    def version_tuple(self) -> tuple[int, int]:
        """Version as a sortable (major, minor) pair."""
        major, minor = self.version.split(".")
        return int(major), int(minor)

    def to_record(self) -> dict[str, object]:
        """JSON manifest record with fields in manifest order."""
        data = self.model_dump(mode="json")
        return {field: data[field] for field in MANIFEST_FIELDS}

    def to_row(self) -> dict[str, str]:
        """Flattened CSV manifest row."""
        record = self.to_record()
        row: dict[str, str] = {}
        for field, value in record.items():
            if field == "tags":
                row[field] = TAG_SEPARATOR.join(self.tags)
            elif value is None:
                row[field] = ""
            else:
                row[field] = str(value)
        return row
