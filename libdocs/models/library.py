"""Library catalogue models: documented packages and their releases.

Libraries and versions are created by an administrative collaborator and
read by the sync and search services.  Navigation is strictly id-based:
a :class:`LibraryVersion` points at its library through ``library_id`` and
never embeds the :class:`Library` itself.
"""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class SourceType(str, Enum):  # noqa: UP042 -- StrEnum requires Python 3.11+
    """Where a library's documentation is pulled from."""

    GITHUB = "GITHUB"
    LOCAL = "LOCAL"


class VersionStatus(str, Enum):  # noqa: UP042
    """Lifecycle of a library release.  Only ACTIVE versions are synced."""

    ACTIVE = "ACTIVE"
    DEPRECATED = "DEPRECATED"
    EOL = "EOL"


class Library(BaseModel):
    """A documented software package."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(description="Unique identifier (UUID).")
    name: str = Field(description="Unique short name, e.g. 'react'.")
    display_name: str = Field(default="", description="Human-readable name.")
    source_type: SourceType = Field(default=SourceType.GITHUB)
    source_url: str = Field(default="", description="Repository URL for GITHUB sources.")
    category: str = Field(default="", description="Free-form grouping, e.g. 'frontend'.")
    tags: list[str] = Field(default_factory=list)


class LibraryVersion(BaseModel):
    """One release of a :class:`Library`.

    At most one version per library carries ``is_latest=True``; the
    storage layer enforces this with a partial unique index.
    """

    model_config = ConfigDict(frozen=True)

    id: str = Field(description="Unique identifier (UUID).")
    library_id: str = Field(description="Owning library id.")
    version: str = Field(description="Version string, also used as the git ref.")
    is_latest: bool = Field(default=False)
    status: VersionStatus = Field(default=VersionStatus.ACTIVE)
    docs_path: str | None = Field(
        default=None,
        description="Repository-relative documentation directory; 'docs' when unset.",
    )


class ResolvedLibrary(BaseModel):
    """Result of resolving a library name plus optional version string."""

    model_config = ConfigDict(frozen=True)

    library: Library
    version: LibraryVersion
    resolved_version: str = Field(
        description="The version string actually used (explicit or latest)."
    )
