"""Catalog data model.

CatalogEntry validates one record of the remote catalog payload;
Docset is the in-memory representation used by the rest of the system.
"""

from dataclasses import dataclass
from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field


class CatalogEntry(BaseModel):
    """Schema for one record of the remote catalog JSON array.

    Attributes:
        name: Stable docset identifier.
        title: Display name.
        source_id: Feed identifier used to build the download URL.
        icon2x: Base64-encoded PNG icon.
    """

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    name: str = Field(min_length=1, description="Stable docset identifier")
    title: str = Field(default="", description="Display name")
    source_id: str = Field(
        default="", alias="sourceId", description="Remote feed identifier"
    )
    icon2x: str = Field(default="", description="Base64-encoded icon image")


@dataclass
class Docset:
    """One documentation set, remote or locally installed.

    ``path`` is None while the docset is not installed.
    """

    name: str
    title: str
    source_id: str
    icon_path: Path
    path: Path | None = None

    @property
    def is_installed(self) -> bool:
        return self.path is not None

    def to_dict(self) -> dict[str, object]:
        return {
            "name": self.name,
            "title": self.title,
            "source_id": self.source_id,
            "icon_path": str(self.icon_path),
            "path": str(self.path) if self.path else None,
            "installed": self.is_installed,
        }


__all__ = ["CatalogEntry", "Docset"]
