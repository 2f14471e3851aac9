"""Catalog result schemas."""

from typing import Any

from pydantic import BaseModel, Field

from textforge.definitions.schemas import TransformationDefinition


class LoadResult(BaseModel):
    """Definitions produced by a load, plus the errors collected on the way.

    A failing file or record is reported in `errors` and skipped; it never
    prevents the rest from loading.
    """

    definitions: list[TransformationDefinition] = Field(default_factory=list)
    errors: list[str] = Field(default_factory=list)
    conflicts: list[str] = Field(
        default_factory=list,
        description="Names defined in both the static and persisted sources",
    )

    @property
    def success(self) -> bool:
        return not self.errors

    @property
    def count(self) -> int:
        return len(self.definitions)

    def names(self) -> list[str]:
        return [d.name for d in self.definitions]

    def to_dict(self) -> dict[str, Any]:
        return {
            "transformations": [d.to_dict() for d in self.definitions],
            "count": self.count,
            "errors": list(self.errors),
            "conflicts": list(self.conflicts),
            "success": self.success,
        }


class CatalogStatistics(BaseModel):
    total: int
    static: int
    persisted: int
    conflicts: int
