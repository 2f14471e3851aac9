"""Catalog service - one name-keyed view over both definition sources.

Static definitions (YAML files) are read-only; persisted definitions
(database records) support create/update/delete. When a name exists in
both, the persisted definition wins. Sources are always read in the same
order (static, then persisted) so resolution is deterministic.
"""

import logging
from typing import Any, Optional

from textforge.catalog.persisted_source import PersistedDefinitionSource, normalize_name
from textforge.catalog.schemas import CatalogStatistics, LoadResult
from textforge.catalog.static_source import StaticDefinitionSource
from textforge.definitions.loader import DefinitionLoader, get_definition_loader
from textforge.definitions.schemas import (
    DefinitionSummary,
    SourceType,
    TransformationDefinition,
)
from textforge.errors import ConflictError, NotFoundError

logger = logging.getLogger(__name__)


def merge_definitions(
    definitions: list[TransformationDefinition],
) -> tuple[list[TransformationDefinition], list[str]]:
    """Merge definitions into one namespace.

    Returns the merged list (in order of first appearance) and the names
    present in both sources. A persisted definition replaces anything seen
    before it; a static definition never replaces an existing entry.
    """
    merged: dict[str, TransformationDefinition] = {}
    sources: dict[str, set[SourceType]] = {}

    for definition in definitions:
        sources.setdefault(definition.name, set()).add(definition.source_type)
        if definition.name not in merged or definition.is_persisted:
            merged[definition.name] = definition

    conflicts = [name for name, kinds in sources.items() if len(kinds) > 1]
    return list(merged.values()), conflicts


class CatalogService:
    """Coordinates the static and persisted definition sources."""

    def __init__(
        self,
        static_source: Optional[StaticDefinitionSource] = None,
        persisted_source: Optional[PersistedDefinitionSource] = None,
        loader: Optional[DefinitionLoader] = None,
    ):
        self.loader = loader or get_definition_loader()
        self.static_source = static_source or StaticDefinitionSource(loader=self.loader)
        self.persisted_source = persisted_source or PersistedDefinitionSource()

    # ── Reads ───────────────────────────────────────────────

    def load_all(self) -> LoadResult:
        """Load both sources and merge them (persisted wins on conflict)."""
        definitions: list[TransformationDefinition] = []
        errors: list[str] = []

        try:
            static = self.static_source.load_all()
            definitions.extend(static.definitions)
            errors.extend(static.errors)
        except Exception as e:
            logger.error(f"Failed to load static transformations: {e}")
            errors.append(f"Failed to load static transformations: {e}")

        try:
            persisted = self.persisted_source.load_all()
            definitions.extend(persisted.definitions)
            errors.extend(persisted.errors)
        except Exception as e:
            logger.error(f"Failed to load persisted transformations: {e}")
            errors.append(f"Failed to load persisted transformations: {e}")

        merged, conflicts = merge_definitions(definitions)
        if conflicts:
            logger.warning(
                f"Transformation name conflicts detected: {', '.join(conflicts)}"
            )

        return LoadResult(definitions=merged, errors=errors, conflicts=conflicts)

    def load_by_name(self, name: str) -> Optional[TransformationDefinition]:
        """Persisted source first, static source as fallback."""
        definition = self.persisted_source.load_by_name(name)
        if definition is not None:
            return definition
        return self.static_source.load_by_name(name)

    def get_by_name(self, name: str) -> TransformationDefinition:
        definition = self.load_by_name(name)
        if definition is None:
            raise NotFoundError(f"Transformation '{name}' not found")
        return definition

    def load_by_id(self, record_id: str) -> Optional[TransformationDefinition]:
        """Persisted definitions only."""
        return self.persisted_source.load_by_id(record_id)

    def exists(self, name: str) -> bool:
        return self.persisted_source.exists(name) or self.static_source.exists(name)

    def available_names(self) -> list[str]:
        names = set(self.persisted_source.available_names())
        names.update(self.static_source.available_names())
        return sorted(names)

    def list_summaries(self) -> list[DefinitionSummary]:
        return [
            DefinitionSummary(
                name=d.name,
                display_name=d.display_name,
                description=d.description,
                version=d.version,
                source_type=d.source_type,
                step_count=len(d.steps),
                step_types=[s.type for s in d.steps],
            )
            for d in sorted(self.load_all().definitions, key=lambda d: d.name)
        ]

    def statistics(self) -> CatalogStatistics:
        static_names = set(self.static_source.available_names())
        persisted_names = set(self.persisted_source.available_names())
        return CatalogStatistics(
            total=len(static_names | persisted_names),
            static=len(static_names),
            persisted=len(persisted_names),
            conflicts=len(static_names & persisted_names),
        )

    # ── Writes (persisted source only) ──────────────────────

    def create(
        self,
        name: str,
        description: str,
        version: str,
        steps: list[Any],
    ) -> TransformationDefinition:
        """Create a persisted definition.

        Raises:
            ConflictError: a static definition already uses the name
            ValidationError / UnknownStepTypeError: the steps do not compile
        """
        normalized = normalize_name(name)
        if self.static_source.exists(name) or self.static_source.exists(normalized):
            raise ConflictError(
                f"A static transformation with name '{normalized}' already exists"
            )

        self._check_compiles(normalized, description, version, steps)
        return self.persisted_source.create(
            name=name, description=description, version=version, steps=steps
        )

    def update(self, record_id: str, **attributes: Any) -> TransformationDefinition:
        existing = self.persisted_source.load_by_id(record_id)
        if existing is None:
            raise NotFoundError(f"Transformation not found: {record_id}")

        if attributes.get("steps") is not None:
            self._check_compiles(
                existing.name,
                attributes.get("description") or existing.description,
                attributes.get("version") or existing.version,
                attributes["steps"],
            )
        return self.persisted_source.update(record_id, **attributes)

    def delete(self, record_id: str) -> bool:
        return self.persisted_source.delete(record_id)

    def _check_compiles(
        self, name: str, description: str, version: str, steps: list[Any]
    ) -> None:
        """Build the definition once so invalid steps never reach storage."""
        definition = self.loader.definition_from_config(
            {
                "name": name,
                "description": description,
                "version": version,
                "transformations": [
                    s.to_document() if hasattr(s, "to_document") else s
                    for s in (steps or [])
                ],
            },
            SourceType.PERSISTED,
        )
        self.loader.build_transformation(definition)

    def reload(self) -> None:
        self.static_source.reload()
