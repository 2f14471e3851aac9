"""Definition catalog: static YAML files plus persisted database records."""

from textforge.catalog.persisted_source import PersistedDefinitionSource
from textforge.catalog.schemas import CatalogStatistics, LoadResult
from textforge.catalog.service import CatalogService, merge_definitions
from textforge.catalog.static_source import StaticDefinitionSource

__all__ = [
    "CatalogService",
    "CatalogStatistics",
    "LoadResult",
    "PersistedDefinitionSource",
    "StaticDefinitionSource",
    "merge_definitions",
]
