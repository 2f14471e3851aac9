"""Static definition source - YAML files in a definitions directory.

Follows the registry pattern used across the package:
- YAML-per-file in a definitions/ directory
- Lazy loading with _loaded guard
- In-memory dict keyed by definition name
- Read-only: nothing here writes to disk
"""

import logging
import os
from pathlib import Path
from typing import Optional

from textforge.catalog.schemas import LoadResult
from textforge.definitions.loader import (
    DefinitionLoader,
    definition_files,
    get_definition_loader,
)
from textforge.definitions.schemas import SourceType, TransformationDefinition
from textforge.errors import TransformerError

logger = logging.getLogger(__name__)

DEFAULT_DEFINITIONS_DIR = Path(
    os.environ.get(
        "TEXTFORGE_DEFINITIONS_DIR",
        str(Path(__file__).parent.parent / "definitions" / "library"),
    )
)


class StaticDefinitionSource:
    """Definitions loaded from YAML files; immutable at runtime."""

    source_type = SourceType.STATIC

    def __init__(
        self,
        definitions_dir: Optional[Path] = None,
        loader: Optional[DefinitionLoader] = None,
    ):
        self.definitions_dir = Path(definitions_dir or DEFAULT_DEFINITIONS_DIR)
        self.loader = loader or get_definition_loader()
        self._definitions: dict[str, TransformationDefinition] = {}
        self._errors: list[str] = []
        self._loaded = False

    def load(self) -> None:
        """Load all definition files."""
        if self._loaded:
            return
        self._definitions, self._errors = self._read_definitions()
        self._loaded = True

    def _read_definitions(self) -> tuple[dict[str, TransformationDefinition], list[str]]:
        definitions: dict[str, TransformationDefinition] = {}
        errors: list[str] = []

        if not self.definitions_dir.is_dir():
            logger.warning(
                f"Transformation definitions directory not found: "
                f"{self.definitions_dir}"
            )
            return definitions, errors

        for path in definition_files(self.definitions_dir):
            try:
                definition = self.loader.parse_definition(
                    path.read_text(encoding="utf-8"),
                    SourceType.STATIC,
                    str(path),
                )
            except (TransformerError, OSError, UnicodeDecodeError) as e:
                message = f"Failed to load transformation from {path}: {e}"
                logger.error(message)
                errors.append(message)
                continue

            if definition.name in definitions:
                # first file in sorted order wins
                existing = definitions[definition.name].source_id
                logger.warning(
                    f"Duplicate static transformation '{definition.name}' in "
                    f"{path}; keeping {existing}"
                )
                continue

            definitions[definition.name] = definition
            logger.debug(f"Loaded static transformation: {definition.name}")

        logger.info(
            f"Loaded {len(definitions)} static transformations "
            f"from {self.definitions_dir}"
        )
        return definitions, errors

    def load_all(self) -> LoadResult:
        self.load()
        return LoadResult(
            definitions=list(self._definitions.values()),
            errors=list(self._errors),
        )

    def load_by_name(self, name: str) -> Optional[TransformationDefinition]:
        self.load()
        return self._definitions.get(name)

    def exists(self, name: str) -> bool:
        self.load()
        return name in self._definitions

    def available_names(self) -> list[str]:
        self.load()
        return sorted(self._definitions)

    def count(self) -> int:
        self.load()
        return len(self._definitions)

    def reload(self) -> None:
        """Force reload all definition files.

        Readers keep seeing the previous definitions until the new set is
        complete.
        """
        self._definitions, self._errors = self._read_definitions()
        self._loaded = True
