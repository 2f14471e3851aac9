"""Transformation engine - applies transformations by name.

The engine compiles every catalog definition into a step and keeps the
result in a name -> step snapshot. reload() builds a complete new snapshot
before swapping it in with a single assignment, so readers never see a
half-populated namespace.
"""

import logging
from types import MappingProxyType
from typing import Any, Mapping, Optional

from textforge.catalog.schemas import LoadResult
from textforge.catalog.service import CatalogService
from textforge.definitions.loader import DefinitionLoader, get_definition_loader
from textforge.errors import (
    StepExecutionError,
    TransformationNotFoundError,
    TransformerError,
    UnauthorizedFunctionError,
)
from textforge.steps import Base64DecodeStep, Base64EncodeStep, Step, ValidationResult

logger = logging.getLogger(__name__)


def builtin_steps() -> dict[str, Step]:
    """Steps that need no configuration and are always available."""
    steps: list[Step] = [Base64EncodeStep(), Base64DecodeStep()]
    return {step.name: step for step in steps}


class TransformationEngine:
    """Registry of compiled steps, invoked by name."""

    def __init__(
        self,
        catalog: Optional[CatalogService] = None,
        loader: Optional[DefinitionLoader] = None,
    ):
        self.loader = loader or get_definition_loader()
        self.catalog = catalog or CatalogService(loader=self.loader)
        self._steps: Mapping[str, Step] = MappingProxyType(builtin_steps())
        self._loaded = False

    def load(self) -> None:
        if self._loaded:
            return
        self.reload()

    def reload(self) -> LoadResult:
        """Rebuild the snapshot from the catalog.

        A definition that fails to compile is skipped and its error added to
        the returned LoadResult.
        """
        self.catalog.reload()
        result = self.catalog.load_all()

        steps = builtin_steps()
        for definition in result.definitions:
            try:
                steps[definition.name] = self.loader.build_transformation(definition)
                logger.debug(f"Compiled transformation: {definition.name}")
            except TransformerError as e:
                message = f"Failed to build transformation '{definition.name}': {e}"
                logger.error(message)
                result.errors.append(message)

        self._steps = MappingProxyType(steps)
        self._loaded = True
        logger.info(f"Loaded {len(steps)} transformations")
        return result

    # ── Lookup ──────────────────────────────────────────────

    def available_names(self) -> list[str]:
        self.load()
        return sorted(self._steps)

    def get(self, name: str) -> Step:
        self.load()
        step = self._steps.get(name)
        if step is None:
            raise TransformationNotFoundError(f"Transformation '{name}' not found")
        return step

    def register(self, step: Step) -> None:
        """Add or replace one step (copy-on-write)."""
        self.load()
        steps = dict(self._steps)
        steps[step.name] = step
        self._steps = MappingProxyType(steps)

    def metadata(self, name: str) -> dict[str, Any]:
        return self.get(name).metadata()

    # ── Execution ───────────────────────────────────────────

    def apply(self, name: str, input: str) -> str:
        step = self.get(name)
        try:
            return step.apply(input)
        except (StepExecutionError, UnauthorizedFunctionError) as e:
            e.step = e.step or name
            raise

    def apply_chain(self, names: list[str], input: str) -> str:
        """Apply transformations in order; the first failure aborts.

        Errors keep the most specific step name already set on them, so a
        failing composite child reports `name[index]`.
        """
        steps = [self.get(name) for name in names]
        current = input
        for name, step in zip(names, steps):
            try:
                current = step.apply(current)
            except (StepExecutionError, UnauthorizedFunctionError) as e:
                e.step = e.step or name
                raise
        return current

    def validate_input(self, name: str, input: Any) -> ValidationResult:
        return self.get(name).validate_input(input)


# Global engine instance
_engine: Optional[TransformationEngine] = None


def get_transformation_engine() -> TransformationEngine:
    """Get the global transformation engine instance."""
    global _engine
    if _engine is None:
        _engine = TransformationEngine()
        _engine.load()
    return _engine


def reset_transformation_engine() -> None:
    global _engine
    _engine = None
