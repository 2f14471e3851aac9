"""Transformation definitions: schemas and the YAML loader/builder."""

from textforge.definitions.loader import (
    DefinitionLoader,
    definition_files,
    get_definition_loader,
)
from textforge.definitions.schemas import (
    DefinitionSummary,
    SourceType,
    StepSpec,
    StepType,
    TransformationDefinition,
    bump_patch_version,
)

__all__ = [
    "DefinitionLoader",
    "DefinitionSummary",
    "SourceType",
    "StepSpec",
    "StepType",
    "TransformationDefinition",
    "bump_patch_version",
    "definition_files",
    "get_definition_loader",
]
