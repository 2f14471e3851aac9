"""Transformation definition schemas.

A TransformationDefinition is the source-agnostic description of a named
transformation: metadata plus an ordered list of step specs. Where it came
from (a YAML file or a database record) is recorded as provenance.
"""

import re
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

NAME_PATTERN = re.compile(r"^[A-Za-z0-9_-]+$")
VERSION_PATTERN = re.compile(r"^\d+\.\d+(\.\d+)?(-\w+)?$")


class StepType(str, Enum):
    """Closed set of step kinds the builder knows how to compile."""

    BASE64_ENCODE = "base64_encode"
    BASE64_DECODE = "base64_decode"
    REGEX_REPLACE = "regex_replace"
    FUNCTION_BASED = "function_based"


class SourceType(str, Enum):
    """Where a definition was loaded from."""

    STATIC = "static"  # YAML files shipped with / mounted into the service
    PERSISTED = "persisted"  # records in the definitions database


class StepSpec(BaseModel):
    """One declared step: a type tag plus type-specific configuration.

    The type is kept as a plain string so unknown types reach the builder,
    which rejects them with UnknownStepTypeError.
    """

    model_config = ConfigDict(frozen=True)

    type: str = Field(..., description="Step type tag, e.g. 'regex_replace'")
    config: dict[str, Any] = Field(
        default_factory=dict, description="Type-specific parameters"
    )

    @field_validator("type")
    @classmethod
    def _type_present(cls, v: str) -> str:
        if not v:
            raise ValueError("step must have a 'type' field")
        return v

    def to_document(self) -> dict[str, Any]:
        data: dict[str, Any] = {"type": self.type}
        if self.config:
            data["config"] = dict(self.config)
        return data


def humanize(name: str) -> str:
    """log_timestamp_normalizer -> 'Log timestamp normalizer'."""
    text = name.replace("_", " ").replace("-", " ").strip()
    return text[:1].upper() + text[1:].lower() if text else text


def bump_patch_version(version: str) -> str:
    """Increment the patch component: 1.2 -> 1.2.1, 1.2.3-beta -> 1.2.4."""
    core = version.split("-", 1)[0]
    parts = core.split(".")
    major = int(parts[0]) if parts and parts[0].isdigit() else 0
    minor = int(parts[1]) if len(parts) > 1 and parts[1].isdigit() else 0
    patch = int(parts[2]) if len(parts) > 2 and parts[2].isdigit() else 0
    return f"{major}.{minor}.{patch + 1}"


class TransformationDefinition(BaseModel):
    """A named transformation, independent of where it is stored.

    Two definitions are equal when name, version and source type match.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    # Identity
    name: str = Field(
        ..., min_length=1, max_length=100,
        description="Token-safe identifier (alphanumeric, '_' and '-')",
    )
    description: str = Field(default="", description="What this transformation does")
    version: str = Field(..., description="Semantic version, e.g. '1.0.0'")

    # Steps, serialized under the document key 'transformations'
    steps: tuple[StepSpec, ...] = Field(..., alias="transformations", min_length=1)

    # Provenance
    source_type: SourceType = Field(..., description="static or persisted")
    source_id: Optional[str] = Field(
        default=None, description="File path or database record id"
    )

    @field_validator("name")
    @classmethod
    def _token_safe_name(cls, v: str) -> str:
        if not NAME_PATTERN.match(v):
            raise ValueError(
                "name only allows alphanumeric, underscore, and dash characters"
            )
        return v

    @field_validator("version", mode="before")
    @classmethod
    def _semver(cls, v: Any) -> str:
        v = str(v) if isinstance(v, (int, float)) else v
        if not isinstance(v, str) or not VERSION_PATTERN.match(v):
            raise ValueError("version must be valid semver (e.g., 1.0.0, 2.1.0-beta)")
        return v

    @property
    def display_name(self) -> str:
        return humanize(self.name)

    @property
    def is_static(self) -> bool:
        return self.source_type == SourceType.STATIC

    @property
    def is_persisted(self) -> bool:
        return self.source_type == SourceType.PERSISTED

    @property
    def system_transformation(self) -> bool:
        # No per-user ownership yet: every definition is a system one
        return True

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, TransformationDefinition):
            return NotImplemented
        return (
            self.name == other.name
            and self.version == other.version
            and self.source_type == other.source_type
        )

    def __hash__(self) -> int:
        return hash((self.name, self.version, self.source_type))

    def steps_document(self) -> list[dict[str, Any]]:
        return [step.to_document() for step in self.steps]

    def to_document(self) -> dict[str, Any]:
        """The YAML document shape both sources share."""
        return {
            "name": self.name,
            "description": self.description,
            "version": self.version,
            "transformations": self.steps_document(),
        }

    def to_dict(self) -> dict[str, Any]:
        """API representation."""
        return {
            "name": self.name,
            "display_name": self.display_name,
            "description": self.description,
            "version": self.version,
            "source_type": self.source_type.value,
            "source_id": self.source_id,
            "system_transformation": self.system_transformation,
            "transformations": self.steps_document(),
        }


class DefinitionSummary(BaseModel):
    """Lightweight summary for list views."""

    name: str
    display_name: str
    description: str
    version: str
    source_type: SourceType
    step_count: int
    step_types: list[str] = Field(default_factory=list)
