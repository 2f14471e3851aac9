"""Validation results and per-step configuration schemas.

Each step variant has an explicit configuration model. Step classes expose
the model's JSON schema instead of merging schema fragments at runtime.
"""

from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator


class ValidationResult(BaseModel):
    """Outcome of validating input (or a definition) for a transformation."""

    model_config = ConfigDict(frozen=True)

    valid: bool
    errors: tuple[str, ...] = ()

    @model_validator(mode="after")
    def _errors_imply_invalid(self) -> "ValidationResult":
        if self.errors and self.valid:
            raise ValueError("a ValidationResult with errors cannot be valid")
        return self

    @classmethod
    def ok(cls) -> "ValidationResult":
        return cls(valid=True)

    @classmethod
    def failed(cls, errors: list[str]) -> "ValidationResult":
        return cls(valid=False, errors=tuple(errors))

    @property
    def invalid(self) -> bool:
        return not self.valid

    @property
    def error_message(self) -> str:
        """Human-readable error message."""
        return ", ".join(self.errors)

    def to_dict(self) -> dict[str, Any]:
        return {"valid": self.valid, "errors": list(self.errors)}


class Base64Config(BaseModel):
    """Base64 steps take no parameters."""

    pass


class RegexReplaceConfig(BaseModel):
    """Configuration for regex_replace steps."""

    pattern: str = Field(..., description="Regular expression pattern to match")
    replacement: str = Field(
        ...,
        description="Replacement text (can reference capture groups like \\1, \\2)",
    )
    flags: list[str] = Field(
        default_factory=list,
        description="Regex flags (i=ignorecase, m=multiline, x=extended)",
    )


class LineRange(BaseModel):
    """Region of a multi-line input that a template step is scoped to."""

    model_config = ConfigDict(frozen=True)

    start_pattern: str = Field(
        ..., description="Regex marking the first line of the range"
    )
    stop_pattern: Optional[str] = Field(
        default=None,
        description="Regex marking the last line of the range; "
        "without it the range runs to the end of the input",
    )
    include_boundaries: bool = Field(
        default=False,
        description="Feed the start/stop lines to the template as well",
    )


class TemplateConfig(BaseModel):
    """Configuration for function_based (template) steps."""

    template: str = Field(..., description="Template source")
    allowed_functions: list[str] = Field(
        default_factory=list,
        description="Whitelisted functions this template may call",
    )
    line_range: Optional[LineRange] = Field(
        default=None,
        description="Optional region of the input the template applies to",
    )
