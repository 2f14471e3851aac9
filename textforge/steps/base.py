"""Base class for compiled transformation steps."""

from typing import Any, ClassVar, Optional

from pydantic import BaseModel

from textforge.steps.schemas import ValidationResult


class Step:
    """A compiled, immutable unit of transformation logic.

    Subclasses implement apply() and may extend validate_input(). Steps hold
    no per-call state, so one instance can serve any number of callers.
    """

    step_type: ClassVar[str] = ""
    config_model: ClassVar[Optional[type[BaseModel]]] = None

    def __init__(
        self,
        name: str,
        description: str = "",
        version: Optional[str] = None,
    ):
        self._name = name
        self._description = description
        self._version = version

    @property
    def name(self) -> str:
        return self._name

    @property
    def description(self) -> str:
        return self._description

    @property
    def version(self) -> Optional[str]:
        return self._version

    @property
    def chainable(self) -> bool:
        return True

    def apply(self, input: str) -> str:
        raise NotImplementedError(f"{type(self).__name__} must implement apply()")

    def validate_input(self, input: Any) -> ValidationResult:
        """Reject anything that is not a string."""
        if input is None:
            return ValidationResult.failed(["Input cannot be None"])
        if not isinstance(input, str):
            return ValidationResult.failed(["Input must be a string"])
        return ValidationResult.ok()

    def configuration_schema(self) -> dict[str, Any]:
        if self.config_model is None:
            return {"type": "object", "properties": {}}
        return self.config_model.model_json_schema()

    def metadata(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "description": self.description,
            "version": self.version,
            "type": self.step_type,
            "chainable": self.chainable,
            "schema": self.configuration_schema(),
        }

    def __repr__(self) -> str:
        return f"<{type(self).__name__} name={self.name!r}>"
