"""Composite step that applies multiple steps in sequence."""

from functools import reduce
from typing import Any, Optional

from textforge.steps.base import Step
from textforge.steps.schemas import ValidationResult


class CompositeStep(Step):
    """Ordered chain of steps; each step's output is the next one's input.

    A failing step aborts the chain and its error propagates unchanged, so
    no partial output ever leaves apply().
    """

    step_type = "composite"

    def __init__(
        self,
        steps: list[Step],
        name: str = "composite",
        description: str = "",
        version: Optional[str] = None,
    ):
        super().__init__(name, description, version)
        self._steps = tuple(steps)

    @property
    def steps(self) -> tuple[Step, ...]:
        return self._steps

    def apply(self, input: str) -> str:
        return reduce(lambda current, step: step.apply(current), self._steps, input)

    def validate_input(self, input: Any) -> ValidationResult:
        """Validate against the first step only.

        Later steps see intermediate output, which is not known until the
        chain actually runs.
        """
        if not self._steps:
            return ValidationResult.ok()
        return self._steps[0].validate_input(input)

    def configuration_schema(self) -> dict[str, Any]:
        return {
            "type": "array",
            "items": [step.configuration_schema() for step in self._steps],
        }

    def metadata(self) -> dict[str, Any]:
        data = super().metadata()
        data["transformation_count"] = len(self._steps)
        data["transformation_types"] = [step.step_type for step in self._steps]
        return data
