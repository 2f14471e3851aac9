"""Regex replacement step for pattern-based text manipulation."""

import re
from functools import cached_property
from typing import Any, Optional

from textforge.errors import InvalidPatternError
from textforge.steps.base import Step
from textforge.steps.schemas import RegexReplaceConfig, ValidationResult

# i=ignorecase, m=multiline, x=extended
FLAG_MAPPING = {
    "i": re.IGNORECASE,
    "m": re.MULTILINE,
    "x": re.VERBOSE,
}


class RegexReplaceStep(Step):
    """Global substitution of `pattern` with `replacement`.

    The replacement may reference capture groups positionally (\\1, \\2).
    The pattern is compiled on first use and reused afterwards.
    """

    step_type = "regex_replace"
    config_model = RegexReplaceConfig

    def __init__(
        self,
        pattern: str,
        replacement: str,
        flags: Optional[list[str]] = None,
        name: str = "regex_replace",
        description: str = "Replace text using regular expressions",
        version: Optional[str] = None,
    ):
        super().__init__(name, description, version)
        self._pattern = pattern
        self._replacement = replacement
        self._flags = tuple(flags or ())

    @property
    def pattern(self) -> str:
        return self._pattern

    @property
    def replacement(self) -> str:
        return self._replacement

    @property
    def flags(self) -> tuple[str, ...]:
        return self._flags

    def _invalid_flags(self) -> list[str]:
        return [f for f in self._flags if f not in FLAG_MAPPING]

    @cached_property
    def _compiled(self) -> re.Pattern:
        invalid = self._invalid_flags()
        if invalid:
            raise InvalidPatternError(
                f"Invalid flags: {', '.join(invalid)}", step=self.name
            )
        combined = 0
        for flag in self._flags:
            combined |= FLAG_MAPPING[flag]
        try:
            return re.compile(self._pattern, combined)
        except re.error as e:
            raise InvalidPatternError(
                f"Invalid regex pattern: {e}", step=self.name
            ) from e

    def apply(self, input: str) -> str:
        try:
            return self._compiled.sub(self._replacement, input)
        except re.error as e:
            # bad group reference in the replacement
            raise InvalidPatternError(
                f"Invalid replacement: {e}", step=self.name
            ) from e

    def validate_input(self, input: Any) -> ValidationResult:
        result = super().validate_input(input)
        if result.invalid:
            return result

        errors = []
        try:
            re.compile(self._pattern)
        except re.error as e:
            errors.append(f"Invalid regex pattern: {e}")

        invalid = self._invalid_flags()
        if invalid:
            errors.append(f"Invalid flags: {', '.join(invalid)}")

        return ValidationResult(valid=not errors, errors=tuple(errors))

    def metadata(self) -> dict[str, Any]:
        data = super().metadata()
        data["config"] = {
            "pattern": self._pattern,
            "replacement": self._replacement,
            "flags": list(self._flags),
        }
        return data
