"""Exception taxonomy for the transformation engine.

Load-time problems (ParseError, ValidationError, UnknownStepTypeError) are
raised while reading definitions. Execution-time problems derive from
StepExecutionError and name the step that failed.
"""

from typing import Optional


class TransformerError(Exception):
    """Base class for every error raised by textforge."""

    pass


class ParseError(TransformerError):
    """Raised when configuration text cannot be parsed."""

    pass


class InvalidFormatError(ParseError):
    """Raised when a definition document is malformed YAML or not a mapping."""

    pass


class ValidationError(TransformerError):
    """Raised when a well-formed definition is semantically invalid."""

    def __init__(self, message: str, errors: Optional[list[str]] = None):
        super().__init__(message)
        self.errors = list(errors) if errors else [message]


class UnknownStepTypeError(TransformerError):
    """Raised when a step declares a type the builder does not know."""

    def __init__(self, step_type: object):
        super().__init__(f"Unknown transformation type: {step_type}")
        self.step_type = step_type


class NotFoundError(TransformerError):
    """Raised when a lookup by name or id finds nothing."""

    pass


class TransformationNotFoundError(NotFoundError):
    """Raised when the engine has no transformation with the given name."""

    pass


class DefinitionFileNotFoundError(NotFoundError):
    """Raised when a definition file does not exist."""

    pass


class ConflictError(TransformerError):
    """Raised when a new persisted definition collides with a static one."""

    pass


class UnauthorizedFunctionError(TransformerError):
    """Raised when a template calls a function outside the whitelist."""

    def __init__(
        self,
        function_name: str,
        message: Optional[str] = None,
        step: Optional[str] = None,
    ):
        super().__init__(
            message or f"Function '{function_name}' is not whitelisted"
        )
        self.function_name = function_name
        self.step = step


class StepExecutionError(TransformerError):
    """Raised when a compiled step fails while applying."""

    def __init__(self, message: str, step: Optional[str] = None):
        super().__init__(message)
        self.step = step


class InvalidPatternError(StepExecutionError):
    pass


class DecodeError(StepExecutionError):
    pass


class TemplateError(StepExecutionError):
    pass


class FunctionCallError(StepExecutionError):
    """Raised when a whitelisted primitive fails on its arguments."""

    pass
