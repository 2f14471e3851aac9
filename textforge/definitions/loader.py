"""Definition loader - parses YAML definitions and compiles them into steps.

Parsing and building are separate so the catalog can hold definitions from
any source and the engine can compile them later:

    loader = DefinitionLoader()
    step = loader.load_from_string(yaml_text)          # parse + build
    definition = loader.parse_definition(yaml_text)   # parse only
    step = loader.build_transformation(definition)     # build only
"""

import logging
from pathlib import Path
from types import MappingProxyType
from typing import Any, Callable, Optional, Union

import yaml
from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError

from textforge.definitions.schemas import (
    SourceType,
    StepSpec,
    StepType,
    TransformationDefinition,
)
from textforge.errors import (
    DefinitionFileNotFoundError,
    InvalidFormatError,
    TransformerError,
    UnknownStepTypeError,
    ValidationError,
)
from textforge.functions.registry import FunctionRegistry, get_function_registry
from textforge.steps import (
    Base64Config,
    Base64DecodeStep,
    Base64EncodeStep,
    CompositeStep,
    RegexReplaceConfig,
    RegexReplaceStep,
    Step,
    TemplateConfig,
    TemplateStep,
    ValidationResult,
)

logger = logging.getLogger(__name__)

REQUIRED_FIELDS = ("name", "description", "version", "transformations")
DEFINITION_SUFFIXES = (".yml", ".yaml")


def _format_pydantic_errors(error: PydanticValidationError) -> list[str]:
    messages = []
    for item in error.errors():
        location = ".".join(str(part) for part in item["loc"])
        message = item["msg"]
        messages.append(f"{location}: {message}" if location else message)
    return messages


def _validate_config(model: type[BaseModel], spec: StepSpec, index: int) -> Any:
    try:
        return model.model_validate(spec.config)
    except PydanticValidationError as e:
        errors = [
            f"transformation at index {index} ({spec.type}): {message}"
            for message in _format_pydantic_errors(e)
        ]
        raise ValidationError("; ".join(errors), errors) from e


class DefinitionLoader:
    """Loads definitions from YAML and builds executable steps from them."""

    def __init__(self, function_registry: Optional[FunctionRegistry] = None):
        self.function_registry = function_registry or get_function_registry()
        self._builders: MappingProxyType = MappingProxyType({
            StepType.BASE64_ENCODE: self._build_base64_encode,
            StepType.BASE64_DECODE: self._build_base64_decode,
            StepType.REGEX_REPLACE: self._build_regex_replace,
            StepType.FUNCTION_BASED: self._build_function_based,
        })

    # ── Loading ─────────────────────────────────────────────

    def load_from_string(self, yaml_content: str) -> Step:
        """Parse, validate and build a transformation from YAML text."""
        definition = self.parse_definition(yaml_content)
        return self.build_transformation(definition)

    def load_from_file(self, file_path: Union[str, Path]) -> Step:
        path = Path(file_path)
        definition = self.parse_definition(
            self._read_file(path), SourceType.STATIC, str(path)
        )
        return self.build_transformation(definition)

    def load_from_directory(self, directory_path: Union[str, Path]) -> list[Step]:
        """Build every definition file in a directory (sorted by filename)."""
        directory = Path(directory_path)
        if not directory.is_dir():
            return []
        return [self.load_from_file(path) for path in definition_files(directory)]

    def _read_file(self, path: Path) -> str:
        if not path.is_file():
            raise DefinitionFileNotFoundError(f"Transformation file not found: {path}")
        return path.read_text(encoding="utf-8")

    # ── Parsing / validation ────────────────────────────────

    def parse_yaml(self, yaml_content: str) -> dict[str, Any]:
        try:
            config = yaml.safe_load(yaml_content)
        except yaml.YAMLError as e:
            raise InvalidFormatError(f"YAML syntax error: {e}") from e
        if not isinstance(config, dict):
            raise InvalidFormatError("Definition root must be a mapping")
        return config

    def validate_config(self, config: dict[str, Any]) -> None:
        missing = [field for field in REQUIRED_FIELDS if field not in config]
        if missing:
            raise ValidationError(f"Missing required fields: {', '.join(missing)}")

        steps = config["transformations"]
        if not isinstance(steps, list) or not steps:
            raise ValidationError("transformations must be a non-empty array")

        for index, step in enumerate(steps):
            if not isinstance(step, dict) or not step.get("type"):
                raise ValidationError(
                    f"transformation at index {index} must have a 'type' field"
                )

    def parse_definition(
        self,
        yaml_content: str,
        source_type: SourceType = SourceType.STATIC,
        source_id: Optional[str] = None,
    ) -> TransformationDefinition:
        config = self.parse_yaml(yaml_content)
        return self.definition_from_config(config, source_type, source_id)

    def definition_from_config(
        self,
        config: dict[str, Any],
        source_type: SourceType,
        source_id: Optional[str] = None,
    ) -> TransformationDefinition:
        self.validate_config(config)
        try:
            return TransformationDefinition.model_validate({
                "name": config["name"],
                "description": config["description"] or "",
                "version": config["version"],
                "transformations": [
                    {"type": step["type"], "config": step.get("config") or {}}
                    for step in config["transformations"]
                ],
                "source_type": source_type,
                "source_id": source_id,
            })
        except PydanticValidationError as e:
            errors = _format_pydantic_errors(e)
            raise ValidationError("; ".join(errors), errors) from e

    def validate_document(self, yaml_content: str) -> ValidationResult:
        """Check a definition document without raising.

        Every step is compiled as well, so template syntax, unknown step
        types and bad step configuration are all reported.
        """
        try:
            definition = self.parse_definition(yaml_content)
            self.build_transformation(definition)
        except ValidationError as e:
            return ValidationResult.failed(e.errors)
        except TransformerError as e:
            return ValidationResult.failed([str(e)])
        return ValidationResult.ok()

    # ── Building ────────────────────────────────────────────

    def build_transformation(self, definition: TransformationDefinition) -> Step:
        """Compile a definition: one step directly, several as a composite."""
        if len(definition.steps) == 1:
            return self.build_step(definition, definition.steps[0], 0, definition.name)

        return CompositeStep(
            steps=[
                self.build_step(definition, spec, index, f"{definition.name}[{index}]")
                for index, spec in enumerate(definition.steps)
            ],
            name=definition.name,
            description=definition.description,
            version=definition.version,
        )

    def build_step(
        self,
        definition: TransformationDefinition,
        spec: StepSpec,
        index: int = 0,
        name: Optional[str] = None,
    ) -> Step:
        """Build one step. Composite children are named `definition[index]`."""
        try:
            step_type = StepType(spec.type)
        except ValueError:
            raise UnknownStepTypeError(spec.type) from None

        builder: Callable[..., Step] = self._builders[step_type]
        return builder(definition, spec, index, name or definition.name)

    def _build_base64_encode(self, definition, spec, index, name) -> Step:
        _validate_config(Base64Config, spec, index)
        return Base64EncodeStep(
            name=name,
            description=definition.description,
            version=definition.version,
        )

    def _build_base64_decode(self, definition, spec, index, name) -> Step:
        _validate_config(Base64Config, spec, index)
        return Base64DecodeStep(
            name=name,
            description=definition.description,
            version=definition.version,
        )

    def _build_regex_replace(self, definition, spec, index, name) -> Step:
        config = _validate_config(RegexReplaceConfig, spec, index)
        return RegexReplaceStep(
            pattern=config.pattern,
            replacement=config.replacement,
            flags=config.flags,
            name=name,
            description=definition.description,
            version=definition.version,
        )

    def _build_function_based(self, definition, spec, index, name) -> Step:
        config = _validate_config(TemplateConfig, spec, index)
        return TemplateStep(
            template=config.template,
            allowed_functions=config.allowed_functions,
            line_range=config.line_range,
            function_registry=self.function_registry,
            name=name,
            description=definition.description,
            version=definition.version,
        )


def definition_files(directory: Path) -> list[Path]:
    """YAML definition files in a directory, sorted by filename."""
    return sorted(
        path for path in directory.iterdir()
        if path.is_file() and path.suffix in DEFINITION_SUFFIXES
    )


# Global loader instance
_loader: Optional[DefinitionLoader] = None


def get_definition_loader() -> DefinitionLoader:
    """Get the global definition loader instance."""
    global _loader
    if _loader is None:
        _loader = DefinitionLoader()
    return _loader
