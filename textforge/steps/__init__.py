"""Compiled transformation steps."""

from textforge.steps.base import Step
from textforge.steps.base64_codec import Base64DecodeStep, Base64EncodeStep
from textforge.steps.composite import CompositeStep
from textforge.steps.regex import RegexReplaceStep
from textforge.steps.schemas import (
    Base64Config,
    LineRange,
    RegexReplaceConfig,
    TemplateConfig,
    ValidationResult,
)
from textforge.steps.template import TemplateStep

__all__ = [
    "Base64Config",
    "Base64DecodeStep",
    "Base64EncodeStep",
    "CompositeStep",
    "LineRange",
    "RegexReplaceConfig",
    "RegexReplaceStep",
    "Step",
    "TemplateConfig",
    "TemplateStep",
    "ValidationResult",
]
