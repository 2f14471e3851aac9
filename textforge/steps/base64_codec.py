"""Base64 encode/decode steps (standard, padded alphabet)."""

import binascii
import re
from typing import Any, Optional, Union

from textforge.errors import DecodeError
from textforge.functions.codec import decode_text, encode_text
from textforge.steps.base import Step
from textforge.steps.schemas import Base64Config, ValidationResult

BASE64_CHARSET = re.compile(r"\A[A-Za-z0-9+/]*={0,2}\Z")


class Base64EncodeStep(Step):
    step_type = "base64_encode"
    config_model = Base64Config

    def __init__(
        self,
        name: str = "base64_encode",
        description: str = "Encode text using Base64 encoding",
        version: Optional[str] = None,
    ):
        super().__init__(name, description, version)

    def apply(self, input: Union[str, bytes]) -> str:
        return encode_text(input)


class Base64DecodeStep(Step):
    step_type = "base64_decode"
    config_model = Base64Config

    def __init__(
        self,
        name: str = "base64_decode",
        description: str = "Decode Base64 encoded text",
        version: Optional[str] = None,
    ):
        super().__init__(name, description, version)

    def apply(self, input: str) -> str:
        try:
            return decode_text(input)
        except (binascii.Error, ValueError, TypeError) as e:
            raise DecodeError(f"Invalid Base64 input: {e}", step=self.name) from e

    def validate_input(self, input: Any) -> ValidationResult:
        result = super().validate_input(input)
        if result.invalid:
            return result

        if BASE64_CHARSET.match(input) and len(input) % 4 == 0:
            return ValidationResult.ok()
        return ValidationResult.failed(["Input does not appear to be valid Base64"])
