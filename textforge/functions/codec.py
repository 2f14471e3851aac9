"""Base64 helpers shared by the Base64 steps and the function registry."""

import base64
from typing import Union


def _to_bytes(value: str) -> bytes:
    try:
        # bytes that came from decode_text() round-trip exactly
        return value.encode("utf-8", "surrogateescape")
    except UnicodeEncodeError:
        # other lone surrogates (U+D800-DBFF, DC00-DC7F)
        return value.encode("utf-8", "surrogatepass")


def encode_text(value: Union[str, bytes]) -> str:
    """Base64-encode text. Never fails for str or bytes input."""
    raw = value if isinstance(value, bytes) else _to_bytes(value)
    return base64.b64encode(raw).decode("ascii")


def decode_text(value: str) -> str:
    """Strict Base64 decode. Raises binascii.Error on malformed input."""
    raw = base64.b64decode(value, validate=True)
    return raw.decode("utf-8", "surrogateescape")
