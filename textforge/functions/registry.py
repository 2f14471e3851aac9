"""Function registry - the closed whitelist available to template steps.

The table is built once at import time and exposed read-only. There is no
way to register new functions at runtime: every operation a template can
perform is listed in WHITELIST below.
"""

import binascii
import re
from types import MappingProxyType
from typing import Any, Callable, Iterable, Optional

from textforge.errors import FunctionCallError, UnauthorizedFunctionError
from textforge.functions.codec import decode_text, encode_text

KV_PAIR = re.compile(r"^\s*([^:]+):\s*(.+?)\s*$")


def _base64_encode(value: Any) -> str:
    return encode_text(str(value))


def _base64_decode(value: Any) -> str:
    return decode_text(str(value))


def _split_lines(value: Any) -> list[str]:
    return str(value).split("\n")


def _lines(items: Iterable[Any]) -> Iterable[Any]:
    if isinstance(items, str):
        raise TypeError("expected a list of lines, got a string")
    return items


def _join_lines(items: Iterable[Any]) -> str:
    return "\n".join(str(item) for item in _lines(items))


def _filter_lines(items: Iterable[Any]) -> list[str]:
    """Drop blank lines."""
    return [line for line in _lines(items) if str(line).strip()]


def _parse_kv_pair(value: Any) -> dict[str, Optional[str]]:
    line = str(value)
    match = KV_PAIR.match(line)
    if match:
        return {"key": match.group(1).strip(), "value": match.group(2).strip()}
    return {"key": None, "value": line}


def _upcase(value: Any) -> str:
    return str(value).upper()


def _downcase(value: Any) -> str:
    return str(value).lower()


def _strip(value: Any) -> str:
    return str(value).strip()


def _gsub(value: Any, pattern: Any, replacement: Any) -> str:
    """Literal replace; pattern is not a regular expression."""
    return str(value).replace(str(pattern), str(replacement))


# map_values is resolved by FunctionRegistry itself because its callback
# has to pass through the same whitelist gate.
WHITELIST: MappingProxyType = MappingProxyType({
    "base64_encode": _base64_encode,
    "base64_decode": _base64_decode,
    "split_lines": _split_lines,
    "join_lines": _join_lines,
    "map_values": None,
    "filter_lines": _filter_lines,
    "parse_kv_pair": _parse_kv_pair,
    "upcase": _upcase,
    "downcase": _downcase,
    "strip": _strip,
    "gsub": _gsub,
})


class FunctionRegistry:
    """Gatekeeper for every function call made on behalf of a template."""

    def whitelisted_functions(self) -> list[str]:
        return list(WHITELIST)

    def is_whitelisted(self, function_name: str) -> bool:
        return str(function_name) in WHITELIST

    def call_function(
        self,
        function_name: str,
        *args: Any,
        allowed: Optional[Iterable[str]] = None,
    ) -> Any:
        """Call a whitelisted function.

        Args:
            function_name: Name in the whitelist
            *args: Positional arguments for the function
            allowed: Optional narrower allow-list (a step's declared
                functions); names outside it are rejected too

        Raises:
            UnauthorizedFunctionError: name not whitelisted / not allowed
            FunctionCallError: the function failed on its arguments
        """
        name = str(function_name)
        if name not in WHITELIST:
            raise UnauthorizedFunctionError(name)
        if allowed is not None and name not in allowed:
            raise UnauthorizedFunctionError(
                name, f"Function '{name}' is not in the allowed functions for this step"
            )

        if name == "map_values":
            return self._map_values(args, allowed)

        func: Callable[..., Any] = WHITELIST[name]
        try:
            return func(*args)
        except (TypeError, ValueError, binascii.Error) as e:
            raise FunctionCallError(f"Error executing '{name}': {e}") from e

    def _map_values(self, args: tuple, allowed: Optional[Iterable[str]]) -> list[Any]:
        if len(args) != 2:
            raise FunctionCallError(
                "Error executing 'map_values': expected a list and a function name"
            )
        items, callback = args
        if not isinstance(callback, str):
            raise FunctionCallError(
                "Error executing 'map_values': callback must be a function name"
            )
        if isinstance(items, str):
            items = [items]
        return [
            self.call_function(callback, item, allowed=allowed)
            for item in items
        ]


# Global registry instance
_registry: Optional[FunctionRegistry] = None


def get_function_registry() -> FunctionRegistry:
    """Get the global function registry instance."""
    global _registry
    if _registry is None:
        _registry = FunctionRegistry()
    return _registry
