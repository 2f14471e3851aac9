"""Whitelisted functions callable from template steps."""

from textforge.functions.registry import (
    WHITELIST,
    FunctionRegistry,
    get_function_registry,
)

__all__ = ["WHITELIST", "FunctionRegistry", "get_function_registry"]
