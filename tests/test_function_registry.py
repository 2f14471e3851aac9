"""Tests for the function whitelist."""

import pytest

from textforge.errors import FunctionCallError, UnauthorizedFunctionError
from textforge.functions import WHITELIST, FunctionRegistry, get_function_registry


@pytest.fixture
def registry():
    return FunctionRegistry()


EXPECTED_FUNCTIONS = {
    "base64_encode",
    "base64_decode",
    "split_lines",
    "join_lines",
    "map_values",
    "filter_lines",
    "parse_kv_pair",
    "upcase",
    "downcase",
    "strip",
    "gsub",
}


class TestWhitelist:
    def test_whitelist_is_closed_set(self, registry):
        assert set(registry.whitelisted_functions()) == EXPECTED_FUNCTIONS

    def test_whitelist_is_read_only(self):
        with pytest.raises(TypeError):
            WHITELIST["eval"] = eval

    def test_global_registry_is_singleton(self):
        assert get_function_registry() is get_function_registry()

    @pytest.mark.parametrize("name", ["eval", "exec", "open", "system", "read_file", ""])
    def test_unknown_names_are_rejected(self, registry, name):
        assert not registry.is_whitelisted(name)
        with pytest.raises(UnauthorizedFunctionError) as exc_info:
            registry.call_function(name, "x")
        assert exc_info.value.function_name == name

    def test_narrower_allow_list(self, registry):
        with pytest.raises(UnauthorizedFunctionError, match="not in the allowed functions"):
            registry.call_function("upcase", "x", allowed={"downcase"})
        assert registry.call_function("upcase", "x", allowed={"upcase"}) == "X"


class TestFunctions:
    @pytest.mark.parametrize(
        "name, args, expected",
        [
            ("base64_encode", ("Hello World!",), "SGVsbG8gV29ybGQh"),
            ("base64_decode", ("SGVsbG8gV29ybGQh",), "Hello World!"),
            ("split_lines", ("a\nb\n",), ["a", "b", ""]),
            ("join_lines", (["a", "b"],), "a\nb"),
            ("filter_lines", (["a", "", "  ", "b"],), ["a", "b"]),
            ("parse_kv_pair", ("  user: admin ",), {"key": "user", "value": "admin"}),
            ("upcase", ("MiXed",), "MIXED"),
            ("downcase", ("MiXed",), "mixed"),
            ("strip", ("  padded \n",), "padded"),
            ("gsub", ("a-b-c", "-", "+"), "a+b+c"),
            ("map_values", (["a", "b"], "upcase"), ["A", "B"]),
        ],
    )
    def test_every_whitelisted_function_runs(self, registry, name, args, expected):
        assert registry.call_function(name, *args) == expected

    def test_parse_kv_pair_without_separator(self, registry):
        assert registry.call_function("parse_kv_pair", "no separator") == {
            "key": None,
            "value": "no separator",
        }

    def test_map_values_callback_goes_through_whitelist(self, registry):
        with pytest.raises(UnauthorizedFunctionError):
            registry.call_function("map_values", ["a"], "eval")

    def test_map_values_callback_respects_allow_list(self, registry):
        with pytest.raises(UnauthorizedFunctionError):
            registry.call_function(
                "map_values", ["a"], "downcase", allowed={"map_values", "upcase"}
            )

    def test_map_values_requires_function_name(self, registry):
        with pytest.raises(FunctionCallError):
            registry.call_function("map_values", ["a"], len)

    def test_invalid_base64_raises_function_call_error(self, registry):
        with pytest.raises(FunctionCallError, match="base64_decode"):
            registry.call_function("base64_decode", "%%%")

    @pytest.mark.parametrize(
        "args, expected",
        [
            (("1.2.3", ".", "-"), "1-2-3"),
            (("f(x)", "(", "["), "f[x)"),
            (("a+b", "a+", r"\1"), r"\1b"),
        ],
    )
    def test_gsub_pattern_is_literal(self, registry, args, expected):
        assert registry.call_function("gsub", *args) == expected

    @pytest.mark.parametrize("name", ["join_lines", "filter_lines"])
    def test_line_functions_reject_plain_strings(self, registry, name):
        with pytest.raises(FunctionCallError, match="list of lines"):
            registry.call_function(name, "abc")

    def test_wrong_arity(self, registry):
        with pytest.raises(FunctionCallError):
            registry.call_function("upcase")
