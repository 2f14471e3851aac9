"""Tests for the transformation engine."""

import pytest

import textforge.engine as engine_module
from textforge.catalog import CatalogService, StaticDefinitionSource
from textforge.engine import TransformationEngine, get_transformation_engine
from textforge.errors import (
    DecodeError,
    TransformationNotFoundError,
    UnauthorizedFunctionError,
)
from textforge.steps import RegexReplaceStep, TemplateStep

from tests.helpers import SHOUT, definition_yaml, regex_steps

TRIM_THEN_DECODE = """\
name: trim_then_decode
description: Strip surrounding blanks then decode
version: "1.0.0"
transformations:
  - type: regex_replace
    config:
      pattern: '^\\s+|\\s+$'
      replacement: ''
  - type: base64_decode
"""


class TestLookup:
    def test_builtins_always_available(self, tmp_path, loader):
        catalog = CatalogService(
            static_source=StaticDefinitionSource(tmp_path / "empty", loader=loader),
            loader=loader,
        )
        engine = TransformationEngine(catalog=catalog, loader=loader)
        assert engine.available_names() == ["base64_decode", "base64_encode"]

    def test_available_names_merge_catalog_and_builtins(self, engine):
        assert engine.available_names() == [
            "base64_decode", "base64_encode", "date_reformatter", "shout",
        ]

    def test_unknown_name(self, engine):
        with pytest.raises(TransformationNotFoundError):
            engine.get("missing")
        with pytest.raises(TransformationNotFoundError):
            engine.apply("missing", "x")

    def test_metadata(self, engine):
        metadata = engine.metadata("date_reformatter")
        assert metadata["type"] == "regex_replace"
        assert metadata["version"] == "1.0.0"

    def test_register(self, engine):
        engine.register(RegexReplaceStep(pattern="o", replacement="0", name="leet"))
        assert engine.apply("leet", "foo") == "f00"


class TestApply:
    def test_apply(self, engine):
        assert engine.apply("date_reformatter", "Date: 2025-01-07") == "Date: 07/01/2025"
        assert engine.apply("base64_encode", "Hello World!") == "SGVsbG8gV29ybGQh"

    def test_repeated_calls_are_independent(self, engine):
        outputs = {engine.apply("shout", "again") for _ in range(3)}
        assert outputs == {"AGAIN"}

    def test_failure_names_the_transformation(self, engine):
        with pytest.raises(DecodeError) as exc_info:
            engine.apply("base64_decode", "%%%")
        assert exc_info.value.step == "base64_decode"

    def test_apply_chain(self, engine):
        output = engine.apply_chain(["date_reformatter", "shout", "base64_encode"], "x 2025-01-07")
        assert engine.apply("base64_decode", output) == "X 07/01/2025"

    def test_apply_chain_resolves_names_first(self, engine, monkeypatch):
        calls = []
        step = engine.get("shout")
        monkeypatch.setattr(step, "apply", lambda text: calls.append(text) or text)
        with pytest.raises(TransformationNotFoundError):
            engine.apply_chain(["shout", "missing"], "x")
        assert calls == []

    def test_apply_chain_failure_identifies_step(self, engine):
        with pytest.raises(DecodeError) as exc_info:
            engine.apply_chain(["shout", "base64_decode"], "not base64")
        assert exc_info.value.step == "base64_decode"

    def test_unauthorized_call_names_the_transformation(self, engine):
        engine.register(
            TemplateStep("{{ input | downcase }}", allowed_functions=["upcase"], name="lower")
        )
        with pytest.raises(UnauthorizedFunctionError) as exc_info:
            engine.apply_chain(["shout", "lower"], "x")
        assert exc_info.value.function_name == "downcase"
        assert exc_info.value.step == "lower"

    def test_untagged_unauthorized_error_gets_chain_name(self, engine, monkeypatch):
        def deny(text):
            raise UnauthorizedFunctionError("eval")

        monkeypatch.setattr(engine.get("shout"), "apply", deny)
        with pytest.raises(UnauthorizedFunctionError) as exc_info:
            engine.apply("shout", "x")
        assert exc_info.value.step == "shout"

    def test_composite_failure_names_the_child(self, engine, loader):
        engine.register(loader.load_from_string(TRIM_THEN_DECODE))
        with pytest.raises(DecodeError) as exc_info:
            engine.apply("trim_then_decode", "  %%%  ")
        assert exc_info.value.step == "trim_then_decode[1]"

        with pytest.raises(DecodeError) as exc_info:
            engine.apply_chain(["shout", "trim_then_decode"], "%%%")
        assert exc_info.value.step == "trim_then_decode[1]"

    def test_validate_input(self, engine):
        assert engine.validate_input("base64_decode", "SGk=").valid
        assert engine.validate_input("base64_decode", "%%%").invalid


class TestReload:
    def test_reload_picks_up_new_definitions(self, engine, definitions_dir):
        (definitions_dir / "late.yml").write_text(definition_yaml("late"), encoding="utf-8")
        assert "late" not in engine.available_names()
        result = engine.reload()
        assert "late" in result.names()
        assert engine.apply("late", "aaa") == "bbb"

    def test_reload_includes_persisted(self, engine, catalog):
        catalog.create(name="from_db", description="", version="1.0.0", steps=regex_steps("a", "4"))
        engine.reload()
        assert engine.apply("from_db", "banana") == "b4n4n4"

    def test_reload_replaces_snapshot(self, engine):
        before = engine._steps
        engine.reload()
        assert engine._steps is not before
        assert set(engine._steps) == set(before)

    def test_uncompilable_definition_is_skipped(self, engine, definitions_dir):
        broken = SHOUT.replace("name: shout", "name: broken").replace(
            "{{ input | upcase }}", "{{ input | }}"
        )
        (definitions_dir / "broken.yml").write_text(broken, encoding="utf-8")
        result = engine.reload()
        assert "broken" not in engine.available_names()
        assert "shout" in engine.available_names()
        assert any("broken" in error for error in result.errors)

    def test_catalog_definition_overrides_builtin(self, engine, definitions_dir):
        (definitions_dir / "custom.yml").write_text(
            definition_yaml("base64_encode", "x", "y"), encoding="utf-8"
        )
        engine.reload()
        assert engine.apply("base64_encode", "xx") == "yy"


def test_global_engine(global_engine):
    assert get_transformation_engine() is global_engine


def test_reset_global_engine(monkeypatch):
    monkeypatch.setattr(engine_module, "_engine", object())
    engine_module.reset_transformation_engine()
    assert engine_module._engine is None
