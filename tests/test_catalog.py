"""Tests for the static source and the merged catalog."""

import pytest

from textforge.catalog import StaticDefinitionSource, merge_definitions
from textforge.definitions import SourceType
from textforge.errors import ConflictError, NotFoundError, UnknownStepTypeError, ValidationError

from tests.helpers import definition_yaml, regex_steps


def write(directory, filename, content):
    (directory / filename).write_text(content, encoding="utf-8")


# =============================================================================
# Static source
# =============================================================================


class TestStaticDefinitionSource:
    def test_loads_every_file(self, static_source):
        result = static_source.load_all()
        assert result.success
        assert sorted(result.names()) == ["date_reformatter", "shout"]
        assert all(d.source_type == SourceType.STATIC for d in result.definitions)
        assert static_source.count() == 2

    def test_source_id_is_file_path(self, static_source, definitions_dir):
        definition = static_source.load_by_name("date_reformatter")
        assert definition.source_id == str(definitions_dir / "date_reformatter.yml")

    def test_broken_file_is_isolated(self, static_source, definitions_dir):
        write(definitions_dir, "broken.yml", "name: [unclosed")
        write(definitions_dir, "incomplete.yml", "name: incomplete\n")
        result = static_source.load_all()
        assert sorted(result.names()) == ["date_reformatter", "shout"]
        assert len(result.errors) == 2
        assert any("broken.yml" in error for error in result.errors)
        assert not result.success

    def test_duplicate_name_keeps_first_file(self, static_source, definitions_dir):
        write(definitions_dir, "a_first.yml", definition_yaml("dup", "x", "first"))
        write(definitions_dir, "b_second.yml", definition_yaml("dup", "x", "second"))
        definition = static_source.load_by_name("dup")
        assert definition.source_id.endswith("a_first.yml")

    def test_missing_directory(self, tmp_path, loader):
        source = StaticDefinitionSource(definitions_dir=tmp_path / "missing", loader=loader)
        result = source.load_all()
        assert result.count == 0
        assert result.success

    def test_loads_lazily_and_reloads(self, static_source, definitions_dir):
        assert static_source.exists("shout")
        write(definitions_dir, "late.yml", definition_yaml("late"))
        assert not static_source.exists("late")
        static_source.reload()
        assert static_source.exists("late")

    def test_reload_keeps_old_definitions_visible_until_done(
        self, static_source, definitions_dir, loader, monkeypatch
    ):
        assert static_source.available_names() == ["date_reformatter", "shout"]
        write(definitions_dir, "late.yml", definition_yaml("late"))

        seen = []
        parse = loader.parse_definition

        def parse_and_record(*args, **kwargs):
            seen.append(static_source.available_names())
            return parse(*args, **kwargs)

        monkeypatch.setattr(loader, "parse_definition", parse_and_record)
        static_source.reload()

        assert len(seen) == 3
        assert all(names == ["date_reformatter", "shout"] for names in seen)
        assert static_source.available_names() == ["date_reformatter", "late", "shout"]


# =============================================================================
# Merge / precedence
# =============================================================================


class TestPrecedence:
    def test_persisted_wins_on_load_by_name(self, catalog, persisted_source, definitions_dir):
        write(definitions_dir, "a.yml", definition_yaml("a", "x", "static"))
        persisted_source.create(
            name="a", description="persisted", version="2.0.0", steps=regex_steps("x", "db")
        )
        definition = catalog.load_by_name("a")
        assert definition.source_type == SourceType.PERSISTED
        assert definition.version == "2.0.0"

    def test_persisted_wins_on_load_all(self, catalog, persisted_source, definitions_dir):
        write(definitions_dir, "a.yml", definition_yaml("a"))
        persisted_source.create(name="a", description="", version="2.0.0", steps=regex_steps())
        result = catalog.load_all()
        matching = [d for d in result.definitions if d.name == "a"]
        assert len(matching) == 1
        assert matching[0].is_persisted
        assert result.conflicts == ["a"]

    def test_falls_back_to_static(self, catalog):
        assert catalog.load_by_name("shout").is_static
        assert catalog.load_by_name("missing") is None

    def test_get_by_name_raises(self, catalog):
        with pytest.raises(NotFoundError):
            catalog.get_by_name("missing")

    def test_merge_order_does_not_matter(self, loader):
        static = loader.parse_definition(definition_yaml("a"), SourceType.STATIC)
        persisted = loader.parse_definition(definition_yaml("a"), SourceType.PERSISTED)
        for ordering in ([static, persisted], [persisted, static]):
            merged, conflicts = merge_definitions(ordering)
            assert [d.source_type for d in merged] == [SourceType.PERSISTED]
            assert conflicts == ["a"]

    def test_persisted_failure_does_not_hide_static(self, catalog, monkeypatch):
        def broken():
            raise RuntimeError("database unavailable")

        monkeypatch.setattr(catalog.persisted_source, "load_all", broken)
        result = catalog.load_all()
        assert sorted(result.names()) == ["date_reformatter", "shout"]
        assert result.errors == [
            "Failed to load persisted transformations: database unavailable"
        ]


# =============================================================================
# Writes
# =============================================================================


class TestCatalogWrites:
    def test_create(self, catalog):
        definition = catalog.create(
            name="Redact Emails",
            description="Hide email addresses",
            version="1.0.0",
            steps=regex_steps(r"\S+@\S+", "[email]"),
        )
        assert definition.name == "redact_emails"
        assert definition.is_persisted
        assert catalog.load_by_name("redact_emails") == definition

    @pytest.mark.parametrize("name", ["shout", "SHOUT", " shout "])
    def test_create_conflicts_with_static(self, catalog, name):
        with pytest.raises(ConflictError):
            catalog.create(name=name, description="", version="1.0.0", steps=regex_steps())

    def test_conflict_regardless_of_persisted_state(self, catalog, persisted_source):
        persisted_source.create(name="shout", description="", version="1.0.0", steps=regex_steps())
        with pytest.raises(ConflictError):
            catalog.create(name="shout", description="", version="1.0.0", steps=regex_steps())

    def test_create_rejects_steps_that_do_not_compile(self, catalog, persisted_source):
        with pytest.raises(UnknownStepTypeError):
            catalog.create(
                name="bad", description="", version="1.0.0",
                steps=[{"type": "unknown_transformer"}],
            )
        with pytest.raises(ValidationError):
            catalog.create(
                name="bad", description="", version="1.0.0",
                steps=[{"type": "regex_replace", "config": {"pattern": "a"}}],
            )
        assert persisted_source.count() == 0

    def test_update_and_delete(self, catalog):
        created = catalog.create(name="temp", description="", version="1.0.0", steps=regex_steps())
        updated = catalog.update(created.source_id, steps=regex_steps("a", "c"))
        assert updated.version == "1.0.1"

        assert catalog.delete(created.source_id) is True
        assert catalog.load_by_name("temp") is None

    def test_update_missing(self, catalog):
        with pytest.raises(NotFoundError):
            catalog.update("tf-missing", description="nope")

    def test_update_rejects_bad_steps(self, catalog):
        created = catalog.create(name="temp", description="", version="1.0.0", steps=regex_steps())
        with pytest.raises(UnknownStepTypeError):
            catalog.update(created.source_id, steps=[{"type": "unknown_transformer"}])
        assert catalog.load_by_id(created.source_id).version == "1.0.0"

    def test_delete_missing(self, catalog):
        with pytest.raises(NotFoundError):
            catalog.delete("tf-missing")


class TestCatalogViews:
    def test_available_names(self, catalog):
        catalog.create(name="mine", description="", version="1.0.0", steps=regex_steps())
        assert catalog.available_names() == ["date_reformatter", "mine", "shout"]
        assert catalog.exists("mine")
        assert catalog.exists("shout")
        assert not catalog.exists("other")

    def test_statistics(self, catalog, persisted_source, definitions_dir):
        write(definitions_dir, "a.yml", definition_yaml("a"))
        persisted_source.create(name="a", description="", version="1.0.0", steps=regex_steps())
        persisted_source.create(name="b", description="", version="1.0.0", steps=regex_steps())
        catalog.reload()

        stats = catalog.statistics()
        assert stats.static == 3
        assert stats.persisted == 2
        assert stats.conflicts == 1
        assert stats.total == 4

    def test_list_summaries(self, catalog):
        summaries = catalog.list_summaries()
        assert [s.name for s in summaries] == ["date_reformatter", "shout"]
        assert summaries[1].display_name == "Shout"
        assert summaries[1].step_types == ["function_based"]
        assert summaries[1].step_count == 1
