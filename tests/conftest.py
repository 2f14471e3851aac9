"""Shared fixtures: a temporary definitions directory and SQLite database."""

from pathlib import Path

import pytest

import textforge.engine as engine_module
from textforge.catalog import db
from textforge.catalog.persisted_source import PersistedDefinitionSource
from textforge.catalog.service import CatalogService
from textforge.catalog.static_source import StaticDefinitionSource
from textforge.definitions.loader import DefinitionLoader
from textforge.engine import TransformationEngine

from tests.helpers import DATE_REFORMATTER, SHOUT


@pytest.fixture(autouse=True)
def sqlite_db(tmp_path, monkeypatch):
    """Point the persistence layer at a throwaway SQLite file."""
    monkeypatch.setattr(db, "DATABASE_URL", "")
    monkeypatch.setattr(db, "SQLITE_PATH", tmp_path / "textforge-test.db")
    db.reset_db_state()
    yield tmp_path / "textforge-test.db"
    db.reset_db_state()


@pytest.fixture
def definitions_dir(tmp_path) -> Path:
    directory = tmp_path / "definitions"
    directory.mkdir()
    (directory / "date_reformatter.yml").write_text(DATE_REFORMATTER, encoding="utf-8")
    (directory / "shout.yaml").write_text(SHOUT, encoding="utf-8")
    return directory


@pytest.fixture
def loader() -> DefinitionLoader:
    return DefinitionLoader()


@pytest.fixture
def static_source(definitions_dir, loader) -> StaticDefinitionSource:
    return StaticDefinitionSource(definitions_dir=definitions_dir, loader=loader)


@pytest.fixture
def persisted_source() -> PersistedDefinitionSource:
    return PersistedDefinitionSource()


@pytest.fixture
def catalog(static_source, persisted_source, loader) -> CatalogService:
    return CatalogService(
        static_source=static_source,
        persisted_source=persisted_source,
        loader=loader,
    )


@pytest.fixture
def engine(catalog, loader) -> TransformationEngine:
    engine = TransformationEngine(catalog=catalog, loader=loader)
    engine.load()
    return engine


@pytest.fixture
def global_engine(engine, monkeypatch) -> TransformationEngine:
    """Install the test engine as the process-wide instance."""
    monkeypatch.setattr(engine_module, "_engine", engine)
    return engine
