"""Persisted definition source - transformation records in the database.

Records store the step list as JSON. Names are normalized before they are
written, and any update that changes the step list bumps the patch
component of the version.
"""

import logging
import re
import uuid
from datetime import datetime, timezone
from typing import Any, Optional

from pydantic import ValidationError as PydanticValidationError

from textforge.catalog import db
from textforge.catalog.schemas import LoadResult
from textforge.definitions.schemas import (
    NAME_PATTERN,
    VERSION_PATTERN,
    SourceType,
    StepSpec,
    TransformationDefinition,
    bump_patch_version,
)
from textforge.errors import NotFoundError, ValidationError

logger = logging.getLogger(__name__)

_COLUMNS = "id, name, description, version, steps, transformation_type, created_at, updated_at"
_NON_TOKEN = re.compile(r"[^a-zA-Z0-9_-]")


def normalize_name(name: Optional[str]) -> str:
    """'  My Transform ' -> 'my_transform'."""
    return _NON_TOKEN.sub("_", (name or "").strip().lower())


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


def _validate_steps(steps: Any) -> list[dict[str, Any]]:
    if not isinstance(steps, list) or not steps:
        raise ValidationError("transformations must be a non-empty array")
    normalized = []
    for index, step in enumerate(steps):
        if isinstance(step, StepSpec):
            step = step.to_document()
        if not isinstance(step, dict) or not step.get("type"):
            raise ValidationError(
                f"transformation at index {index} must have a 'type' field"
            )
        normalized.append({"type": step["type"], "config": dict(step.get("config") or {})})
    return normalized


def _validate_record(name: str, version: str) -> None:
    errors = []
    if not name:
        errors.append("Name can't be blank")
    elif len(name) > 100:
        errors.append("Name is too long (maximum is 100 characters)")
    elif not NAME_PATTERN.match(name):
        errors.append("Name only allows alphanumeric, underscore, and dash characters")
    if not version or not VERSION_PATTERN.match(version):
        errors.append("Version must be valid semver (e.g., 1.0.0, 2.1.0-beta)")
    if errors:
        raise ValidationError(", ".join(errors), errors)


class PersistedDefinitionSource:
    """Mutable definition source backed by the transformations table."""

    source_type = SourceType.PERSISTED

    def _to_definition(self, row: dict[str, Any]) -> TransformationDefinition:
        return TransformationDefinition.model_validate({
            "name": row["name"],
            "description": row.get("description") or "",
            "version": row["version"],
            "transformations": db.json_loads(row["steps"]),
            "source_type": SourceType.PERSISTED,
            "source_id": str(row["id"]),
        })

    def _find_row(self, column: str, value: str) -> Optional[dict[str, Any]]:
        return db.execute(
            f"SELECT {_COLUMNS} FROM transformations WHERE {column} = %s",
            (value,),
            fetch="one",
        )

    # ── Reads ───────────────────────────────────────────────

    def load_all(self) -> LoadResult:
        """Load every record; a corrupt record is skipped and reported."""
        rows = db.execute(
            f"SELECT {_COLUMNS} FROM transformations ORDER BY created_at, id",
            fetch="all",
        )
        result = LoadResult()
        for row in rows:
            try:
                result.definitions.append(self._to_definition(row))
            except (PydanticValidationError, ValueError) as e:
                message = f"Failed to load transformation record {row.get('id')}: {e}"
                logger.error(message)
                result.errors.append(message)
        logger.info(f"Loaded {result.count} persisted transformations")
        return result

    def load_by_name(self, name: str) -> Optional[TransformationDefinition]:
        row = self._find_row("name", name)
        return self._to_definition(row) if row else None

    def load_by_id(self, record_id: str) -> Optional[TransformationDefinition]:
        row = self._find_row("id", str(record_id))
        return self._to_definition(row) if row else None

    def exists(self, name: str) -> bool:
        return self._find_row("name", name) is not None

    def available_names(self) -> list[str]:
        rows = db.execute("SELECT name FROM transformations ORDER BY name", fetch="all")
        return [row["name"] for row in rows]

    def count(self) -> int:
        row = db.execute("SELECT COUNT(*) AS total FROM transformations", fetch="one")
        return int(row["total"]) if row else 0

    # ── Writes ──────────────────────────────────────────────

    def create(
        self,
        name: str,
        description: str,
        version: str,
        steps: list[Any],
    ) -> TransformationDefinition:
        name = normalize_name(name)
        version = str(version) if version is not None else ""
        _validate_record(name, version)
        normalized_steps = _validate_steps(steps)

        if self.exists(name):
            raise ValidationError("Name has already been taken")

        record_id = f"tf-{uuid.uuid4().hex[:12]}"
        now = _now()
        try:
            db.execute(
                "INSERT INTO transformations "
                "(id, name, description, version, steps, transformation_type, created_at, updated_at) "
                "VALUES (%s, %s, %s, %s, %s, %s, %s, %s)",
                (
                    record_id, name, description or "", version,
                    db.json_dumps(normalized_steps), "yaml", now, now,
                ),
            )
        except Exception as e:
            if db.is_integrity_error(e):
                raise ValidationError("Name has already been taken") from e
            raise

        logger.info(f"Created persisted transformation: {name} ({record_id})")
        return self.load_by_id(record_id)

    def update(self, record_id: str, **attributes: Any) -> TransformationDefinition:
        """Update description, version and/or steps of a record.

        A change to the step list bumps the patch version (of the submitted
        version when one is given).
        """
        row = self._find_row("id", str(record_id))
        if row is None:
            raise NotFoundError(f"Transformation not found: {record_id}")

        description = attributes.get("description")
        if description is None:
            description = row.get("description") or ""
        version = attributes.get("version")
        version = str(version) if version is not None else row["version"]

        stored_steps = db.json_loads(row["steps"])
        steps = stored_steps
        if attributes.get("steps") is not None:
            steps = _validate_steps(attributes["steps"])

        _validate_record(row["name"], version)
        if steps != stored_steps:
            version = bump_patch_version(version)

        db.execute(
            "UPDATE transformations SET description = %s, version = %s, steps = %s, "
            "updated_at = %s WHERE id = %s",
            (description, version, db.json_dumps(steps), _now(), row["id"]),
        )
        logger.info(f"Updated persisted transformation: {row['name']} -> {version}")
        return self.load_by_id(row["id"])

    def delete(self, record_id: str) -> bool:
        row = self._find_row("id", str(record_id))
        if row is None:
            raise NotFoundError(f"Transformation not found: {record_id}")
        db.execute("DELETE FROM transformations WHERE id = %s", (row["id"],))
        logger.info(f"Deleted persisted transformation: {row['name']}")
        return True
