"""Versioned load step for persisted task records.

Records written by earlier versions of the tracker may lack ``priority`` or
store ``dependsOn`` as a scalar. Each migration step upgrades raw dicts by one
schema version; ``load_tasks`` runs the steps once and then validates.
"""

import logging
from typing import Any, Callable

from pydantic import ValidationError as PydanticValidationError

from taskgraph.tasks.models import Task

logger = logging.getLogger(__name__)

CURRENT_SCHEMA_VERSION = 2


def _normalize_depends_on(value: Any) -> list:
    if isinstance(value, list):
        return value
    if value in (None, "", 0):
        return []
    return [value]


def _v0_to_v1(record: dict) -> dict:
    """Default missing priority and normalize dependsOn to a list."""
    record = dict(record)
    if not record.get("priority"):
        record["priority"] = "medium"
    record["dependsOn"] = _normalize_depends_on(record.get("dependsOn"))
    return record


def _v1_to_v2(record: dict) -> dict:
    """Coerce dependency ids to int and drop self references."""
    record = dict(record)
    try:
        own_id = int(record.get("id"))
    except (TypeError, ValueError):
        own_id = None

    deps = []
    for dep in record.get("dependsOn", []):
        try:
            dep_id = int(dep)
        except (TypeError, ValueError):
            logger.warning(f"Dropping invalid dependency id {dep!r} on task {record.get('id')}")
            continue
        if dep_id == own_id or dep_id in deps:
            continue
        deps.append(dep_id)
    record["dependsOn"] = deps
    return record


MIGRATIONS: dict[int, Callable[[dict], dict]] = {
    0: _v0_to_v1,
    1: _v1_to_v2,
}


def migrate_records(records: list[dict], from_version: int) -> list[dict]:
    """
    Upgrade raw task records to the current schema.

    Args:
        records: Raw dicts as read from storage
        from_version: Schema version the records were written with

    Returns:
        Upgraded raw dicts
    """
    version = max(from_version, 0)
    while version < CURRENT_SCHEMA_VERSION:
        step = MIGRATIONS[version]
        records = [step(r) for r in records]
        logger.info(f"Migrated {len(records)} task records from schema v{version} to v{version + 1}")
        version += 1
    return records


def load_tasks(raw: Any, from_version: int = 0) -> list[Task]:
    """
    Deserialize persisted task records, migrating them first.

    Non-list input loads as an empty list; individual records that fail
    validation are skipped with a warning.
    """
    if not isinstance(raw, list):
        if raw is not None:
            logger.warning(f"Expected a list of task records, got {type(raw).__name__}")
        return []

    records = [r for r in raw if isinstance(r, dict)]
    tasks = []
    for record in migrate_records(records, from_version):
        try:
            tasks.append(Task.model_validate(record))
        except PydanticValidationError as e:
            logger.warning(f"Skipping invalid task record {record.get('id')}: {e}")
    return tasks
