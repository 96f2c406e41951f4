"""JSON-file key-value store and tracker repository."""

import json
import logging
from pathlib import Path
from typing import Any

from pydantic import ValidationError as PydanticValidationError

from taskgraph.tasks.migration import CURRENT_SCHEMA_VERSION, load_tasks
from taskgraph.tasks.models import Goal, Task, WeekRecord

logger = logging.getLogger(__name__)

TASKS_KEY = "currentTasks"
HISTORY_KEY = "weeklyHistory"
SUMMARY_KEY = "currentSummary"
GOALS_KEY = "goals"
SCHEMA_KEY = "schemaVersion"


class KeyValueStore:
    """One JSON file per key under a data directory."""

    def __init__(self, data_dir: str = ".taskgraph/data"):
        self.data_dir = Path(data_dir)
        self.data_dir.mkdir(parents=True, exist_ok=True)

    def _path(self, key: str) -> Path:
        return self.data_dir / f"{key}.json"

    def get(self, key: str, default: Any = None) -> Any:
        """Read a value, falling back to ``default`` when missing or unreadable."""
        path = self._path(key)
        if not path.exists():
            return default

        try:
            with open(path) as f:
                return json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            logger.warning(f"Failed to read {path}: {e}")
            return default

    def put(self, key: str, value: Any) -> None:
        """Write a full value, replacing what was there."""
        path = self._path(key)
        tmp_path = path.with_suffix(".json.tmp")

        with open(tmp_path, "w") as f:
            json.dump(value, f, indent=2)
        tmp_path.replace(path)

        logger.debug(f"Saved {key} to {path}")

    def remove(self, key: str) -> bool:
        path = self._path(key)
        if path.exists():
            path.unlink()
            logger.debug(f"Removed {key}")
            return True
        return False


class TrackerRepository:
    """Loads and saves the tracker's records as full snapshots."""

    def __init__(self, store: KeyValueStore):
        self.store = store

    def load_tasks(self) -> list[Task]:
        """Load current tasks, migrating legacy records once."""
        version = self.store.get(SCHEMA_KEY, 0)
        if isinstance(version, bool) or not isinstance(version, int) or version < 0:
            logger.warning(f"Ignoring invalid schema version {version!r}, migrating from v0")
            version = 0

        tasks = load_tasks(self.store.get(TASKS_KEY, []), from_version=version)
        if version < CURRENT_SCHEMA_VERSION:
            self.save_tasks(tasks)
            self.store.put(SCHEMA_KEY, CURRENT_SCHEMA_VERSION)

        logger.info(f"Loaded {len(tasks)} tasks from {self.store.data_dir}")
        return tasks

    def save_tasks(self, tasks: list[Task]) -> None:
        self.store.put(TASKS_KEY, [t.to_record() for t in tasks])

    def load_history(self) -> list[WeekRecord]:
        raw = self.store.get(HISTORY_KEY, [])
        if not isinstance(raw, list):
            return []

        weeks = []
        for record in raw:
            if not isinstance(record, dict):
                continue
            record = dict(record)
            record["tasks"] = [t.to_record() for t in load_tasks(record.get("tasks", []))]
            try:
                weeks.append(WeekRecord.model_validate(record))
            except PydanticValidationError as e:
                logger.warning(f"Skipping invalid week record {record.get('id')}: {e}")
        return weeks

    def save_history(self, weeks: list[WeekRecord]) -> None:
        self.store.put(HISTORY_KEY, [w.to_record() for w in weeks])

    def load_goals(self) -> list[Goal]:
        raw = self.store.get(GOALS_KEY, [])
        if not isinstance(raw, list):
            return []

        goals = []
        for record in raw:
            try:
                goals.append(Goal.model_validate(record))
            except PydanticValidationError as e:
                logger.warning(f"Skipping invalid goal record: {e}")
        return goals

    def save_goals(self, goals: list[Goal]) -> None:
        self.store.put(GOALS_KEY, [g.to_record() for g in goals])

    def load_summary(self) -> str:
        value = self.store.get(SUMMARY_KEY, "")
        return value if isinstance(value, str) else ""

    def save_summary(self, summary: str) -> None:
        self.store.put(SUMMARY_KEY, summary)

    def clear_summary(self) -> None:
        self.store.remove(SUMMARY_KEY)
