import logging
import threading
from enum import Enum
from itertools import count
from pathlib import Path

import srsly
from pydantic import ValidationError

from todos_api.models import Task

logger = logging.getLogger(__name__)


class UpsertResult(str, Enum):
    CREATED = "created"
    REPLACED = "replaced"


class SeedDataError(Exception):
    """Raised when a seed JSONL file contains a malformed task."""


def _check_id(task_id: int) -> None:
    if task_id < 0:
        raise ValueError(f"Task id must be non-negative, got {task_id}")


class TaskStore:
    """In-memory task map guarded by a single lock.

    Reads and writes both take the lock, so readers never see a map that is
    halfway through an update. Stored tasks are frozen, which makes the
    values handed out by reads safe to share.
    """

    def __init__(self) -> None:
        self._tasks: dict[int, Task] = {}
        self._lock = threading.Lock()

    def list_tasks(self) -> list[Task]:
        """List all tasks. Order is unspecified."""
        with self._lock:
            return list(self._tasks.values())

    def get_task(self, task_id: int) -> Task | None:
        """Get a task by id, or None if absent."""
        with self._lock:
            return self._tasks.get(task_id)

    def create_task(self, description: str) -> int:
        """Insert a task under the smallest unused id and return that id."""
        with self._lock:
            task_id = next(i for i in count() if i not in self._tasks)
            self._tasks[task_id] = Task(id=task_id, description=description)
        logger.debug("Created task %d", task_id)
        return task_id

    def upsert_task(self, task_id: int, description: str) -> UpsertResult:
        """Store a task under a caller-chosen id, replacing any current one."""
        _check_id(task_id)
        task = Task(id=task_id, description=description)
        with self._lock:
            existed = task_id in self._tasks
            self._tasks[task_id] = task
        result = UpsertResult.REPLACED if existed else UpsertResult.CREATED
        logger.debug("Upserted task %d (%s)", task_id, result.value)
        return result

    def delete_task(self, task_id: int) -> bool:
        """Remove a task. Returns whether it existed."""
        with self._lock:
            existed = self._tasks.pop(task_id, None) is not None
        logger.debug("Deleted task %d (existed=%s)", task_id, existed)
        return existed

    def load_jsonl(self, path: Path) -> int:
        """Seed tasks from a JSONL file. Returns count of lines processed."""
        total_loaded = 0
        try:
            for line_no, line in enumerate(srsly.read_jsonl(path), start=1):
                try:
                    task = Task.model_validate(line)
                except ValidationError as exc:
                    raise SeedDataError(
                        f"Malformed task on line {line_no} of {path}"
                    ) from exc
                self.upsert_task(task.id, task.description)
                total_loaded += 1
        except ValueError as exc:
            # srsly reports unparseable lines as ValueError.
            raise SeedDataError(f"{exc} of {path}") from exc
        return total_loaded

    @property
    def count(self) -> int:
        with self._lock:
            return len(self._tasks)
