"""Core models for tasktrack.

This module defines the core data structures for task tracking:
- Task: A dataclass representing a task record
- Priority: Enum for task priority levels
- create_task: The only place task text is validated
- tasks_to_json / tasks_from_json: The record codec shared by history
  snapshots and file storage
"""

import json
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Iterable, List, Optional
from uuid import uuid4

logger = logging.getLogger(__name__)


class EmptyTextError(ValueError):
    """Raised when a task is created with blank text."""


class MalformedSnapshotError(ValueError):
    """Raised when serialized task data cannot be decoded."""


class Priority(Enum):
    """Task priority levels."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


@dataclass
class Task:
    """Task model representing a single task item.

    Attributes:
        id: Opaque unique identifier, assigned on creation and never changed
        text: Task description
        date: Optional calendar date string (YYYY-MM-DD)
        time: Optional time string, kept separate from date
        priority: Priority level of the task
        done: Whether the task is completed
    """

    id: str
    text: str
    date: Optional[str] = None
    time: Optional[str] = None
    priority: Priority = Priority.MEDIUM
    done: bool = False

    def to_dict(self) -> Dict[str, Any]:
        """Convert the task to a JSON-serializable record."""
        return {
            "id": self.id,
            "text": self.text,
            "date": self.date,
            "time": self.time,
            "priority": self.priority.value,
            "done": self.done,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Task":
        """Build a task from a record produced by to_dict.

        An unknown priority is loaded as MEDIUM rather than rejected.

        Raises:
            KeyError: If a required field is missing
            ValueError: If a field has the wrong type
        """
        if not isinstance(data, dict):
            raise ValueError(f"Task record must be an object, got {type(data).__name__}")

        task_id, text = data["id"], data["text"]
        if not isinstance(task_id, str) or not isinstance(text, str):
            raise ValueError("Task id and text must be strings")

        date, time = data.get("date"), data.get("time")
        for name, value in (("date", date), ("time", time)):
            if value is not None and not isinstance(value, str):
                raise ValueError(f"Task {name} must be a string or null")

        done = data.get("done", False)
        if not isinstance(done, bool):
            raise ValueError("Task done flag must be a boolean")

        raw_priority = data.get("priority", Priority.MEDIUM.value)
        try:
            priority = Priority(raw_priority)
        except ValueError:
            logger.warning("Task %s has unknown priority %r, using medium", task_id, raw_priority)
            priority = Priority.MEDIUM

        return cls(id=task_id, text=text, date=date, time=time, priority=priority, done=done)


def new_task_id() -> str:
    """Generate a short opaque task id such as ``_3f9a1c02b``."""
    return "_" + uuid4().hex[:9]


def create_task(
    text: str,
    date: Optional[str] = None,
    time: Optional[str] = None,
    priority: Priority = Priority.MEDIUM,
    task_id: Optional[str] = None,
) -> Task:
    """Create a new pending task.

    Args:
        text: Task description; surrounding whitespace is stripped
        date: Optional date string, empty string treated as None
        time: Optional time string, empty string treated as None
        priority: Priority level (default: MEDIUM)
        task_id: Id to use instead of a generated one

    Returns:
        The new Task

    Raises:
        EmptyTextError: If text is empty after stripping
    """
    text = text.strip()
    if not text:
        raise EmptyTextError("Task description cannot be empty")

    return Task(
        id=task_id or new_task_id(),
        text=text,
        date=date or None,
        time=time or None,
        priority=priority,
    )


def tasks_to_json(tasks: Iterable[Task], indent: Optional[int] = None) -> str:
    """Serialize an ordered task collection to a JSON array."""
    return json.dumps([task.to_dict() for task in tasks], ensure_ascii=False, indent=indent)


def tasks_from_json(text: str, skip_invalid: bool = False) -> List[Task]:
    """Deserialize a JSON array produced by tasks_to_json.

    Args:
        text: JSON text
        skip_invalid: Drop bad or duplicate records (logging each one) instead
                      of rejecting the whole array; records without an id get
                      a new one

    Raises:
        MalformedSnapshotError: If the text is not a JSON array, or if a
            record is invalid and skip_invalid is False
    """
    try:
        data = json.loads(text)
    except json.JSONDecodeError as e:
        raise MalformedSnapshotError(f"Invalid JSON: {e}") from e

    if not isinstance(data, list):
        raise MalformedSnapshotError("Task data must be a JSON array")

    tasks: List[Task] = []
    seen = set()
    for index, item in enumerate(data):
        if skip_invalid and isinstance(item, dict) and "id" not in item:
            item = {**item, "id": new_task_id()}

        try:
            task = Task.from_dict(item)
        except (KeyError, ValueError) as e:
            if not skip_invalid:
                raise MalformedSnapshotError(f"Invalid task record at index {index}: {e}") from e
            logger.warning("Skipping malformed task record at index %d: %s", index, e)
            continue

        if task.id in seen:
            if not skip_invalid:
                raise MalformedSnapshotError(f"Duplicate task id {task.id}")
            logger.warning("Skipping duplicate task id %s at index %d", task.id, index)
            continue

        seen.add(task.id)
        tasks.append(task)

    return tasks
