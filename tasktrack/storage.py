"""Storage layer for tasktrack.

This module provides an abstract storage interface and a JSON file
implementation for persisting the ordered task collection. JsonStorage uses
fcntl-based file locking so concurrent processes never see a half-written
file.
"""

import fcntl
import logging
import os
from abc import ABC, abstractmethod
from pathlib import Path
from typing import List, Optional

from tasktrack.models import MalformedSnapshotError, Task, tasks_from_json, tasks_to_json

logger = logging.getLogger(__name__)

DEFAULT_DB_PATH = "tasks.json"


class Storage(ABC):
    """Abstract base class for task storage implementations."""

    @abstractmethod
    def save(self, tasks: List[Task]) -> None:
        """Save the task collection.

        Args:
            tasks: Tasks in display order

        Raises:
            OSError: If the data could not be written
        """
        pass

    @abstractmethod
    def load(self) -> List[Task]:
        """Load the task collection.

        Returns:
            Tasks in display order; empty if nothing usable is stored
        """
        pass

    @abstractmethod
    def delete(self) -> None:
        """Delete all data from storage."""
        pass


class JsonStorage(Storage):
    """JSON file-based storage implementation with file locking.

    The file holds a JSON array of task records in collection order.

    Attributes:
        file_path: Path to the JSON storage file
    """

    def __init__(self, file_path: Optional[str] = None):
        """Initialize JsonStorage with a file path.

        Args:
            file_path: Path to the JSON file for storage. If None, uses
                      TASK_DB_PATH environment variable or defaults to tasks.json
        """
        if file_path is None:
            file_path = os.environ.get("TASK_DB_PATH", DEFAULT_DB_PATH)
        self.file_path = Path(file_path)

    def save(self, tasks: List[Task]) -> None:
        """Save tasks to JSON file with file locking."""
        self.file_path.parent.mkdir(parents=True, exist_ok=True)
        payload = tasks_to_json(tasks, indent=2)

        with open(self.file_path, "w", encoding="utf-8") as f:
            fcntl.flock(f.fileno(), fcntl.LOCK_EX)
            try:
                f.write(payload)
            finally:
                fcntl.flock(f.fileno(), fcntl.LOCK_UN)

    def load(self) -> List[Task]:
        """Load tasks from JSON file with file locking.

        Returns:
            List of tasks. Empty if the file doesn't exist, is empty, or
            is not a JSON array. Invalid or duplicate records are skipped
            one by one so the rest of the collection survives.
        """
        if not self.file_path.exists():
            return []

        with open(self.file_path, "r", encoding="utf-8") as f:
            fcntl.flock(f.fileno(), fcntl.LOCK_SH)
            try:
                content = f.read().strip()
            except UnicodeDecodeError as e:
                logger.warning("Ignoring undecodable task file %s: %s", self.file_path, e)
                return []
            finally:
                fcntl.flock(f.fileno(), fcntl.LOCK_UN)

        if not content:
            return []

        try:
            return tasks_from_json(content, skip_invalid=True)
        except MalformedSnapshotError as e:
            logger.warning("Ignoring malformed task file %s: %s", self.file_path, e)
            return []

    def delete(self) -> None:
        """Delete the JSON storage file.

        If the file doesn't exist, this method does nothing.
        """
        if self.file_path.exists():
            self.file_path.unlink()
