"""Undo/redo history for tasktrack.

Each history entry is a full JSON snapshot of the task collection, not a
diff. The undo stack is bounded and drops its oldest entry first; the redo
stack is emptied by every new capture.
"""

from collections import deque
from typing import Deque, List, Optional

from tasktrack.models import Task, tasks_from_json, tasks_to_json

DEFAULT_HISTORY_LIMIT = 50


class HistoryManager:
    """Bounded undo/redo stacks of collection snapshots.

    Attributes:
        limit: Maximum number of entries kept on the undo stack
    """

    def __init__(self, limit: int = DEFAULT_HISTORY_LIMIT):
        if limit < 1:
            raise ValueError("History limit must be at least 1")
        self.limit = limit
        self._undo: Deque[str] = deque(maxlen=limit)
        self._redo: List[str] = []

    def capture(self, tasks: List[Task]) -> None:
        """Record the collection as it is before a mutation.

        Args:
            tasks: The collection about to be mutated
        """
        self._undo.append(tasks_to_json(tasks))
        self._redo.clear()

    def undo(self, tasks: List[Task]) -> Optional[List[Task]]:
        """Step back one entry.

        Args:
            tasks: The current collection, saved for redo

        Returns:
            The restored collection, or None if there is nothing to undo
        """
        if not self._undo:
            return None

        self._redo.append(tasks_to_json(tasks))
        return tasks_from_json(self._undo.pop())

    def redo(self, tasks: List[Task]) -> Optional[List[Task]]:
        """Step forward one entry.

        Args:
            tasks: The current collection, saved for undo

        Returns:
            The restored collection, or None if there is nothing to redo
        """
        if not self._redo:
            return None

        # Same bound as capture
        self._undo.append(tasks_to_json(tasks))
        return tasks_from_json(self._redo.pop())

    def can_undo(self) -> bool:
        return bool(self._undo)

    def can_redo(self) -> bool:
        return bool(self._redo)

    @property
    def undo_depth(self) -> int:
        return len(self._undo)

    @property
    def redo_depth(self) -> int:
        return len(self._redo)

    def clear(self) -> None:
        """Forget all history."""
        self._undo.clear()
        self._redo.clear()
