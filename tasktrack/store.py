"""Task store for tasktrack.

This module provides the TaskStore class, the single owner of the ordered
task collection and the selection set. Every mutating operation records a
history snapshot before it changes anything and saves the collection
afterwards; reads go through the query engine.
"""

import logging
import threading
from typing import Iterable, List, Optional, Set

from tasktrack.history import DEFAULT_HISTORY_LIMIT, HistoryManager
from tasktrack.models import Priority, Task, create_task, new_task_id
from tasktrack.query import ViewItem, ViewQuery, build_view
from tasktrack.storage import JsonStorage, Storage

logger = logging.getLogger(__name__)


class TaskStore:
    """Owns the task collection and exposes its operations.

    Operations that reference an id absent from the collection are silent
    no-ops and report this through their return value. Save failures never
    undo the in-memory change; the error is kept in ``last_save_error``.

    Attributes:
        storage: Storage backend the collection is loaded from and saved to
        history: Undo/redo history of the collection
        last_save_error: Exception raised by the most recent failed save, if any
    """

    def __init__(self, storage: Optional[Storage] = None, history_limit: int = DEFAULT_HISTORY_LIMIT):
        """Initialize TaskStore and load the stored collection.

        Args:
            storage: Storage implementation to use. If None, uses JsonStorage
                    with default file path.
            history_limit: Maximum number of undo steps kept
        """
        self._lock = threading.RLock()
        self.storage = storage or JsonStorage()
        self.history = HistoryManager(history_limit)
        self.last_save_error: Optional[Exception] = None
        self._tasks: List[Task] = self.storage.load()
        self._selected: Set[str] = set()

    # -- reads ---------------------------------------------------------

    def __len__(self) -> int:
        with self._lock:
            return len(self._tasks)

    @property
    def tasks(self) -> List[Task]:
        """A copy of the collection in stored order."""
        with self._lock:
            return list(self._tasks)

    def get(self, task_id: str) -> Optional[Task]:
        with self._lock:
            return self._find(task_id)

    def current_view(self, query: Optional[ViewQuery] = None) -> List[ViewItem]:
        """Search, filter and sort the collection for display."""
        with self._lock:
            return build_view(self._tasks, query, self._selected)

    def can_undo(self) -> bool:
        with self._lock:
            return self.history.can_undo()

    def can_redo(self) -> bool:
        with self._lock:
            return self.history.can_redo()

    @property
    def selected_ids(self) -> Set[str]:
        with self._lock:
            return set(self._selected)

    @property
    def selection_count(self) -> int:
        with self._lock:
            return len(self._selected)

    @property
    def save_ok(self) -> bool:
        with self._lock:
            return self.last_save_error is None

    # -- mutations -----------------------------------------------------

    def add(
        self,
        text: str,
        date: Optional[str] = None,
        time: Optional[str] = None,
        priority: Priority = Priority.MEDIUM,
    ) -> Task:
        """Create a task and append it to the collection.

        Raises:
            EmptyTextError: If text is blank; nothing is recorded or saved
        """
        with self._lock:
            task = create_task(text, date, time, priority, task_id=self._unique_id())
            self.history.capture(self._tasks)
            self._tasks.append(task)
            logger.debug("Added task %s", task.id)
            self._persist()
            return task

    def edit_text(self, task_id: str, text: str) -> bool:
        """Replace a task's text.

        Text edits are not recorded in the undo history and the text is
        stored as given, even when blank.

        Returns:
            True if the task exists, False otherwise
        """
        with self._lock:
            task = self._find(task_id)
            if task is None:
                return False

            task.text = text
            self._persist()
            return True

    def toggle_done(self, task_id: str) -> Optional[Task]:
        """Flip a task between done and pending.

        Returns:
            The updated task, or None if it doesn't exist
        """
        with self._lock:
            task = self._find(task_id)
            if task is None:
                return None

            self.history.capture(self._tasks)
            task.done = not task.done
            logger.debug("Task %s done=%s", task.id, task.done)
            self._persist()
            return task

    def delete(self, task_id: str) -> bool:
        """Delete a task.

        Returns:
            True if the task was deleted, False if it didn't exist
        """
        with self._lock:
            if self._find(task_id) is None:
                return False

            self.history.capture(self._tasks)
            self._tasks = [task for task in self._tasks if task.id != task_id]
            self._selected.discard(task_id)
            logger.debug("Deleted task %s", task_id)
            self._persist()
            return True

    def bulk_delete(self, task_ids: Iterable[str]) -> int:
        """Delete several tasks as one undoable step and clear the selection.

        Ids that are not in the collection are ignored.

        Returns:
            Number of tasks deleted
        """
        with self._lock:
            doomed = set(task_ids)
            kept = [task for task in self._tasks if task.id not in doomed]
            removed = len(self._tasks) - len(kept)
            self._selected.clear()

            if removed == 0:
                return 0

            self.history.capture(self._tasks)
            self._tasks = kept
            logger.debug("Deleted %d tasks", removed)
            self._persist()
            return removed

    def delete_selected(self) -> int:
        """Delete every selected task; see bulk_delete."""
        with self._lock:
            return self.bulk_delete(self._selected)

    def reorder(self, src_id: str, target_id: str) -> bool:
        """Move a task to the position currently held by another task.

        The source is taken out and reinserted at the target's index as
        measured before removal: moving down places it just after the
        target, moving up just before it.

        Returns:
            True if the collection changed, False otherwise
        """
        with self._lock:
            if src_id == target_id:
                return False

            src_index = self._index(src_id)
            target_index = self._index(target_id)
            if src_index is None or target_index is None:
                return False

            self.history.capture(self._tasks)
            moved = self._tasks.pop(src_index)
            self._tasks.insert(target_index, moved)
            logger.debug("Moved task %s from %d to %d", src_id, src_index, target_index)
            self._persist()
            return True

    def undo(self) -> bool:
        """Restore the collection to its state before the last mutation.

        Returns:
            True if a step was undone, False if there was nothing to undo
        """
        with self._lock:
            restored = self.history.undo(self._tasks)
            if restored is None:
                return False

            self._restore(restored)
            logger.debug("Undo performed")
            return True

    def redo(self) -> bool:
        """Reapply the last undone mutation.

        Returns:
            True if a step was redone, False if there was nothing to redo
        """
        with self._lock:
            restored = self.history.redo(self._tasks)
            if restored is None:
                return False

            self._restore(restored)
            logger.debug("Redo performed")
            return True

    # -- selection -----------------------------------------------------

    def select(self, task_id: str) -> bool:
        """Mark a task for bulk operations; unknown ids are ignored."""
        with self._lock:
            if self._find(task_id) is None:
                return False
            self._selected.add(task_id)
            return True

    def deselect(self, task_id: str) -> None:
        with self._lock:
            self._selected.discard(task_id)

    def clear_selection(self) -> None:
        with self._lock:
            self._selected.clear()

    # -- internals -----------------------------------------------------

    def _find(self, task_id: str) -> Optional[Task]:
        for task in self._tasks:
            if task.id == task_id:
                return task
        return None

    def _index(self, task_id: str) -> Optional[int]:
        for index, task in enumerate(self._tasks):
            if task.id == task_id:
                return index
        return None

    def _unique_id(self) -> str:
        existing = {task.id for task in self._tasks}
        task_id = new_task_id()
        while task_id in existing:
            task_id = new_task_id()
        return task_id

    def _restore(self, tasks: List[Task]) -> None:
        self._tasks = tasks
        present = {task.id for task in tasks}
        self._selected &= present
        self._persist()

    def _persist(self) -> None:
        try:
            self.storage.save(self._tasks)
        except OSError as e:
            self.last_save_error = e
            logger.warning("Could not save tasks: %s", e)
        else:
            self.last_save_error = None
