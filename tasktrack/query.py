"""Query engine for tasktrack.

Pure functions that turn the task collection into the list a front-end
displays: search and filter are ANDed, the matching subset is sorted, and
each row carries its selection mark and highlighted text. Nothing here
changes the collection itself.
"""

import html
import locale
import re
from dataclasses import dataclass
from enum import Enum
from typing import AbstractSet, Callable, Dict, Iterable, List, Optional, Tuple, Union

from tasktrack.models import Priority, Task

MARK_OPEN = "<mark>"
MARK_CLOSE = "</mark>"


class FilterMode(Enum):
    """Completion filter."""

    ALL = "all"
    DONE = "done"
    PENDING = "pending"


class SortKey(Enum):
    """Available sort orders."""

    DATE_ASC = "date-asc"
    DATE_DESC = "date-desc"
    PRIORITY_ASC = "priority-asc"
    PRIORITY_DESC = "priority-desc"
    NAME_ASC = "name-asc"
    NAME_DESC = "name-desc"


PRIORITY_RANK: Dict[Priority, int] = {
    Priority.LOW: 1,
    Priority.MEDIUM: 2,
    Priority.HIGH: 3,
}


@dataclass(frozen=True)
class ViewQuery:
    """Parameters of a view.

    Attributes:
        search: Case-insensitive substring to look for in task text
        filter_mode: Which completion states to keep
        sort_key: Sort order; anything unrecognized keeps collection order
    """

    search: str = ""
    filter_mode: FilterMode = FilterMode.ALL
    sort_key: Optional[Union[SortKey, str]] = None


@dataclass(frozen=True)
class ViewItem:
    """One displayed row."""

    task: Task
    selected: bool
    highlighted: str


def priority_value(priority: Optional[Priority]) -> int:
    """Rank a priority for sorting; unknown or missing ranks 0."""
    return PRIORITY_RANK.get(priority, 0)


def matches_search(task: Task, term: str) -> bool:
    term = term.strip().lower()
    return not term or term in task.text.lower()


def matches_filter(task: Task, mode: FilterMode) -> bool:
    if mode is FilterMode.DONE:
        return task.done
    if mode is FilterMode.PENDING:
        return not task.done
    return True


def _date_key(task: Task) -> str:
    # Plain string comparison, so "2024-2-1" sorts after "2024-10-1"
    return task.date or ""


def _priority_key(task: Task) -> int:
    return priority_value(task.priority)


def _name_key(task: Task) -> Tuple[str, str]:
    # Case-insensitive order first, exact collation breaks ties
    return locale.strxfrm(task.text.casefold()), locale.strxfrm(task.text)


_SORTS: Dict[SortKey, Tuple[Callable[[Task], object], bool]] = {
    SortKey.DATE_ASC: (_date_key, False),
    SortKey.DATE_DESC: (_date_key, True),
    SortKey.PRIORITY_ASC: (_priority_key, False),
    SortKey.PRIORITY_DESC: (_priority_key, True),
    SortKey.NAME_ASC: (_name_key, False),
    SortKey.NAME_DESC: (_name_key, True),
}


def parse_sort_key(value: Optional[Union[SortKey, str]]) -> Optional[SortKey]:
    """Resolve a sort key, returning None for anything unrecognized."""
    if value is None or isinstance(value, SortKey):
        return value
    try:
        return SortKey(value)
    except ValueError:
        return None


def sort_tasks(tasks: Iterable[Task], sort_key: Optional[Union[SortKey, str]]) -> List[Task]:
    """Return tasks sorted by sort_key.

    The sort is stable in both directions: tasks that compare equal keep
    their relative order. An unrecognized key returns the tasks unchanged.
    """
    tasks = list(tasks)
    key = parse_sort_key(sort_key)
    if key is None:
        return tasks

    key_func, reverse = _SORTS[key]
    return sorted(tasks, key=key_func, reverse=reverse)


def highlight(text: str, term: str) -> str:
    """HTML-escape text and wrap each occurrence of term in a mark tag.

    Matching is case-insensitive and literal: regex metacharacters in the
    term carry no special meaning.
    """
    term = term.strip()
    if not term:
        return html.escape(text)

    pattern = re.compile(re.escape(term), re.IGNORECASE)
    parts = []
    pos = 0
    for match in pattern.finditer(text):
        parts.append(html.escape(text[pos:match.start()]))
        parts.append(MARK_OPEN + html.escape(match.group(0)) + MARK_CLOSE)
        pos = match.end()
    parts.append(html.escape(text[pos:]))
    return "".join(parts)


def build_view(
    tasks: Iterable[Task],
    query: Optional[ViewQuery] = None,
    selected: AbstractSet[str] = frozenset(),
) -> List[ViewItem]:
    """Produce the displayed rows for a collection.

    Args:
        tasks: The task collection in its stored order
        query: Search, filter and sort parameters (default: everything, unsorted)
        selected: Ids currently selected for bulk operations

    Returns:
        Ordered rows; an empty list means no task matched
    """
    query = query or ViewQuery()
    matching = [
        task for task in tasks
        if matches_search(task, query.search) and matches_filter(task, query.filter_mode)
    ]

    return [
        ViewItem(task=task, selected=task.id in selected, highlighted=highlight(task.text, query.search))
        for task in sort_tasks(matching, query.sort_key)
    ]
