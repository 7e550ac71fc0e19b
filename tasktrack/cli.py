"""Command-line interface for tasktrack.

This module provides the CLI interface for managing tasks using argparse.
It supports the following commands:
- add: Create a new task
- list: Search, filter and sort tasks
- done: Toggle a task between done and pending
- edit: Replace a task's text
- delete / delete-many: Delete one or several tasks
- move: Move a task to another task's position
- shell: Interactive session with undo, redo and selection
"""

import argparse
import html
import locale
import logging
import shlex
import sys
from typing import Callable, Dict, List, Optional

from tasktrack.config import load_settings
from tasktrack.logging_setup import setup_logging
from tasktrack.models import EmptyTextError, Priority
from tasktrack.query import MARK_CLOSE, MARK_OPEN, FilterMode, SortKey, ViewItem, ViewQuery
from tasktrack.storage import JsonStorage
from tasktrack.store import TaskStore

logger = logging.getLogger(__name__)

SHELL_PROMPT = "task> "

Handler = Callable[[argparse.Namespace, TaskStore], int]


def _add_task_commands(subparsers) -> None:
    # Add command
    add_parser = subparsers.add_parser("add", help="Add a new task")
    add_parser.add_argument("text", help="Task description")
    add_parser.add_argument("--date", help="Due date (YYYY-MM-DD)")
    add_parser.add_argument("--time", help="Due time (HH:MM)")
    add_parser.add_argument(
        "--priority",
        choices=[p.value for p in Priority],
        default=Priority.MEDIUM.value,
        help="Task priority (default: medium)"
    )

    # List command
    list_parser = subparsers.add_parser("list", help="List tasks")
    list_parser.add_argument("--search", default="", help="Only tasks containing this text")
    list_parser.add_argument(
        "--filter",
        choices=[m.value for m in FilterMode],
        default=FilterMode.ALL.value,
        help="Filter tasks by status (default: all)"
    )
    list_parser.add_argument(
        "--sort",
        choices=[k.value for k in SortKey],
        help="Sort order (default: stored order)"
    )

    # Done command
    done_parser = subparsers.add_parser("done", help="Toggle a task between done and pending")
    done_parser.add_argument("id", help="Task ID")

    # Edit command
    edit_parser = subparsers.add_parser("edit", help="Change a task's text")
    edit_parser.add_argument("id", help="Task ID")
    edit_parser.add_argument("text", help="New task description")

    # Delete commands
    delete_parser = subparsers.add_parser("delete", help="Delete a task")
    delete_parser.add_argument("id", help="Task ID")

    delete_many_parser = subparsers.add_parser("delete-many", help="Delete several tasks at once")
    delete_many_parser.add_argument("ids", nargs="+", help="Task IDs")

    # Move command
    move_parser = subparsers.add_parser("move", help="Move a task to another task's position")
    move_parser.add_argument("id", help="ID of the task to move")
    move_parser.add_argument("target", help="ID of the task whose position it takes")


def create_parser() -> argparse.ArgumentParser:
    """Create and configure the argument parser.

    Returns:
        Configured ArgumentParser instance
    """
    parser = argparse.ArgumentParser(
        prog="task",
        description="Personal task tracker"
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")
    _add_task_commands(subparsers)
    subparsers.add_parser("shell", help="Start an interactive session with undo/redo")

    return parser


def create_shell_parser() -> argparse.ArgumentParser:
    """Create the parser used for lines typed into the interactive shell."""
    parser = argparse.ArgumentParser(prog="", add_help=False)

    subparsers = parser.add_subparsers(dest="command")
    _add_task_commands(subparsers)
    subparsers.add_parser("undo", help="Undo the last change")
    subparsers.add_parser("redo", help="Redo the last undone change")
    select_parser = subparsers.add_parser("select", help="Mark tasks for deletion")
    select_parser.add_argument("ids", nargs="+", help="Task IDs")
    deselect_parser = subparsers.add_parser("deselect", help="Unmark tasks")
    deselect_parser.add_argument("ids", nargs="+", help="Task IDs")
    subparsers.add_parser("delete-selected", help="Delete every selected task")
    subparsers.add_parser("help", help="Show commands")
    subparsers.add_parser("quit", help="Leave the shell")

    return parser


def format_item(item: ViewItem, color: bool = False) -> str:
    """Render one view row as a line of text."""
    task = item.task
    if color:
        text = item.highlighted.replace(MARK_OPEN, "\033[1;33m").replace(MARK_CLOSE, "\033[0m")
    else:
        text = item.highlighted.replace(MARK_OPEN, "").replace(MARK_CLOSE, "")
    text = html.unescape(text)

    done_icon = "x" if task.done else " "
    select_icon = "*" if item.selected else " "
    when = " ".join(part for part in (task.date, task.time) if part)
    line = f"[{done_icon}]{select_icon}{task.id} {text} [{task.priority.value}]"
    if when:
        line += f" ({when})"
    return line


def cmd_add(args: argparse.Namespace, store: TaskStore) -> int:
    """Handle the 'add' command.

    Args:
        args: Parsed command-line arguments
        store: TaskStore instance

    Returns:
        Exit code (0 for success, 1 for error)
    """
    try:
        task = store.add(args.text, date=args.date, time=args.time, priority=Priority(args.priority))
    except EmptyTextError as e:
        print(f"Error: {e}.", file=sys.stderr)
        return 1

    print(f"Task added: {task.id} {task.text} [{task.priority.value}]")
    return 0


def cmd_list(args: argparse.Namespace, store: TaskStore) -> int:
    """Handle the 'list' command.

    Args:
        args: Parsed command-line arguments
        store: TaskStore instance

    Returns:
        Exit code (0 for success)
    """
    query = ViewQuery(search=args.search, filter_mode=FilterMode(args.filter), sort_key=args.sort)
    items = store.current_view(query)

    if not items:
        print("No tasks found.")
        return 0

    color = sys.stdout.isatty()
    for item in items:
        print(format_item(item, color=color))

    return 0


def cmd_done(args: argparse.Namespace, store: TaskStore) -> int:
    """Handle the 'done' command.

    Returns:
        Exit code (0 for success, 1 for error)
    """
    task = store.toggle_done(args.id)

    if task is None:
        print(f"Error: Task {args.id} not found.", file=sys.stderr)
        return 1

    state = "done" if task.done else "pending"
    print(f"Task {task.id} marked as {state}: {task.text}")
    return 0


def cmd_edit(args: argparse.Namespace, store: TaskStore) -> int:
    """Handle the 'edit' command."""
    if not store.edit_text(args.id, args.text.strip()):
        print(f"Error: Task {args.id} not found.", file=sys.stderr)
        return 1

    print(f"Task {args.id} updated.")
    return 0


def cmd_delete(args: argparse.Namespace, store: TaskStore) -> int:
    """Handle the 'delete' command.

    Returns:
        Exit code (0 for success, 1 for error)
    """
    deleted = store.delete(args.id)

    if not deleted:
        print(f"Error: Task {args.id} not found.", file=sys.stderr)
        return 1

    print(f"Task {args.id} deleted.")
    return 0


def cmd_delete_many(args: argparse.Namespace, store: TaskStore) -> int:
    """Handle the 'delete-many' command."""
    count = store.bulk_delete(args.ids)
    print(f"{count} task(s) deleted.")
    return 0


def cmd_move(args: argparse.Namespace, store: TaskStore) -> int:
    """Handle the 'move' command."""
    if args.id == args.target:
        print("Nothing to move.")
        return 0

    if not store.reorder(args.id, args.target):
        print(f"Error: Task {args.id} or {args.target} not found.", file=sys.stderr)
        return 1

    print(f"Task {args.id} moved.")
    return 0


def cmd_undo(args: argparse.Namespace, store: TaskStore) -> int:
    if not store.undo():
        print("Nothing to undo.")
        return 1
    print("Undo performed.")
    return 0


def cmd_redo(args: argparse.Namespace, store: TaskStore) -> int:
    if not store.redo():
        print("Nothing to redo.")
        return 1
    print("Redo performed.")
    return 0


def cmd_select(args: argparse.Namespace, store: TaskStore) -> int:
    status = 0
    for task_id in args.ids:
        if not store.select(task_id):
            print(f"Error: Task {task_id} not found.", file=sys.stderr)
            status = 1
    print(f"{store.selection_count} task(s) selected.")
    return status


def cmd_deselect(args: argparse.Namespace, store: TaskStore) -> int:
    for task_id in args.ids:
        store.deselect(task_id)
    print(f"{store.selection_count} task(s) selected.")
    return 0


def cmd_delete_selected(args: argparse.Namespace, store: TaskStore) -> int:
    if store.selection_count == 0:
        print("No tasks selected.")
        return 1
    count = store.delete_selected()
    print(f"Selected tasks deleted ({count}).")
    return 0


COMMANDS: Dict[str, Handler] = {
    "add": cmd_add,
    "list": cmd_list,
    "done": cmd_done,
    "edit": cmd_edit,
    "delete": cmd_delete,
    "delete-many": cmd_delete_many,
    "move": cmd_move,
}

SHELL_COMMANDS: Dict[str, Handler] = {
    **COMMANDS,
    "undo": cmd_undo,
    "redo": cmd_redo,
    "select": cmd_select,
    "deselect": cmd_deselect,
    "delete-selected": cmd_delete_selected,
}


def dispatch(args: argparse.Namespace, store: TaskStore, commands: Dict[str, Handler]) -> int:
    """Run the handler for a parsed command and report save failures."""
    handler = commands.get(args.command)
    if handler is None:
        print(f"Error: Unknown command '{args.command}'", file=sys.stderr)
        return 1

    status = handler(args, store)
    if not store.save_ok:
        print(f"Warning: changes were not saved: {store.last_save_error}", file=sys.stderr)
    return status


def print_status(store: TaskStore) -> None:
    undo = "yes" if store.can_undo() else "no"
    redo = "yes" if store.can_redo() else "no"
    print(f"-- undo: {undo}  redo: {redo}  selected: {store.selection_count}")


def run_shell(store: TaskStore, input_func: Callable[[str], str] = input) -> int:
    """Read commands until 'quit' or end of input.

    Args:
        store: TaskStore shared by every command of the session
        input_func: Line reader, replaceable for tests

    Returns:
        Exit code (always 0)
    """
    parser = create_shell_parser()

    while True:
        try:
            line = input_func(SHELL_PROMPT)
        except EOFError:
            print()
            break

        try:
            argv = shlex.split(line)
        except ValueError as e:
            print(f"Error: {e}", file=sys.stderr)
            continue

        if not argv:
            continue

        try:
            args = parser.parse_args(argv)
        except SystemExit:
            # argparse already printed the problem
            continue

        if args.command == "quit":
            break
        if args.command == "help":
            parser.print_help()
            continue

        dispatch(args, store, SHELL_COMMANDS)
        if args.command != "list":
            print_status(store)

    return 0


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point for the CLI.

    Args:
        argv: Command-line arguments. If None, uses sys.argv[1:]

    Returns:
        Exit code (0 for success, non-zero for error)
    """
    parser = create_parser()
    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        return 1

    settings = load_settings()
    setup_logging(settings.log_level, settings.log_file)
    logger.debug("Using task file %s", settings.db_path)

    try:
        locale.setlocale(locale.LC_COLLATE, "")
    except locale.Error as e:
        logger.warning("Could not apply the user's collation locale: %s", e)

    store = TaskStore(JsonStorage(str(settings.db_path)), history_limit=settings.history_limit)

    if args.command == "shell":
        return run_shell(store)

    return dispatch(args, store, COMMANDS)


if __name__ == "__main__":
    sys.exit(main())
