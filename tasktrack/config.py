"""Settings for tasktrack, read from environment variables.

- TASK_DB_PATH: JSON file holding the tasks (default: tasks.json)
- TASK_HISTORY_LIMIT: Number of undo steps kept (default: 50)
- TASK_LOG_LEVEL: Logging level name (default: WARNING)
- TASK_LOG_FILE: Optional file that also receives log output
"""

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from tasktrack.history import DEFAULT_HISTORY_LIMIT
from tasktrack.storage import DEFAULT_DB_PATH


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        value = int(raw)
    except ValueError:
        return default
    return value if value > 0 else default


def _env_path(name: str) -> Optional[Path]:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return None
    return Path(raw).expanduser()


@dataclass(frozen=True)
class Settings:
    db_path: Path
    history_limit: int
    log_level: str
    log_file: Optional[Path]


def load_settings() -> Settings:
    """Build Settings from the current environment."""
    return Settings(
        db_path=_env_path("TASK_DB_PATH") or Path(DEFAULT_DB_PATH),
        history_limit=_env_int("TASK_HISTORY_LIMIT", DEFAULT_HISTORY_LIMIT),
        log_level=os.getenv("TASK_LOG_LEVEL", "WARNING").strip().upper() or "WARNING",
        log_file=_env_path("TASK_LOG_FILE"),
    )
