"""Checkpointer and memory-store factories.

The review-enabled workflows pause on ``interrupt()`` and resume later, so
their graph state and the learned preferences have to outlive the process.
SQLite backs both by default; tests and one-off runs use the in-memory
variants.
"""

from __future__ import annotations

import atexit
import logging
import os
import sqlite3
from functools import lru_cache
from pathlib import Path
from typing import Optional

from langgraph.checkpoint.memory import MemorySaver
from langgraph.checkpoint.sqlite import SqliteSaver
from langgraph.store.memory import InMemoryStore
from langgraph.store.sqlite import SqliteStore

_CHECKPOINT_PATH_ENV = "INBOX_TRIAGE_CHECKPOINT_PATH"
_STORE_PATH_ENV = "INBOX_TRIAGE_STORE_PATH"
_TIMEOUT_ENV = "INBOX_TRIAGE_SQLITE_TIMEOUT"

_DEFAULT_CHECKPOINT_FILENAME = "inbox_triage_checkpoints.sqlite"
_DEFAULT_STORE_FILENAME = "inbox_triage_store.sqlite"
_DEFAULT_TIMEOUT_SECONDS = 30.0


logger = logging.getLogger(__name__)


def _resolve_path(explicit: Optional[str], env_name: str, fallback_filename: str) -> Path:
    raw = explicit or os.getenv(env_name)
    path = Path(raw).expanduser() if raw else Path.home() / ".langgraph" / fallback_filename
    if not path.is_absolute():
        path = Path.cwd() / path
    path.parent.mkdir(parents=True, exist_ok=True)
    return path


def _resolve_timeout_seconds() -> float:
    """SQLite busy timeout from ``INBOX_TRIAGE_SQLITE_TIMEOUT``; bad values fall back to 30s."""

    raw_value = os.getenv(_TIMEOUT_ENV)
    if raw_value is None:
        return _DEFAULT_TIMEOUT_SECONDS

    try:
        timeout = float(raw_value)
    except ValueError:
        timeout = -1.0

    if timeout <= 0:
        logger.warning(
            "Ignoring %s=%r; using %.1fs",
            _TIMEOUT_ENV,
            raw_value,
            _DEFAULT_TIMEOUT_SECONDS,
        )
        return _DEFAULT_TIMEOUT_SECONDS
    return timeout


def _open_connection(path: Path, *, autocommit: bool = False) -> sqlite3.Connection:
    timeout_seconds = _resolve_timeout_seconds()
    conn = sqlite3.connect(str(path), check_same_thread=False, timeout=timeout_seconds)
    if autocommit:
        # SqliteStore issues its own BEGIN/COMMIT
        conn.isolation_level = None
    # WAL lets the CLI and a test run share the same files
    conn.execute("PRAGMA journal_mode=WAL")
    conn.execute(f"PRAGMA busy_timeout = {int(timeout_seconds * 1000)}")
    atexit.register(conn.close)
    logger.debug("Opened SQLite database at %s", path)
    return conn


@lru_cache(maxsize=4)
def get_sqlite_checkpointer(path: Optional[str] = None) -> SqliteSaver:
    """Cached ``SqliteSaver`` for ``path`` (or ``INBOX_TRIAGE_CHECKPOINT_PATH``)."""

    resolved = _resolve_path(path, _CHECKPOINT_PATH_ENV, _DEFAULT_CHECKPOINT_FILENAME)
    return SqliteSaver(_open_connection(resolved))


@lru_cache(maxsize=4)
def get_sqlite_store(path: Optional[str] = None) -> SqliteStore:
    """Cached ``SqliteStore`` for ``path`` (or ``INBOX_TRIAGE_STORE_PATH``), schema created."""

    resolved = _resolve_path(path, _STORE_PATH_ENV, _DEFAULT_STORE_FILENAME)
    store = SqliteStore(_open_connection(resolved, autocommit=True))
    store.setup()
    return store


def new_memory_checkpointer() -> MemorySaver:
    return MemorySaver()


def new_memory_store() -> InMemoryStore:
    return InMemoryStore()
