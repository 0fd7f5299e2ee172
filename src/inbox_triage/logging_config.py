"""Central logging setup for the triage agent."""

from __future__ import annotations

import logging
import os
from pathlib import Path

__all__ = ["setup_logging", "resolve_level"]

_LOG_PATH_ENV = "INBOX_TRIAGE_LOG_PATH"
_LOG_LEVEL_ENV = "INBOX_TRIAGE_LOG_LEVEL"
_DEFAULT_LOG_PATH = "logs/inbox_triage.log"
_LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


def _file_handler_for(root: logging.Logger, candidate: Path) -> logging.FileHandler | None:
    for handler in root.handlers:
        if not isinstance(handler, logging.FileHandler):
            continue
        if Path(getattr(handler, "baseFilename", "")).resolve() == candidate:
            return handler
    return None


def resolve_level(value: str | int | None) -> int:
    """Map a level name (or number) onto a logging level, defaulting to INFO."""

    if isinstance(value, int):
        return value
    if not value:
        return logging.INFO
    level = logging.getLevelName(value.strip().upper())
    # getLevelName answers "Level FOO" for names it does not know
    return level if isinstance(level, int) else logging.INFO


def setup_logging(level: str | int | None = None, log_path: str | Path | None = None) -> Path:
    """Route records to the console and to a shared log file.

    ``level`` and ``log_path`` fall back to ``INBOX_TRIAGE_LOG_LEVEL`` and
    ``INBOX_TRIAGE_LOG_PATH``. Calling this again (the CLI does, after parsing
    ``--log-level``) lowers the thresholds without stacking duplicate handlers.
    Returns the resolved log path.
    """

    log_level = resolve_level(level if level is not None else os.getenv(_LOG_LEVEL_ENV))
    target = Path(log_path or os.getenv(_LOG_PATH_ENV, _DEFAULT_LOG_PATH)).expanduser().resolve()
    target.parent.mkdir(parents=True, exist_ok=True)

    root = logging.getLogger()
    if not root.handlers:
        logging.basicConfig(level=log_level, format=_LOG_FORMAT)
    root.setLevel(log_level)

    file_handler = _file_handler_for(root, target)
    if file_handler is None:
        file_handler = logging.FileHandler(target, encoding="utf-8")
        file_handler.setFormatter(logging.Formatter(_LOG_FORMAT))
        root.addHandler(file_handler)
    file_handler.setLevel(log_level)

    # Provider SDKs log every HTTP round trip at INFO
    for noisy in ("httpx", "httpcore", "google_genai"):
        logging.getLogger(noisy).setLevel(max(log_level, logging.WARNING))

    return target
