#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
===============================================================================
Arisu ▸ Unified Logging Facility
===============================================================================

Purpose
-------
Provide one **centralised**, **idempotent** logger configuration used across the
project.  Other modules obtain loggers via:

    from arisu import get_logger

Key features
------------
* Console output – WARNING level by default so log lines do not interleave
  with the conversation on the terminal (override via env).
* Daily rotating file – DEBUG level, 7 days retention (both tunable).
* Idempotent – root handlers are configured **once**; child loggers propagate.
* Resilient – falls back to a temp dir, then console‑only, if log dir unwritable.
* Environment overrides:
    ARISU_LOG_DIR   – log directory (default: ~/.config/arisu/log)
    ARISU_LOG_LVL   – console level  (DEBUG / INFO / WARNING / … or numeric)
    ARISU_LOG_ROT   – rotation schedule ("midnight", "H", "M", …)
    ARISU_LOG_BACK  – number of backup files (default 7)
    ARISU_LOG_UTC   – truthy → timestamps & rotation in UTC (1/true/yes/on)
    ARISU_LOG_JSON  – truthy → emit JSON lines to console
"""
from __future__ import annotations

import json
import logging
import os
import tempfile
import time
from logging.handlers import TimedRotatingFileHandler
from pathlib import Path
from typing import Optional

# Only the root project logger "arisu" owns handlers; children propagate.
_ROOT_LOGGER_NAME = "arisu"

# ════════════════════════════════════════════════════════════════════════════
# Helpers
# ════════════════════════════════════════════════════════════════════════════
def is_truthy(val: str | None) -> bool:
    """Return True if *val* represents a truthy setting."""
    if val is None:
        return False
    return val.strip().lower() in {"1", "true", "yes", "on", "y", "t"}


def _parse_level(val: str | None, default: int = logging.WARNING) -> int:
    """
    Parse an environment level value which may be a name ("INFO") or an integer ("20").
    Falls back to *default* on invalid input.
    """
    if val is None:
        return default
    s = val.strip()
    if not s:
        return default
    if s.isdigit():
        return int(s)
    level = logging.getLevelName(s.upper())
    return level if isinstance(level, int) else default


# ════════════════════════════════════════════════════════════════════════════
# Defaults & environment overrides
# ════════════════════════════════════════════════════════════════════════════
DEFAULT_LOG_DIR = Path.home() / ".config" / "arisu" / "log"
_LOG_DIR_ENV = os.getenv("ARISU_LOG_DIR", str(DEFAULT_LOG_DIR))

_CONSOLE_LEVEL_ENV = os.getenv("ARISU_LOG_LVL", "WARNING")
CONSOLE_LEVEL = _parse_level(_CONSOLE_LEVEL_ENV)
CONSOLE_LEVEL_NAME = (_CONSOLE_LEVEL_ENV or "WARNING").strip().upper()

ROTATE_WHEN = os.getenv("ARISU_LOG_ROT", "midnight")
BACKUP_COUNT = int(os.getenv("ARISU_LOG_BACK", "7"))
USE_UTC = is_truthy(os.getenv("ARISU_LOG_UTC"))
JSON_CONSOLE = is_truthy(os.getenv("ARISU_LOG_JSON"))

# ════════════════════════════════════════════════════════════════════════════
# Formatters
# ════════════════════════════════════════════════════════════════════════════
FORMAT = "%(asctime)s | %(name)s | %(process)d | %(levelname)-8s | %(message)s"
DTFMT = "%Y-%m-%d %H:%M:%S"


class _JsonFormatter(logging.Formatter):
    """Minimal JSON formatter (useful for CI/log scraping)."""

    def format(self, record: logging.LogRecord) -> str:  # noqa: D401
        data = {
            "ts": time.strftime("%Y-%m-%dT%H:%M:%SZ", time.gmtime(record.created))
            if USE_UTC
            else time.strftime("%Y-%m-%dT%H:%M:%S%z", time.localtime(record.created)),
            "name": record.name,
            "pid": record.process,
            "level": record.levelname,
            "msg": record.getMessage(),
        }
        if record.exc_info:
            data["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(data, ensure_ascii=False)


def _human_formatter() -> logging.Formatter:
    fmt = logging.Formatter(fmt=FORMAT, datefmt=DTFMT)
    if USE_UTC:
        fmt.converter = time.gmtime  # type: ignore[assignment]
    return fmt


# ════════════════════════════════════════════════════════════════════════════
# Directory & handler utilities
# ════════════════════════════════════════════════════════════════════════════
def ensure_log_dir(preferred: Path | None = None) -> Path:
    """
    Ensure a writable log directory exists.

    Preference order:
      1) $ARISU_LOG_DIR (or ~/.config/arisu/log)
      2) $TMPDIR/arisu-logs

    Falls back to the current directory if everything fails. Conversation
    transcripts and the agent log live here too.
    """
    preferred = preferred if preferred is not None else Path(_LOG_DIR_ENV)
    try:
        preferred = preferred.expanduser().resolve()
        preferred.mkdir(parents=True, exist_ok=True)
        marker = preferred / ".writable"
        marker.write_text("ok", encoding="utf-8")
        marker.unlink(missing_ok=True)
        return preferred
    except OSError:
        pass

    try:
        tmp = Path(tempfile.gettempdir()) / "arisu-logs"
        tmp.mkdir(parents=True, exist_ok=True)
        return tmp
    except OSError:
        return Path(".")


def _make_file_handler(log_dir: Path) -> Optional[TimedRotatingFileHandler]:
    """
    Create a rotating file handler writing ``arisu.log`` inside *log_dir*.

    Returns None if the file handler cannot be created (permissions, etc.).
    """
    try:
        fh = TimedRotatingFileHandler(
            filename=log_dir / "arisu.log",
            when=ROTATE_WHEN,
            interval=1,
            backupCount=BACKUP_COUNT,
            encoding="utf-8",
            utc=USE_UTC,
        )
    except (OSError, ValueError):
        return None
    fh.setLevel(logging.DEBUG)
    fh.setFormatter(_human_formatter())
    return fh


def _make_console_handler() -> logging.Handler:
    """
    Create a console handler using either JSON or human formatter.
    """
    ch = logging.StreamHandler()
    ch.setLevel(CONSOLE_LEVEL)
    ch.setFormatter(_JsonFormatter() if JSON_CONSOLE else _human_formatter())
    return ch


# ════════════════════════════════════════════════════════════════════════════
# Public helper
# ════════════════════════════════════════════════════════════════════════════
def get_logger(name: str | None = None) -> logging.Logger:
    """
    Return a configured `logging.Logger`.

    Parameters
    ----------
    name : str | None
        • Explicit logger name, e.g. __name__ from caller.
        • *None* → root project logger "arisu".

    Notes
    -----
    Handlers are attached **only to the root** "arisu" logger. Child loggers
    are returned without handlers and **propagate** to the root, avoiding duplicate
    console/file outputs across modules.
    """
    root = logging.getLogger(_ROOT_LOGGER_NAME)

    if not root.handlers:
        root.setLevel(logging.DEBUG)

        log_dir = ensure_log_dir()
        fh = _make_file_handler(log_dir)
        if fh is not None:
            root.addHandler(fh)
        root.addHandler(_make_console_handler())
        root.propagate = False

        root.debug(
            "Logger initialised | dir=%s | console=%s | rotate=%s | backups=%s | utc=%s | json-console=%s",
            str(log_dir),
            CONSOLE_LEVEL_NAME,
            ROTATE_WHEN,
            BACKUP_COUNT,
            USE_UTC,
            JSON_CONSOLE,
        )

    if name is None or name == _ROOT_LOGGER_NAME:
        return root

    logger = logging.getLogger(name)
    logger.setLevel(logging.DEBUG)
    logger.propagate = True
    return logger


__all__ = ["get_logger", "ensure_log_dir", "is_truthy", "DEFAULT_LOG_DIR"]
