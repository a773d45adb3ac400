#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
===============================================================================
Logger configuration tests
===============================================================================

Goals
-----
* The package accessor and the module accessor return the *same* logger
  object for a given name.
* Repeated calls must **not** duplicate handlers (idempotent configuration).
* Handlers live on the root "arisu" logger only; children propagate.
"""
from __future__ import annotations

import json
import logging
import sys
from pathlib import Path

from arisu import get_logger as pkg_root_get_logger
from arisu.logger import _JsonFormatter, _parse_level, ensure_log_dir, get_logger, is_truthy


def test_same_logger_instance_for_same_name() -> None:
    name = "arisu.test.logger"
    a = get_logger(name)
    b = pkg_root_get_logger(name)
    assert isinstance(a, logging.Logger)
    assert a is b


def test_idempotent_root_handlers() -> None:
    root = get_logger(None)
    before = len(root.handlers)
    for _ in range(3):
        get_logger(None)
        get_logger("arisu.test.idempotent")
    assert len(root.handlers) == before >= 1
    assert root.propagate is False


def test_child_loggers_propagate_without_handlers() -> None:
    child = get_logger("arisu.test.child")
    assert child.handlers == []
    assert child.propagate is True


def test_ensure_log_dir_creates_preferred(tmp_path: Path) -> None:
    target = tmp_path / "a" / "b"
    assert ensure_log_dir(target) == target.resolve()
    assert target.is_dir()


def test_is_truthy() -> None:
    assert is_truthy("1") and is_truthy("Yes") and is_truthy("on")
    assert not is_truthy(None) and not is_truthy("0") and not is_truthy("")


def test_parse_level_accepts_names_and_numbers() -> None:
    assert _parse_level("INFO") == logging.INFO
    assert _parse_level(" debug ") == logging.DEBUG
    assert _parse_level("15") == 15
    assert _parse_level("bogus") == logging.WARNING
    assert _parse_level("", default=logging.ERROR) == logging.ERROR
    assert _parse_level(None, default=logging.INFO) == logging.INFO


def test_json_formatter_emits_one_object_per_record() -> None:
    record = logging.LogRecord("arisu.x", logging.ERROR, __file__, 1, "failed %s", ("café",), None)
    data = json.loads(_JsonFormatter().format(record))
    assert data["name"] == "arisu.x"
    assert data["level"] == "ERROR"
    assert data["msg"] == "failed café"
    assert isinstance(data["pid"], int)
    assert data["ts"]
    assert "exc_info" not in data


def test_json_formatter_includes_traceback() -> None:
    try:
        raise RuntimeError("boom")
    except RuntimeError:
        exc_info = sys.exc_info()
    record = logging.LogRecord("arisu.x", logging.ERROR, __file__, 1, "oops", None, exc_info)
    data = json.loads(_JsonFormatter().format(record))
    assert "RuntimeError: boom" in data["exc_info"]
