#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
===============================================================================
Arisu – Package Initialisation
===============================================================================

Exports
-------
* __version__     – Resolved from installed package metadata
* get_version()   – Helper returning the version string
* get_logger()    – Re‑export of the packaged logger.get_logger

Side‑effects
------------
* Configures the root "arisu" logger on first import so all sub‑modules
  share the same rotating file + console handlers (see arisu/logger.py).
"""
from __future__ import annotations

import logging
from importlib.metadata import PackageNotFoundError, version as _pkg_version

from arisu.logger import get_logger as _configure_logger

# -----------------------------------------------------------------------------
# Logging – initialise root logger once
# -----------------------------------------------------------------------------
_ROOT_LOGGER = _configure_logger(None)
_ROOT_LOGGER.debug("Logger initialised in %s", __name__)

# -----------------------------------------------------------------------------
# Version helpers
# -----------------------------------------------------------------------------
try:
    __version__: str = _pkg_version("arisu")
except PackageNotFoundError:
    # Source checkouts without an install lack distribution metadata.
    # Keep this fallback in sync with pyproject.toml
    __version__ = "0.4.0"
    _ROOT_LOGGER.debug(
        "Package metadata not found – using fallback version %s", __version__
    )


def get_version() -> str:
    """Return the package version string."""
    return __version__


# -----------------------------------------------------------------------------
# Logger accessor (public re‑export)
# -----------------------------------------------------------------------------
def get_logger(name: str | None = None) -> logging.Logger:
    """
    Return a logger configured with Arisu's handlers & formatting.

    Parameters
    ----------
    name : str | None
        • Explicit module logger name (e.g., __name__) or None for the root
          project logger "arisu".
    """
    return _configure_logger(name)


__all__ = ["__version__", "get_version", "get_logger"]
