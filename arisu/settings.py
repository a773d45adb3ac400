#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
===============================================================================
Arisu ▸ Settings (JSON file + environment, JSON‑Schema validated)
===============================================================================

Resolution order (later wins)
-----------------------------
1) built‑in defaults (`Settings()`)
2) JSON file – $ARISU_CONFIG or ~/.config/arisu/config.json
3) environment – ARISU_MODEL, ARISU_AUTO_EDIT, ARISU_AUTO_RUN,
   ARISU_STEP_FILE, ARISU_MAX_TOOL_ROUNDS, ARISU_API_TIMEOUT, ARISU_STREAM
4) CLI flags (applied by arisu.cli on top of the loaded object)

Design notes
------------
* The schema ships with the package (`arisu/config.schema.json`) and is
  loaded **once** through `importlib.resources`; a `Draft7Validator` is
  compiled at import time.
* API keys are never persisted; they are read from the environment by the
  backend client. A legacy ``api_keys`` map in old files is accepted and
  ignored.
* Files are written with mode 0600 inside a 0700 directory.
"""
from __future__ import annotations

import json
import os
from dataclasses import asdict, dataclass, fields, replace
from importlib import resources
from pathlib import Path
from typing import Any, Dict, Mapping, Optional

from jsonschema import Draft7Validator, ValidationError

from arisu import get_logger
from arisu.actions import GatingConfig
from arisu.errors import ConfigError
from arisu.logger import is_truthy
from arisu.prompts import DEFAULT_STEP_FILE

log = get_logger(__name__)

DEFAULT_CONFIG_PATH = Path.home() / ".config" / "arisu" / "config.json"


# -----------------------------------------------------------------------------
# Schema (loaded once)
# -----------------------------------------------------------------------------
def _load_schema() -> Dict[str, Any]:
    with resources.files("arisu").joinpath("config.schema.json").open(encoding="utf-8") as fh:
        return json.load(fh)


_SCHEMA: Dict[str, Any] = _load_schema()
Draft7Validator.check_schema(_SCHEMA)
_VALIDATOR = Draft7Validator(_SCHEMA)


def _pretty_pointer(exc: ValidationError) -> str:
    return ".".join(["$", *(str(p) for p in exc.path)])


# -----------------------------------------------------------------------------
# Settings object
# -----------------------------------------------------------------------------
@dataclass(frozen=True)
class Settings:
    selected_model: str = "gemini"
    auto_edit: bool = False
    auto_run: bool = False
    step_file: str = DEFAULT_STEP_FILE
    max_tool_rounds: Optional[int] = None
    stream: bool = True
    api_timeout: int = 120

    @property
    def gating(self) -> GatingConfig:
        return GatingConfig(auto_edit=self.auto_edit, auto_run=self.auto_run)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


_FIELD_NAMES = {f.name for f in fields(Settings)}


def config_path(env: Mapping[str, str] | None = None) -> Path:
    env = os.environ if env is None else env
    override = env.get("ARISU_CONFIG")
    return Path(override).expanduser() if override else DEFAULT_CONFIG_PATH


def validate_settings(data: Any) -> Dict[str, Any]:
    """
    Validate a decoded settings document.

    Raises
    ------
    ConfigError
        On any schema violation, naming the offending field.
    """
    try:
        _VALIDATOR.validate(data)
    except ValidationError as exc:
        raise ConfigError(f"Invalid settings at {_pretty_pointer(exc)}: {exc.message}") from exc
    return data


def parse_bool(value: str) -> bool:
    """Strict true/false parser used for CLI values."""
    v = value.strip().lower()
    if v in {"true", "false"}:
        return v == "true"
    raise ConfigError(f"Expected 'true' or 'false', got {value!r}")


def _env_int(env: Mapping[str, str], name: str) -> Optional[int]:
    raw = env.get(name)
    if raw is None or not raw.strip():
        return None
    try:
        return int(raw)
    except ValueError as exc:
        raise ConfigError(f"{name} must be an integer, got {raw!r}") from exc


def _apply_env(settings: Settings, env: Mapping[str, str]) -> Settings:
    changes: Dict[str, Any] = {}
    if env.get("ARISU_MODEL"):
        changes["selected_model"] = env["ARISU_MODEL"].strip()
    for key, name in (("auto_edit", "ARISU_AUTO_EDIT"), ("auto_run", "ARISU_AUTO_RUN"), ("stream", "ARISU_STREAM")):
        if env.get(name) is not None:
            changes[key] = is_truthy(env[name])
    if env.get("ARISU_STEP_FILE"):
        changes["step_file"] = env["ARISU_STEP_FILE"].strip()
    rounds = _env_int(env, "ARISU_MAX_TOOL_ROUNDS")
    if rounds is not None:
        changes["max_tool_rounds"] = rounds if rounds > 0 else None
    timeout = _env_int(env, "ARISU_API_TIMEOUT")
    if timeout is not None:
        changes["api_timeout"] = timeout
    if changes:
        log.debug("Environment overrides: %s", sorted(changes))
    return replace(settings, **changes)


# -----------------------------------------------------------------------------
# Load / save
# -----------------------------------------------------------------------------
def load_settings(path: Path | None = None, env: Mapping[str, str] | None = None) -> Settings:
    """
    Resolve settings from defaults, the JSON file at *path* and *env*.

    A missing file is not an error. Unreadable, malformed or schema‑invalid
    files raise ConfigError.
    """
    env = os.environ if env is None else env
    path = path if path is not None else config_path(env)

    settings = Settings()
    if path.exists():
        try:
            data = json.loads(path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as exc:
            raise ConfigError(f"Failed to read settings file {path}: {exc}") from exc
        validate_settings(data)
        known = {k: v for k, v in data.items() if k in _FIELD_NAMES}
        settings = replace(settings, **known)
        log.debug("Loaded settings from %s", path)

    settings = _apply_env(settings, env)
    # Legacy alias kept working across releases.
    if settings.selected_model == "grok":
        settings = replace(settings, selected_model="grok-2-latest")
    return settings


def save_settings(settings: Settings, path: Path | None = None) -> Path:
    """Persist *settings* as JSON (0600) and return the written path."""
    path = path if path is not None else config_path()
    data = validate_settings(settings.to_dict())
    try:
        path.parent.mkdir(mode=0o700, parents=True, exist_ok=True)
        path.write_text(json.dumps(data, indent=2) + "\n", encoding="utf-8")
        os.chmod(path, 0o600)
    except OSError as exc:
        raise ConfigError(f"Failed to save settings to {path}: {exc}") from exc
    log.info("Settings saved to %s", path)
    return path


__all__ = [
    "Settings",
    "config_path",
    "load_settings",
    "save_settings",
    "validate_settings",
    "parse_bool",
    "DEFAULT_CONFIG_PATH",
]
