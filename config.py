from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict

import yaml

USER_CONFIG_PATH = Path.home() / ".taskcanon_config.yaml"
CONFIG_ENV = "TASKCANON_CONFIG"

DEFAULT_DEBOUNCE_MS = 300
BOOL_KEYS = ("enabled", "on_line_commit", "on_leaf_change")
INT_KEYS = ("debounce_ms",)

_TRUE = {"1", "true", "yes", "on"}
_FALSE = {"0", "false", "no", "off"}

logger = logging.getLogger("taskcanon.config")


@dataclass(frozen=True)
class FormatterFlags:
    """Live automation switches consulted on every trigger."""

    master: bool = True
    on_line_commit: bool = True
    on_leaf_change: bool = True


@dataclass(frozen=True)
class FormatterSettings:
    flags: FormatterFlags
    debounce_ms: int = DEFAULT_DEBOUNCE_MS


def config_path() -> Path:
    override = os.environ.get(CONFIG_ENV, "").strip()
    return Path(override).expanduser() if override else USER_CONFIG_PATH


def _load_config() -> Dict[str, Any]:
    path = config_path()
    if not path.exists():
        return {}
    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    except Exception as exc:
        logger.warning("Unreadable config %s, using defaults: %s", path, exc)
        return {}
    return data if isinstance(data, dict) else {}


def _save_config(data: Dict[str, Any]) -> None:
    path = config_path()
    if not data:
        if path.exists():
            path.unlink()
        return
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(yaml.safe_dump(data, allow_unicode=True, sort_keys=True), encoding="utf-8")


def _as_bool(value: Any, default: bool) -> bool:
    if isinstance(value, bool):
        return value
    token = str(value).strip().lower()
    if token in _TRUE:
        return True
    if token in _FALSE:
        return False
    return default


def _as_int(value: Any, default: int) -> int:
    try:
        parsed = int(value)
    except (TypeError, ValueError):
        return default
    return parsed if parsed >= 0 else default


def load_settings() -> FormatterSettings:
    data = _load_config()
    flags = FormatterFlags(
        master=_as_bool(data.get("enabled", True), True),
        on_line_commit=_as_bool(data.get("on_line_commit", True), True),
        on_leaf_change=_as_bool(data.get("on_leaf_change", True), True),
    )
    return FormatterSettings(flags=flags, debounce_ms=_as_int(data.get("debounce_ms", DEFAULT_DEBOUNCE_MS), DEFAULT_DEBOUNCE_MS))


def load_flags() -> FormatterFlags:
    return load_settings().flags


def settings_snapshot() -> Dict[str, Any]:
    settings = load_settings()
    return {
        "path": str(config_path()),
        "enabled": settings.flags.master,
        "on_line_commit": settings.flags.on_line_commit,
        "on_leaf_change": settings.flags.on_leaf_change,
        "debounce_ms": settings.debounce_ms,
    }


def set_option(key: str, raw_value: str) -> None:
    """Persist one setting. Raises ValueError for unknown keys or unparsable values."""
    key = (key or "").strip().lower().replace("-", "_")
    value = (raw_value or "").strip()
    data = _load_config()
    if key in BOOL_KEYS:
        token = value.lower()
        if token not in _TRUE | _FALSE:
            raise ValueError(f"{key} expects a boolean, got {raw_value!r}")
        data[key] = token in _TRUE
    elif key in INT_KEYS:
        if not value.isdigit():
            raise ValueError(f"{key} expects a non-negative integer, got {raw_value!r}")
        data[key] = int(value)
    else:
        raise ValueError(f"Unknown setting: {key!r}")
    _save_config(data)
