"""Configuration management for the M3UPT TUI."""
from __future__ import annotations

import json
from dataclasses import dataclass, fields, replace
from pathlib import Path
from typing import Any, Optional

from .logging_utils import get_logger
from .playlist import DEFAULT_PLAYLIST_URL, DEFAULT_TIMEOUT

CONFIG_PATH = Path.home() / ".config" / "m3upt_tui" / "config.yaml"

DEFAULT_PLAYER = "mpv"

log = get_logger(__name__)


@dataclass(slots=True)
class AppConfig:
    """Top level application configuration."""

    playlist_url: str = DEFAULT_PLAYLIST_URL
    player: str = DEFAULT_PLAYER
    stay: bool = False
    theme: Optional[str] = None
    user_agent: Optional[str] = None
    timeout: float = DEFAULT_TIMEOUT

    def merged(self, **overrides: Any) -> "AppConfig":
        """Return a copy with every non-``None`` override applied."""

        changes = {key: value for key, value in overrides.items() if value is not None}
        return replace(self, **changes)


def _clean_scalar(value: str) -> str:
    value = value.strip()
    if len(value) >= 2 and value[0] == value[-1] and value[0] in ("'", '"'):
        value = value[1:-1]
    return value


def _parse_bool(value: object, *, default: bool) -> bool:
    """Coerce *value* into a boolean flag."""

    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        normalized = value.strip().lower()
        if normalized in {"true", "yes", "on", "1"}:
            return True
        if normalized in {"false", "no", "off", "0"}:
            return False
    log.warning("Ignoring invalid boolean value %r", value)
    return default


def _parse_float(value: object, *, default: float) -> float:
    if isinstance(value, bool):
        log.warning("Ignoring invalid numeric value %r", value)
        return default
    try:
        number = float(value)  # type: ignore[arg-type]
    except (TypeError, ValueError):
        log.warning("Ignoring invalid numeric value %r", value)
        return default
    if number <= 0:
        log.warning("Ignoring non-positive numeric value %r", value)
        return default
    return number


def _parse_config(raw: str) -> dict[str, object]:
    if not raw.strip():
        return {}
    try:
        data = json.loads(raw)
    except json.JSONDecodeError:
        pass
    else:
        return data if isinstance(data, dict) else {}

    result: dict[str, object] = {}
    for line in raw.splitlines():
        stripped = line.strip()
        if not stripped or stripped.startswith("#"):
            continue
        key, separator, value = stripped.partition(":")
        if not separator:
            log.warning("Ignoring malformed configuration line: %s", stripped)
            continue
        result[key.strip()] = _clean_scalar(value)
    return result


def load_config(path: Optional[Path] = None) -> AppConfig:
    """Load configuration from *path* or return the defaults."""

    config_path = path or CONFIG_PATH
    if not config_path.exists():
        log.info("Configuration file missing at %s; using defaults", config_path)
        return AppConfig()
    log.debug("Loading configuration from %s", config_path)
    data = _parse_config(config_path.read_text(encoding="utf8"))
    defaults = AppConfig()
    known = {item.name for item in fields(AppConfig)}
    for key in data:
        if key not in known:
            log.warning("Ignoring unknown configuration key %s", key)

    def text(key: str) -> Optional[str]:
        value = data.get(key)
        if value is None:
            return None
        candidate = str(value).strip()
        return candidate or None

    config = AppConfig(
        playlist_url=text("playlist_url") or defaults.playlist_url,
        player=text("player") or defaults.player,
        stay=_parse_bool(data["stay"], default=defaults.stay) if "stay" in data else defaults.stay,
        theme=text("theme"),
        user_agent=text("user_agent"),
        timeout=(
            _parse_float(data["timeout"], default=defaults.timeout)
            if "timeout" in data
            else defaults.timeout
        ),
    )
    log.info("Loaded configuration from %s", config_path)
    return config


__all__ = ["AppConfig", "CONFIG_PATH", "DEFAULT_PLAYER", "load_config"]
