from __future__ import annotations

import configparser
import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

SECTION = "log_sync"

DEBOUNCE_MS_DEFAULT = 250
SCAN_CHUNK_DEFAULT = 2000
REGEX_TIMEOUT_DEFAULT = 1.0
LOCALITY_WINDOW_DEFAULT = 600
CONTEXT_LINES_DEFAULT = 2
REFRESH_HZ_DEFAULT = 4
LOG_LEVEL_DEFAULT = "WARNING"


@dataclass
class SyncConfig:
    debounce_ms: int = DEBOUNCE_MS_DEFAULT
    scan_chunk_lines: int = SCAN_CHUNK_DEFAULT
    regex_timeout: float = REGEX_TIMEOUT_DEFAULT
    locality_window: int = LOCALITY_WINDOW_DEFAULT
    context_lines: int = CONTEXT_LINES_DEFAULT
    refresh_hz: int = REFRESH_HZ_DEFAULT
    log_level: str = LOG_LEVEL_DEFAULT
    source: Optional[Path] = None

    @property
    def debounce_seconds(self) -> float:
        return self.debounce_ms / 1000


def get_xdg_config_home() -> Path:
    xdg = os.environ.get("XDG_CONFIG_HOME")
    if xdg:
        return Path(xdg).expanduser()
    return Path.home() / ".config"


def get_config_file(explicit: str | Path | None = None) -> Optional[Path]:
    """Locate settings.conf: explicit path, $LOGSYNC_CONFIG, then the XDG location."""

    if explicit:
        return Path(explicit).expanduser()

    env = os.environ.get("LOGSYNC_CONFIG")
    if env:
        return Path(env).expanduser()

    xdg_conf = get_xdg_config_home() / "logsync" / "settings.conf"
    if xdg_conf.exists():
        return xdg_conf
    return None


def _clamp(value, *, default, minimum, maximum):
    if not isinstance(value, (int, float)):
        return default
    return max(minimum, min(value, maximum))


def load_config(path: str | Path | None = None) -> SyncConfig:
    config = configparser.ConfigParser()
    source = get_config_file(path)
    if source is not None:
        config.read(source, encoding="utf-8")
    section = config[SECTION] if SECTION in config else {}

    def _get_int(option: str, default: int) -> int:
        if hasattr(section, "getint"):
            try:
                return section.getint(option, default)
            except ValueError:
                return default
        return default

    def _get_float(option: str, default: float) -> float:
        if hasattr(section, "getfloat"):
            try:
                return section.getfloat(option, default)
            except ValueError:
                return default
        return default

    raw_level = section.get("log_level", LOG_LEVEL_DEFAULT) if hasattr(section, "get") else LOG_LEVEL_DEFAULT
    level = str(raw_level).strip().upper()
    if not isinstance(logging.getLevelName(level), int):
        level = LOG_LEVEL_DEFAULT

    return SyncConfig(
        debounce_ms=_clamp(
            _get_int("debounce_ms", DEBOUNCE_MS_DEFAULT),
            default=DEBOUNCE_MS_DEFAULT,
            minimum=0,
            maximum=5000,
        ),
        scan_chunk_lines=_clamp(
            _get_int("scan_chunk_lines", SCAN_CHUNK_DEFAULT),
            default=SCAN_CHUNK_DEFAULT,
            minimum=1,
            maximum=1_000_000,
        ),
        regex_timeout=_clamp(
            _get_float("regex_timeout", REGEX_TIMEOUT_DEFAULT),
            default=REGEX_TIMEOUT_DEFAULT,
            minimum=0.01,
            maximum=60.0,
        ),
        locality_window=_clamp(
            _get_int("locality_window", LOCALITY_WINDOW_DEFAULT),
            default=LOCALITY_WINDOW_DEFAULT,
            minimum=0,
            maximum=100_000,
        ),
        context_lines=_clamp(
            _get_int("context_lines", CONTEXT_LINES_DEFAULT),
            default=CONTEXT_LINES_DEFAULT,
            minimum=0,
            maximum=50,
        ),
        refresh_hz=_clamp(
            _get_int("refresh_hz", REFRESH_HZ_DEFAULT),
            default=REFRESH_HZ_DEFAULT,
            minimum=1,
            maximum=50,
        ),
        log_level=level,
        source=source if source is not None and source.exists() else None,
    )
