"""Logging for the prompt, on telelog.

The session owns the console: stray log lines would break the cursor
arithmetic the virtual terminal relies on. Console logging is therefore off
unless ``RETRACE_LOG_CONSOLE`` asks for it, and every preset writes to a file.
"""

from __future__ import annotations

import os
from contextlib import contextmanager
from typing import Any, Dict, Iterator, List, MutableMapping, Optional, Tuple, cast

import telelog  # type: ignore[import]

from .settings import ENV_PREFIX

tl = cast(Any, telelog)

DEFAULT_LOGGER_NAME = "retrace"

# preset -> (minimum level, default log file, json, buffered, profiling)
_PRESET_TABLE: Dict[str, Tuple[str, str, bool, bool, bool]] = {
    "development": ("DEBUG", "retrace-dev.log", False, False, False),
    "production": ("INFO", "retrace.log", False, True, False),
    "performance": ("DEBUG", "retrace-performance.log", True, True, True),
}
PRESETS = tuple(_PRESET_TABLE)

_loggers: MutableMapping[str, Any] = {}
_config: Optional[Any] = None


def _env(name: str) -> Optional[str]:
    return os.environ.get(ENV_PREFIX + name) or None


def _env_flag(name: str) -> bool:
    return (_env(name) or "").lower() in {"1", "true", "yes", "on"}


def _text(value: Any) -> str:
    return value if isinstance(value, str) else repr(value)


def _preset_config(preset: str) -> Any:
    try:
        level, log_file, as_json, buffered, profiling = _PRESET_TABLE[preset.lower()]
    except KeyError:
        raise ValueError(f"unknown log preset {preset!r}") from None
    config = tl.Config()
    config.with_min_level(level)
    config.with_console_output(False)
    config.with_file_output(_env("LOG_FILE") or log_file)
    config.with_json_format(as_json)
    config.with_buffering(buffered)
    config.with_profiling(profiling)
    return config


def _env_config() -> Any:
    config = tl.Config()
    config.with_min_level((_env("LOG_LEVEL") or "WARNING").upper())
    config.with_console_output(_env_flag("LOG_CONSOLE"))
    config.with_json_format(_env_flag("LOG_JSON"))
    log_file = _env("LOG_FILE")
    if log_file:
        config.with_file_output(log_file)
    config.with_profiling(_env_flag("PROFILE"))
    return config


def configure(*, preset: Optional[str] = None) -> None:
    """Rebuild the telelog configuration from ``preset`` or the environment.

    Loggers handed out earlier keep their old configuration; later
    ``get_logger`` calls see the new one.
    """

    global _config
    _config = _preset_config(preset) if preset else _env_config()
    _loggers.clear()


def get_logger(name: Optional[str] = None) -> Any:
    logger_name = name or DEFAULT_LOGGER_NAME
    if logger_name not in _loggers:
        if _config is None:
            configure()
        _loggers[logger_name] = tl.Logger.with_config(logger_name, _config)
    return _loggers[logger_name]


def _emit(log: Any, level: str, message: str, payload: Dict[str, Any]) -> None:
    # telelog loggers take structured pairs through ``<level>_with``
    with_data = getattr(log, f"{level}_with", None)
    if with_data is not None:
        with_data(message, [(key, _text(value)) for key, value in payload.items()])
        return
    plain = getattr(log, level, None)
    if plain is None:
        raise ValueError(f"unsupported log level {level!r}")
    plain(f"{message} {payload}")


def record_event(
    name: str,
    *,
    level: str = "info",
    data: Optional[Dict[str, Any]] = None,
    logger_name: Optional[str] = None,
) -> None:
    """Log ``event::<name>`` with ``data`` as key/value pairs."""

    payload = {"event": name, **(data or {})}
    _emit(get_logger(logger_name), level.lower(), f"event::{name}", payload)


@contextmanager
def span(
    name: str,
    *,
    logger_name: Optional[str] = None,
    metadata: Optional[Dict[str, Any]] = None,
) -> Iterator[None]:
    """Profile the block as ``name`` with ``metadata`` as logger context.

    A failure inside the block is logged at error level and re-raised.
    """

    log = get_logger(logger_name)
    keys: List[str] = []
    for key, value in (metadata or {}).items():
        log.add_context(key, _text(value))
        keys.append(key)
    try:
        with log.profile(name):
            yield
    except Exception as exc:
        _emit(log, "error", "span::fail", {"span": name, "reason": str(exc)})
        raise
    finally:
        for key in keys:
            log.remove_context(key)


__all__ = ["PRESETS", "configure", "get_logger", "record_event", "span"]
