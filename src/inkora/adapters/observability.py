"""Runtime logging configuration for the Inkora web process."""

from __future__ import annotations

import logging
import os
from logging.handlers import RotatingFileHandler
from pathlib import Path

DEFAULT_LOG_PATH = Path("work/logs/inkora.log")
LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"

_CONFIGURED = False


def _int_env(name: str, default: int, *, minimum: int, maximum: int) -> int:
    raw = os.environ.get(name, "").strip()
    if not raw:
        return default
    try:
        value = int(raw)
    except ValueError:
        return default
    return max(minimum, min(maximum, value))


def _level_env(name: str, default: int) -> int:
    level_name = os.environ.get(name, "").strip().upper()
    if not level_name:
        return default
    level = logging.getLevelName(level_name)
    return level if isinstance(level, int) else default


def _log_path_env() -> Path:
    raw = os.environ.get("INKORA_LOG_PATH", "").strip()
    return Path(raw) if raw else DEFAULT_LOG_PATH


def configure_runtime_logging(*, force: bool = False) -> None:
    """Attach console and rotating-file handlers to the root logger once."""
    global _CONFIGURED
    if _CONFIGURED and not force:
        return

    log_path = _log_path_env()
    log_path.parent.mkdir(parents=True, exist_ok=True)
    formatter = logging.Formatter(fmt=LOG_FORMAT, datefmt="%Y-%m-%dT%H:%M:%S%z")

    console = logging.StreamHandler()
    console.setFormatter(formatter)
    rotating = RotatingFileHandler(
        filename=log_path,
        maxBytes=_int_env(
            "INKORA_LOG_MAX_BYTES", 5 * 1024 * 1024, minimum=64 * 1024, maximum=100 * 1024 * 1024
        ),
        backupCount=_int_env("INKORA_LOG_BACKUP_COUNT", 10, minimum=1, maximum=120),
        encoding="utf-8",
    )
    rotating.setFormatter(formatter)

    root = logging.getLogger()
    root.setLevel(_level_env("INKORA_LOG_LEVEL", logging.INFO))
    root.handlers.clear()
    root.addHandler(console)
    root.addHandler(rotating)

    # Request lines from uvicorn and httpx drown out page-level events.
    logging.getLogger("uvicorn.access").setLevel(
        _level_env("INKORA_ACCESS_LOG_LEVEL", logging.WARNING)
    )
    logging.getLogger("httpx").setLevel(_level_env("INKORA_HTTP_LOG_LEVEL", logging.WARNING))

    _CONFIGURED = True
