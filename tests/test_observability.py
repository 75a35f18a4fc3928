from __future__ import annotations

import logging
from collections.abc import Iterator
from logging.handlers import RotatingFileHandler
from pathlib import Path

import pytest

from inkora.adapters.observability import configure_runtime_logging


@pytest.fixture
def restore_root_logger() -> Iterator[logging.Logger]:
    root = logging.getLogger()
    handlers = list(root.handlers)
    level = root.level
    yield root
    for handler in root.handlers:
        handler.close()
    root.handlers[:] = handlers
    root.setLevel(level)


def test_configure_runtime_logging_writes_rotating_file(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch, restore_root_logger: logging.Logger
) -> None:
    log_path = tmp_path / "logs" / "inkora.log"
    monkeypatch.setenv("INKORA_LOG_PATH", str(log_path))
    monkeypatch.setenv("INKORA_LOG_LEVEL", "debug")
    monkeypatch.setenv("INKORA_LOG_BACKUP_COUNT", "500")

    configure_runtime_logging(force=True)
    logging.getLogger("inkora.test").debug("story_detail.load story_id=s1")

    rotating = [
        handler
        for handler in restore_root_logger.handlers
        if isinstance(handler, RotatingFileHandler)
    ]
    assert len(rotating) == 1
    assert rotating[0].backupCount == 120
    assert restore_root_logger.level == logging.DEBUG
    assert logging.getLogger("httpx").level == logging.WARNING
    rotating[0].flush()
    assert "DEBUG [inkora.test] story_detail.load story_id=s1" in log_path.read_text(
        encoding="utf-8"
    )


def test_unknown_log_level_falls_back_to_info(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch, restore_root_logger: logging.Logger
) -> None:
    monkeypatch.setenv("INKORA_LOG_PATH", str(tmp_path / "inkora.log"))
    monkeypatch.setenv("INKORA_LOG_LEVEL", "chatty")

    configure_runtime_logging(force=True)

    assert restore_root_logger.level == logging.INFO
