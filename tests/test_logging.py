"""Tests for loguru setup and context binding."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

import pytest
from loguru import logger

from git_activity_mirror.config import LoggingConfig, Settings
from git_activity_mirror.logging import bind_platform, bind_target, get_logger, setup_logging

if TYPE_CHECKING:
    from collections.abc import Generator
    from pathlib import Path


@pytest.fixture(autouse=True)
def _clean_sinks() -> Generator[None, None, None]:
    logger.remove()
    yield
    logger.remove()


def make_settings(**overrides) -> Settings:
    return Settings(_env_file=None, **overrides)


class TestConsoleSink:
    def test_target_context_on_console_line(self, capsys) -> None:
        setup_logging(make_settings())

        bind_target("profile", "activity-mirror").info("Mirroring 3 commit(s)")

        err = capsys.readouterr().err
        assert "Mirroring 3 commit(s)" in err
        assert "[platform=profile]" in err
        assert "[repo=activity-mirror]" in err

    def test_platform_context_without_repository(self, capsys) -> None:
        setup_logging(make_settings())

        bind_platform("work-gitlab").warning("Listing failed")

        err = capsys.readouterr().err
        assert "[platform=work-gitlab]" in err
        assert "repo=" not in err

    def test_module_logger_shows_its_name(self, capsys) -> None:
        setup_logging(make_settings())

        get_logger("git_activity_mirror.sync.fetcher").info("Fetched {} commit(s)", 4)

        err = capsys.readouterr().err
        assert "git_activity_mirror.sync.fetcher" in err
        assert "Fetched 4 commit(s)" in err

    def test_level_from_settings(self, capsys) -> None:
        setup_logging(make_settings(log_level="WARNING"))

        get_logger("quiet").info("routine detail")
        get_logger("quiet").warning("rate limit close")

        err = capsys.readouterr().err
        assert "routine detail" not in err
        assert "rate limit close" in err


class TestFileSink:
    def test_file_captures_debug_with_context(self, tmp_path: Path) -> None:
        log_file = tmp_path / "mirror.log"
        setup_logging(make_settings(logging=LoggingConfig(log_file=str(log_file))))

        bind_target("profile", "activity-mirror").debug("Seeded ledger")
        logger.complete()

        text = log_file.read_text()
        assert "Seeded ledger" in text
        assert "activity-mirror" in text

    def test_no_file_by_default(self, tmp_path: Path, monkeypatch) -> None:
        monkeypatch.chdir(tmp_path)
        setup_logging(make_settings())

        get_logger("test").info("console only")

        assert list(tmp_path.iterdir()) == []


class TestStdlibInterception:
    def test_stdlib_records_reach_loguru(self) -> None:
        setup_logging(make_settings())
        messages: list[str] = []
        logger.add(lambda msg: messages.append(str(msg)), format="{message}")

        logging.getLogger("githubkit").warning("Hello from stdlib")

        assert any("Hello from stdlib" in msg for msg in messages)

    def test_httpx_quiet_unless_debug(self) -> None:
        setup_logging(make_settings(log_level="INFO"))
        assert logging.getLogger("httpx").level == logging.WARNING
        assert logging.getLogger("httpcore").level == logging.WARNING

        setup_logging(make_settings(log_level="DEBUG"))
        assert logging.getLogger("httpx").level == logging.DEBUG
