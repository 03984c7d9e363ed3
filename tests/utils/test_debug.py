"""Tests for the OCI_DEBUG logging switch."""

from __future__ import annotations

import logging
from collections.abc import Iterator

import pytest

from ocigen.utils.debug import configure_debug_logging, debug_enabled


@pytest.fixture(autouse=True)
def _clean_logger() -> Iterator[None]:
    logger = logging.getLogger("ocigen")
    handlers = list(logger.handlers)
    level = logger.level
    yield
    logger.handlers = handlers
    logger.setLevel(level)


class TestDebugEnabled:
    @pytest.mark.parametrize("value", ["1", "true", "yes", "on"])
    def test_enabled(self, monkeypatch: pytest.MonkeyPatch, value: str) -> None:
        monkeypatch.setenv("OCI_DEBUG", value)
        assert debug_enabled() is True

    @pytest.mark.parametrize("value", ["", "0", "false", "no"])
    def test_disabled(self, monkeypatch: pytest.MonkeyPatch, value: str) -> None:
        monkeypatch.setenv("OCI_DEBUG", value)
        assert debug_enabled() is False

    def test_unset(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.delenv("OCI_DEBUG", raising=False)
        assert debug_enabled() is False


class TestConfigureDebugLogging:
    def test_noop_when_disabled(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.delenv("OCI_DEBUG", raising=False)
        logger = configure_debug_logging()
        assert not any(getattr(h, "_ocigen_debug", False) for h in logger.handlers)

    def test_enabled_by_env(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("OCI_DEBUG", "1")
        logger = configure_debug_logging()
        assert logger.level == logging.DEBUG
        assert any(getattr(h, "_ocigen_debug", False) for h in logger.handlers)

    def test_force_and_no_duplicate_handlers(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.delenv("OCI_DEBUG", raising=False)
        configure_debug_logging(force=True)
        logger = configure_debug_logging(force=True)
        assert sum(1 for h in logger.handlers if getattr(h, "_ocigen_debug", False)) == 1
