"""Tests for logging configuration."""

from __future__ import annotations

import logging

import structlog

from prformance.core.logging import (
    build_logging_config,
    resolve_format,
    resolve_level,
    setup_logging,
)


class TestResolve:
    def test_defaults(self, monkeypatch):
        for key in ("PRFORMANCE_LOG_LEVEL", "LOG_LEVEL", "PRFORMANCE_LOG_FORMAT"):
            monkeypatch.delenv(key, raising=False)
        assert resolve_level() == "INFO"
        assert resolve_format() == "console"

    def test_generic_level_fallback(self, monkeypatch):
        monkeypatch.delenv("PRFORMANCE_LOG_LEVEL", raising=False)
        monkeypatch.setenv("LOG_LEVEL", "debug")
        assert resolve_level() == "DEBUG"

    def test_own_level_wins(self, monkeypatch):
        monkeypatch.setenv("LOG_LEVEL", "debug")
        monkeypatch.setenv("PRFORMANCE_LOG_LEVEL", "warning")
        assert resolve_level() == "WARNING"

    def test_unknown_format_falls_back_to_console(self, monkeypatch):
        monkeypatch.setenv("PRFORMANCE_LOG_FORMAT", "xml")
        assert resolve_format() == "console"


class TestBuildLoggingConfig:
    def test_json_renderer(self):
        config = build_logging_config("INFO", "json")
        processors = config["formatters"]["structlog"]["processors"]
        assert isinstance(processors[-1], structlog.processors.JSONRenderer)

    def test_single_stderr_handler(self):
        config = build_logging_config("INFO", "console")
        assert list(config["handlers"]) == ["stderr"]
        assert config["handlers"]["stderr"]["stream"] == "ext://sys.stderr"

    def test_levels(self):
        loggers = build_logging_config("DEBUG", "console")["loggers"]
        assert loggers["prformance"] == {"level": "DEBUG"}
        assert loggers["uvicorn.access"] == {"level": "WARNING"}
        assert loggers["httpx"] == {"level": "WARNING"}


def test_setup_logging_applies_levels(monkeypatch):
    monkeypatch.setenv("PRFORMANCE_LOG_LEVEL", "debug")
    monkeypatch.setenv("PRFORMANCE_LOG_FORMAT", "json")
    setup_logging()
    assert logging.getLogger("prformance").level == logging.DEBUG
    assert logging.getLogger("httpcore").level == logging.WARNING
