"""setup_logging / get_logger tests."""

from __future__ import annotations

import pytest
import structlog
from structlog.testing import capture_logs

from asyncfetch.utils import get_logger, setup_logging


@pytest.fixture(autouse=True)
def restore_logging():
    yield
    setup_logging()


def test_level_override_filters_lower_levels():
    setup_logging(level="warning")

    with capture_logs() as logs:
        log = get_logger("unit")
        log.info("hidden")
        log.warning("shown", attempt=1)

    assert logs == [{"component": "unit", "attempt": 1, "event": "shown", "log_level": "warning"}]


def test_numeric_level_accepted():
    setup_logging(level=40)

    with capture_logs() as logs:
        get_logger().warning("hidden")
        get_logger().error("shown")

    assert [entry["event"] for entry in logs] == ["shown"]


def test_json_format_override():
    setup_logging(fmt="json")
    assert isinstance(structlog.get_config()["processors"][-1], structlog.processors.JSONRenderer)

    setup_logging(fmt="console")
    assert isinstance(structlog.get_config()["processors"][-1], structlog.dev.ConsoleRenderer)


def test_defaults_come_from_settings(monkeypatch):
    from asyncfetch.config import settings

    monkeypatch.setattr(settings, "log_level", "ERROR")
    monkeypatch.setattr(settings, "log_format", "json")
    setup_logging()

    assert isinstance(structlog.get_config()["processors"][-1], structlog.processors.JSONRenderer)
    with capture_logs() as logs:
        get_logger().warning("hidden")
    assert logs == []


def test_unknown_level_name_falls_back_to_info():
    setup_logging(level="chatty")

    with capture_logs() as logs:
        get_logger().debug("hidden")
        get_logger().info("shown")

    assert [entry["event"] for entry in logs] == ["shown"]
