"""Unit tests for secretsboard.observability.logging."""

from __future__ import annotations

import json
from collections.abc import Iterator

import pytest
import structlog

from secretsboard.observability.logging import SERVICE_NAME, get_logger, setup_logging


@pytest.fixture(autouse=True)
def _reset_structlog() -> Iterator[None]:
    yield
    structlog.reset_defaults()


def _last_line(err: str) -> dict[str, object]:
    return json.loads(err.strip().splitlines()[-1])


class TestSetupLogging:
    def test_events_are_json_with_service_and_component(self, capsys: pytest.CaptureFixture[str]) -> None:
        setup_logging("info")
        get_logger("watcher").info("list_complete", items=3)

        event = _last_line(capsys.readouterr().err)
        assert event["event"] == "list_complete"
        assert event["service"] == SERVICE_NAME
        assert event["component"] == "watcher"
        assert event["level"] == "info"
        assert event["items"] == 3
        assert str(event["ts"]).endswith("Z")

    def test_level_filters_lower_events(self, capsys: pytest.CaptureFixture[str]) -> None:
        setup_logging("warning")
        log = get_logger("actions")
        log.info("delete_requested")
        log.warning("delete_failed")

        lines = capsys.readouterr().err.strip().splitlines()
        assert [json.loads(line)["event"] for line in lines] == ["delete_failed"]

    def test_unknown_level_falls_back_to_info(self, capsys: pytest.CaptureFixture[str]) -> None:
        setup_logging("chatty")
        log = get_logger("api")
        log.debug("hidden")
        log.info("shown")

        assert _last_line(capsys.readouterr().err)["event"] == "shown"
