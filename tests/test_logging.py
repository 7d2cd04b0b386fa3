import logging

import pytest

from httpstat.observability.logging import _as_level, add_component


@pytest.mark.parametrize(
    ("logger_name", "component"),
    [
        ("httpstat.history", "history"),
        ("httpstat.middleware", "middleware"),
        ("httpstat.stats", "stats"),
        ("access", "access"),
    ],
)
def test_httpstat_records_are_tagged_with_their_component(logger_name: str, component: str) -> None:
    event = add_component(None, "info", {"event": "x", "logger": logger_name})
    assert event["component"] == component


def test_foreign_records_are_left_untagged() -> None:
    for name in ("uvicorn.error", "httpstatx.other", "httpstat"):
        assert "component" not in add_component(None, "info", {"event": "x", "logger": name})

    assert "component" not in add_component(None, "info", {"event": "x"})


def test_explicit_component_is_kept() -> None:
    event = add_component(None, "info", {"event": "x", "logger": "httpstat.history", "component": "sampler"})
    assert event["component"] == "sampler"


def test_levels_accept_names_and_numbers() -> None:
    assert _as_level("debug") == logging.DEBUG
    assert _as_level("WARNING") == logging.WARNING
    assert _as_level(logging.ERROR) == logging.ERROR
