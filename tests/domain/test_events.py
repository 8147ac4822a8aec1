from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from lib_log_gelf.domain.events import LogEvent
from lib_log_gelf.domain.levels import Severity
from tests.os_markers import OS_AGNOSTIC

pytestmark = [OS_AGNOSTIC]


def test_naive_timestamps_are_taken_as_utc() -> None:
    event = LogEvent(Severity.INFO, "hello", datetime(2025, 9, 23, 12, 0, 0))

    assert event.timestamp == datetime(2025, 9, 23, 12, 0, 0, tzinfo=timezone.utc)


def test_aware_timestamps_are_converted_to_utc() -> None:
    local = timezone(timedelta(hours=2))
    event = LogEvent(Severity.INFO, "hello", datetime(2025, 9, 23, 14, 0, 0, tzinfo=local))

    assert event.timestamp.tzinfo is timezone.utc
    assert event.timestamp.hour == 12


def test_timestamps_are_truncated_to_milliseconds() -> None:
    event = LogEvent(Severity.INFO, "hello", datetime(2025, 9, 23, 12, 0, 0, 123987, tzinfo=timezone.utc))

    assert event.timestamp.microsecond == 123000


def test_level_names_are_coerced() -> None:
    event = LogEvent("warn", "hello", datetime(2025, 1, 1, tzinfo=timezone.utc))  # type: ignore[arg-type]

    assert event.level is Severity.WARNING


def test_metadata_mapping_becomes_ordered_pairs() -> None:
    event = LogEvent.create(Severity.INFO, "hello", metadata={"b": 2, "a": 1})

    assert event.metadata == (("b", 2), ("a", 1))


def test_metadata_dict_lets_later_duplicates_win() -> None:
    event = LogEvent.create(Severity.INFO, "hello", metadata=[("key", "first"), ("key", "second")])

    assert event.metadata == (("key", "first"), ("key", "second"))
    assert event.metadata_dict() == {"key": "second"}


def test_create_defaults_timestamp_to_now() -> None:
    before = datetime.now(timezone.utc) - timedelta(seconds=1)
    event = LogEvent.create("error", "boom")

    assert event.level is Severity.ERROR
    assert event.timestamp >= before


def test_events_are_immutable() -> None:
    event = LogEvent.create(Severity.INFO, "hello")

    with pytest.raises(AttributeError):
        event.message = "changed"  # type: ignore[misc]


def test_replace_returns_a_new_event() -> None:
    event = LogEvent.create(Severity.INFO, "hello")
    changed = event.replace(message="bye")

    assert changed.message == "bye"
    assert event.message == "hello"
