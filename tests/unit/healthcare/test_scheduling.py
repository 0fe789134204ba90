"""
Tests for the appointment grid in `healthcare/services/scheduling.py`.

Covers:
- Grid shape: 15 half-hour slots from 10:00 AM, strictly increasing, stable content
- 12-hour label parsing, including noon and midnight
- Past-slot detection only on the current calendar day
- Absolute timestamp construction and ParseError on malformed input
- SchedulingAssistant submission-time re-validation with an injected clock
"""

from datetime import date, datetime, timedelta, timezone
from zoneinfo import ZoneInfo

import pytest
from hypothesis import given
from hypothesis import strategies as st

from healthcare.config import SchedulingConfig
from healthcare.errors import ParseError, ValidationError
from healthcare.services.scheduling import (
    SchedulingAssistant,
    available_slots,
    find_slot,
    format_slot_label,
    generate_slots,
    is_past,
    parse_date,
    parse_slot_label,
    to_absolute_timestamp,
)

IST = timezone(timedelta(hours=5, minutes=30))
TODAY = date(2026, 10, 17)
TOMORROW = TODAY + timedelta(days=1)


def at(hour: int, minute: int = 0, day: date = TODAY) -> datetime:
    return datetime(day.year, day.month, day.day, hour, minute, tzinfo=IST)


class TestGenerateSlots:
    """The fixed daily grid."""

    def test_grid_has_fifteen_slots(self) -> None:
        slots = generate_slots()

        assert len(slots) == 15
        assert slots[0].label == "10:00 AM"
        assert slots[-1].label == "05:00 PM"
        assert (slots[-1].start_hour, slots[-1].start_minute) == (17, 0)

    def test_slots_strictly_increase_in_half_hours(self) -> None:
        slots = generate_slots()
        minutes = [s.start_hour * 60 + s.start_minute for s in slots]

        assert all(b - a == 30 for a, b in zip(minutes, minutes[1:], strict=False))
        assert {s.start_minute for s in slots} == {0, 30}

    def test_repeated_calls_return_equal_content(self) -> None:
        first = generate_slots()
        second = generate_slots()

        assert first == second
        # Callers may mutate the returned list without affecting the grid
        first.clear()
        assert len(generate_slots()) == 15

    def test_labels_round_trip_through_parser(self) -> None:
        for slot in generate_slots():
            assert parse_slot_label(slot.label) == (slot.start_hour, slot.start_minute)

    def test_noon_label(self) -> None:
        labels = [s.label for s in generate_slots()]

        assert "12:00 PM" in labels
        assert "12:30 PM" in labels


class TestParseSlotLabel:
    """12-hour label parsing."""

    @pytest.mark.parametrize(
        "label,expected",
        [
            ("12:00 AM", (0, 0)),
            ("12:30 AM", (0, 30)),
            ("01:00 AM", (1, 0)),
            ("11:59 AM", (11, 59)),
            ("12:00 PM", (12, 0)),
            ("12:45 PM", (12, 45)),
            ("01:30 PM", (13, 30)),
            ("05:00 PM", (17, 0)),
            ("9:05 pm", (21, 5)),
        ],
    )
    def test_valid_labels(self, label: str, expected: tuple[int, int]) -> None:
        assert parse_slot_label(label) == expected

    @pytest.mark.parametrize(
        "label",
        ["", "10:00", "25:00 PM", "00:30 AM", "10:60 AM", "ten AM", "10:00 XM", "1000 AM"],
    )
    def test_invalid_labels_raise_parse_error(self, label: str) -> None:
        with pytest.raises(ParseError):
            parse_slot_label(label)

    def test_non_string_raises_parse_error(self) -> None:
        with pytest.raises(ParseError):
            parse_slot_label(1000)  # type: ignore[arg-type]

    @given(
        hour=st.integers(min_value=0, max_value=23),
        minute=st.integers(min_value=0, max_value=59),
    )
    def test_format_then_parse_is_identity(self, hour: int, minute: int) -> None:
        assert parse_slot_label(format_slot_label(hour, minute)) == (hour, minute)


class TestParseDate:
    def test_accepts_iso_string(self) -> None:
        assert parse_date("2026-10-17") == TODAY

    def test_accepts_date_and_datetime(self) -> None:
        assert parse_date(TODAY) == TODAY
        assert parse_date(at(15)) == TODAY

    @pytest.mark.parametrize("value", ["17/10/2026", "2026-13-01", "tomorrow", ""])
    def test_malformed_strings_raise_parse_error(self, value: str) -> None:
        with pytest.raises(ParseError):
            parse_date(value)

    def test_parse_error_is_a_value_error(self) -> None:
        with pytest.raises(ValueError):
            parse_date("not-a-date")


class TestIsPast:
    """Past-slot detection relative to an explicit now."""

    def test_earlier_slot_today_is_past(self) -> None:
        assert is_past("10:00 AM", TODAY, now=at(10, 30)) is True

    def test_same_slot_tomorrow_is_not_past(self) -> None:
        assert is_past("10:00 AM", TOMORROW, now=at(10, 30)) is False

    def test_yesterday_is_never_past(self) -> None:
        assert is_past("10:00 AM", TODAY - timedelta(days=1), now=at(10, 30)) is False

    def test_slot_starting_exactly_now_is_not_past(self) -> None:
        assert is_past("10:30 AM", TODAY, now=at(10, 30)) is False

    def test_later_slot_today_is_not_past(self) -> None:
        assert is_past("11:00 AM", TODAY, now=at(10, 30)) is False

    def test_accepts_time_slot_and_string_date(self) -> None:
        slot = find_slot("02:00 PM")

        assert is_past(slot, "2026-10-17", now=at(14, 1)) is True

    def test_malformed_label_raises(self) -> None:
        with pytest.raises(ParseError):
            is_past("2 o'clock", TODAY, now=at(10))

    def test_available_slots_filters_elapsed(self) -> None:
        open_slots = available_slots(TODAY, now=at(16, 10))

        assert [s.label for s in open_slots] == ["04:30 PM", "05:00 PM"]
        assert len(available_slots(TOMORROW, now=at(16, 10))) == 15


class TestToAbsoluteTimestamp:
    def test_noon_resolves_to_hour_twelve(self) -> None:
        ts = to_absolute_timestamp(TODAY, "12:00 PM")

        assert (ts.hour, ts.minute, ts.second, ts.microsecond) == (12, 0, 0, 0)
        assert ts.date() == TODAY

    def test_midnight_resolves_to_hour_zero(self) -> None:
        ts = to_absolute_timestamp(TODAY, "12:00 AM")

        assert ts.hour == 0
        assert ts.date() == TODAY

    def test_result_is_timezone_aware(self) -> None:
        assert to_absolute_timestamp(TODAY, "10:30 AM").tzinfo is not None

    def test_explicit_zone(self) -> None:
        ts = to_absolute_timestamp("2026-10-17", "03:30 PM", tz=ZoneInfo("Asia/Kolkata"))

        assert ts.utcoffset() == timedelta(hours=5, minutes=30)
        assert (ts.hour, ts.minute) == (15, 30)

    def test_malformed_inputs_raise_parse_error(self) -> None:
        with pytest.raises(ParseError):
            to_absolute_timestamp(TODAY, "15:30")
        with pytest.raises(ParseError):
            to_absolute_timestamp("2026/10/17", "03:30 PM")


class TestSchedulingAssistant:
    """Clock-bound operations used at render and submission time."""

    @pytest.fixture
    def clock(self) -> list[datetime]:
        return [at(11, 15)]

    @pytest.fixture
    def assistant(self, clock: list[datetime]) -> SchedulingAssistant:
        config = SchedulingConfig(timezone="Asia/Kolkata")
        return SchedulingAssistant(config, clock=lambda: clock[0])

    def test_available_slots_uses_clock(self, assistant: SchedulingAssistant) -> None:
        labels = [s.label for s in assistant.available_slots(TODAY)]

        assert labels[0] == "11:30 AM"
        assert "11:00 AM" not in labels

    def test_validate_selection_returns_timestamp(self, assistant: SchedulingAssistant) -> None:
        ts = assistant.validate_selection(TODAY, "02:30 PM")

        assert (ts.hour, ts.minute) == (14, 30)
        assert ts.utcoffset() == timedelta(hours=5, minutes=30)

    def test_selection_expires_between_render_and_submit(
        self, assistant: SchedulingAssistant, clock: list[datetime]
    ) -> None:
        assert not assistant.is_past("11:30 AM", TODAY)

        clock[0] = at(11, 31)

        assert assistant.is_past("11:30 AM", TODAY)
        with pytest.raises(ValidationError) as exc_info:
            assistant.validate_selection(TODAY, "11:30 AM")
        assert exc_info.value.field == "slot"

    def test_draft_requires_grid_slot(self, assistant: SchedulingAssistant) -> None:
        draft = assistant.draft(TOMORROW, "10:30 AM", reason="  follow-up ")

        assert draft.slot.label == "10:30 AM"
        assert draft.appointment_date == TOMORROW
        assert draft.reason == "follow-up"

        with pytest.raises(ValidationError):
            assistant.draft(TOMORROW, "10:15 AM")
        with pytest.raises(ValidationError):
            assistant.draft(TOMORROW, "07:00 PM")

    def test_default_clock_is_aware(self) -> None:
        assert SchedulingAssistant().now().tzinfo is not None
