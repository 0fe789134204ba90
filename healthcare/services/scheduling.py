"""
Appointment time grid and 12-hour label handling.

The daily grid is fixed: 15 half-hour slots starting at 10:00. Everything here
is synchronous and side-effect free apart from reading the clock, which is
injected so render-time and submit-time checks can be tested separately.
"""

import re
from collections.abc import Callable
from datetime import date, datetime, time, timedelta, tzinfo
from functools import lru_cache

import structlog

from healthcare.config import SchedulingConfig
from healthcare.domain.models import AppointmentDraft, TimeSlot
from healthcare.errors import ParseError, ValidationError

logger = structlog.get_logger(__name__)

DAY_START = time(10, 0)
SLOT_MINUTES = 30
SLOT_COUNT = 15

_LABEL_PATTERN = re.compile(r"^\s*(\d{1,2}):(\d{2})\s*([AaPp][Mm])\s*$")

Clock = Callable[[], datetime]


def format_slot_label(hour: int, minute: int) -> str:
    """24-hour clock time to a zero-padded 12-hour label, e.g. 13:30 -> '01:30 PM'."""
    meridiem = "AM" if hour < 12 else "PM"
    return f"{hour % 12 or 12:02d}:{minute:02d} {meridiem}"


@lru_cache(maxsize=1)
def _slot_grid() -> tuple[TimeSlot, ...]:
    start = datetime.combine(date.min, DAY_START)
    slots = []
    for i in range(SLOT_COUNT):
        moment = start + timedelta(minutes=SLOT_MINUTES * i)
        slots.append(
            TimeSlot(
                label=format_slot_label(moment.hour, moment.minute),
                start_hour=moment.hour,
                start_minute=moment.minute,
            )
        )
    return tuple(slots)


def generate_slots() -> list[TimeSlot]:
    """The bookable grid, 10:00 AM through 05:00 PM in 30-minute steps."""
    return list(_slot_grid())


def parse_slot_label(label: str) -> tuple[int, int]:
    """
    Parse 'hh:mm AM|PM' into a 24-hour (hour, minute) pair.

    12 AM is hour 0 and 12 PM is hour 12.
    """
    if not isinstance(label, str):
        raise ParseError(f"Time label must be a string, got {type(label).__name__}", label)

    match = _LABEL_PATTERN.match(label)
    if match is None:
        raise ParseError(f"Time label {label!r} does not match 'hh:mm AM|PM'", label)

    hours, minutes, meridiem = int(match.group(1)), int(match.group(2)), match.group(3).upper()
    if not 1 <= hours <= 12 or minutes > 59:
        raise ParseError(f"Time label {label!r} is not a valid 12-hour time", label)

    if meridiem == "PM" and hours != 12:
        hours += 12
    elif meridiem == "AM" and hours == 12:
        hours = 0
    return hours, minutes


def parse_date(value: date | datetime | str) -> date:
    """Accept a date, a datetime (its calendar day) or an ISO 'YYYY-MM-DD' string."""
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        try:
            return date.fromisoformat(value.strip())
        except ValueError as e:
            raise ParseError(f"Date {value!r} is not in YYYY-MM-DD format", value) from e
    raise ParseError(f"Unsupported date value: {value!r}", value)


def _slot_time(slot: TimeSlot | str) -> time:
    if isinstance(slot, TimeSlot):
        return slot.as_time()
    return time(*parse_slot_label(slot))


def is_past(slot: TimeSlot | str, target_date: date | str, now: datetime) -> bool:
    """
    Whether the slot has already started.

    Only a slot on the same calendar day as ``now`` can be past; the comparison
    uses ``now``'s own time zone.
    """
    day = parse_date(target_date)
    slot_time = _slot_time(slot)
    if day != now.date():
        return False
    return datetime.combine(day, slot_time, tzinfo=now.tzinfo) < now


def to_absolute_timestamp(
    target_date: date | str, slot_label: str, tz: tzinfo | None = None
) -> datetime:
    """
    Combine a calendar date and a 12-hour label into an aware timestamp.

    Seconds and microseconds are zero. Without ``tz`` the system local zone is used.
    """
    day = parse_date(target_date)
    hour, minute = parse_slot_label(slot_label)
    naive = datetime.combine(day, time(hour, minute))
    if tz is None:
        return naive.astimezone()
    return naive.replace(tzinfo=tz)


def available_slots(target_date: date | str, now: datetime) -> list[TimeSlot]:
    """Grid slots still bookable on the target date."""
    return [slot for slot in generate_slots() if not is_past(slot, target_date, now)]


def find_slot(label: str) -> TimeSlot:
    """Look up a grid slot by label; raises ValidationError for times off the grid."""
    hour, minute = parse_slot_label(label)
    for slot in _slot_grid():
        if (slot.start_hour, slot.start_minute) == (hour, minute):
            return slot
    raise ValidationError(f"{label} is not a bookable time slot", field="slot")


class SchedulingAssistant:
    """
    Grid operations bound to the clinic's time zone and a clock.

    Selections must be re-validated at submission time since time advances
    between rendering the grid and submitting the form.
    """

    def __init__(self, config: SchedulingConfig | None = None, clock: Clock | None = None) -> None:
        self.config = config or SchedulingConfig()
        self.tz = self.config.tzinfo()
        self._clock = clock
        self.logger = logger.bind(component="scheduling_assistant")

    def now(self) -> datetime:
        if self._clock is not None:
            return self._clock()
        if self.tz is not None:
            return datetime.now(self.tz)
        return datetime.now().astimezone()

    def slots(self) -> list[TimeSlot]:
        return generate_slots()

    def available_slots(self, target_date: date | str) -> list[TimeSlot]:
        return available_slots(target_date, self.now())

    def is_past(self, slot: TimeSlot | str, target_date: date | str) -> bool:
        return is_past(slot, target_date, self.now())

    def to_absolute_timestamp(self, target_date: date | str, slot_label: str) -> datetime:
        return to_absolute_timestamp(target_date, slot_label, self.tz)

    def validate_selection(self, target_date: date | str, slot_label: str) -> datetime:
        """
        Resolve a (date, label) selection, rejecting it if the time is no longer in the future.

        Raises:
            ParseError: malformed date or label.
            ValidationError: the selected time is not strictly after now.
        """
        scheduled_at = self.to_absolute_timestamp(target_date, slot_label)
        now = self.now()
        if scheduled_at <= now:
            self.logger.info(
                "slot_selection_rejected",
                scheduled_at=scheduled_at.isoformat(),
                now=now.isoformat(),
            )
            raise ValidationError(
                f"The {slot_label} slot on {scheduled_at.date().isoformat()} has already passed",
                field="slot",
            )
        return scheduled_at

    def draft(self, target_date: date | str, slot_label: str, reason: str = "") -> AppointmentDraft:
        """Build a validated draft for a grid slot."""
        self.validate_selection(target_date, slot_label)
        return AppointmentDraft(
            appointment_date=parse_date(target_date),
            slot=find_slot(slot_label),
            reason=reason.strip(),
        )
