"""
Core services for the application.

This package contains the advisory rules, scheduling grid, measurement intake,
booking workflow and confirmation notifiers.
"""

from .booking import AppointmentStore, BookingOutcome, BookingService, split_appointments
from .measurement_intake import parse_metric_kind, parse_metric_value, record_measurement
from .metric_advisor import MetricAdvisor, generate_advisories, group_by_kind
from .notifications import (
    ConfirmationNotifier,
    ConfirmationPayload,
    ConsoleNotifier,
    ResendEmailNotifier,
    build_notifier,
)
from .result import Result
from .scheduling import (
    SchedulingAssistant,
    available_slots,
    generate_slots,
    is_past,
    parse_date,
    parse_slot_label,
    to_absolute_timestamp,
)

__all__ = [
    "AppointmentStore",
    "BookingOutcome",
    "BookingService",
    "split_appointments",
    "parse_metric_kind",
    "parse_metric_value",
    "record_measurement",
    "MetricAdvisor",
    "generate_advisories",
    "group_by_kind",
    "ConfirmationNotifier",
    "ConfirmationPayload",
    "ConsoleNotifier",
    "ResendEmailNotifier",
    "build_notifier",
    "Result",
    "SchedulingAssistant",
    "available_slots",
    "generate_slots",
    "is_past",
    "parse_date",
    "parse_slot_label",
    "to_absolute_timestamp",
]
