"""
Validation of user-entered health measurements.

Raw form input is checked here so the advisor only ever sees finite numeric values.
"""

import math
from datetime import datetime

import pydantic
import structlog

from healthcare.domain.models import Measurement, MetricKind
from healthcare.errors import ValidationError

logger = structlog.get_logger(__name__)


def parse_metric_kind(raw: MetricKind | str | None) -> MetricKind:
    if isinstance(raw, MetricKind):
        return raw
    if raw is None or not str(raw).strip():
        raise ValidationError("Please choose a metric type.", field="metric_type")
    try:
        return MetricKind(str(raw).strip().lower())
    except ValueError as e:
        raise ValidationError(f"Unknown metric type: {raw}", field="metric_type") from e


def parse_metric_value(raw: str | float | int | None) -> float:
    """Parse a form value into a finite float."""
    if raw is None or (isinstance(raw, str) and not raw.strip()):
        raise ValidationError("Please enter a value before saving.", field="value")
    if isinstance(raw, bool):
        raise ValidationError("Invalid value. Please enter a valid number.", field="value")

    try:
        value = float(raw.strip() if isinstance(raw, str) else raw)
    except (TypeError, ValueError) as e:
        raise ValidationError("Invalid value. Please enter a valid number.", field="value") from e

    if not math.isfinite(value):
        raise ValidationError("Invalid value. Please enter a valid number.", field="value")
    return value


def record_measurement(
    kind: MetricKind | str | None,
    raw_value: str | float | int | None,
    measured_at: datetime | None = None,
    unit: str | None = None,
    notes: str | None = None,
) -> Measurement:
    """
    Build a Measurement from form input.

    Args:
        kind: Metric kind or its string value
        raw_value: Value as typed by the user
        measured_at: Reading time; defaults to now in the local time zone
        unit: Unit override; defaults to the kind's unit
        notes: Free text, blank becomes None

    Raises:
        ValidationError: missing or non-numeric value, unknown kind
    """
    metric_kind = parse_metric_kind(kind)
    value = parse_metric_value(raw_value)

    try:
        measurement = Measurement(
            kind=metric_kind,
            value=value,
            measured_at=measured_at or datetime.now().astimezone(),
            unit=unit or metric_kind.default_unit,
            notes=notes.strip() if notes and notes.strip() else None,
        )
    except pydantic.ValidationError as e:
        raise ValidationError(f"Invalid measurement: {e.errors()[0]['msg']}") from e

    logger.debug("measurement_recorded", kind=metric_kind.value, value=value)
    return measurement
