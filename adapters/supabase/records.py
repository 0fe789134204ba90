"""
Row mapping for the hosted Postgres backend.

The backend returns plain dicts per table row. These helpers convert them to
domain models and back, so the rest of the code never touches column names.

Tables used:
- health_metrics: id, user_id, metric_type, value, unit, measured_at, notes
- appointments: id, user_id, doctor_id, hospital_id, appointment_date, status,
  reason, notes, plus joined ``doctor`` and ``hospital`` objects on select
"""

from datetime import datetime, tzinfo
from typing import Any

import pydantic

from healthcare.domain.models import (
    Appointment,
    AppointmentStatus,
    DoctorSummary,
    HospitalSummary,
    Measurement,
)
from healthcare.errors import ValidationError
from healthcare.services.measurement_intake import parse_metric_kind, parse_metric_value

# appointment_date is stored as clinic wall time without an offset
APPOINTMENT_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def _require(row: dict[str, Any], column: str) -> Any:
    value = row.get(column)
    if value is None or value == "":
        raise ValidationError(f"Row is missing required column '{column}'", field=column)
    return value


def _parse_timestamp(raw: Any, column: str, tz: tzinfo | None = None) -> datetime:
    """Parse an ISO timestamp; naive values are wall time in ``tz`` when one is given."""
    if isinstance(raw, datetime):
        parsed = raw
    else:
        try:
            parsed = datetime.fromisoformat(str(raw).replace("Z", "+00:00"))
        except ValueError as e:
            raise ValidationError(
                f"Column '{column}' is not a timestamp: {raw!r}", field=column
            ) from e
    if parsed.tzinfo is None and tz is not None:
        return parsed.replace(tzinfo=tz)
    return parsed


def measurement_from_row(row: dict[str, Any]) -> Measurement:
    """health_metrics row to Measurement; malformed rows raise ValidationError."""
    kind = parse_metric_kind(_require(row, "metric_type"))
    value = parse_metric_value(_require(row, "value"))
    measured_at = _parse_timestamp(_require(row, "measured_at"), "measured_at")

    try:
        return Measurement(
            id=str(row["id"]) if row.get("id") is not None else None,
            kind=kind,
            value=value,
            unit=row.get("unit") or kind.default_unit,
            measured_at=measured_at,
            notes=row.get("notes"),
        )
    except pydantic.ValidationError as e:
        raise ValidationError(f"Invalid health_metrics row: {e.errors()[0]['msg']}") from e


def measurements_from_rows(rows: list[dict[str, Any]]) -> list[Measurement]:
    return [measurement_from_row(row) for row in rows]


def appointment_to_row(appointment: Appointment, tz: tzinfo | None = None) -> dict[str, Any]:
    """
    Appointment to an insertable appointments row.

    ``tz`` is the clinic zone (``SchedulingConfig.tzinfo()``); without it the
    wall time is written in the system zone.
    """
    local = appointment.scheduled_at.astimezone(tz)
    row: dict[str, Any] = {
        "user_id": appointment.patient_id,
        "doctor_id": appointment.doctor.id,
        "hospital_id": appointment.hospital.id,
        "appointment_date": local.strftime(APPOINTMENT_DATE_FORMAT),
        "reason": appointment.reason,
        "status": appointment.status.value,
    }
    if appointment.id is not None:
        row["id"] = appointment.id
    if appointment.notes is not None:
        row["notes"] = appointment.notes
    return row


def appointment_from_row(row: dict[str, Any], tz: tzinfo | None = None) -> Appointment:
    """
    appointments row with joined doctor and hospital objects to Appointment.

    Naive ``appointment_date`` values are read as wall time in ``tz``, or in
    the system zone when no clinic zone is configured.
    """
    doctor = _require(row, "doctor")
    hospital = _require(row, "hospital")

    try:
        status = AppointmentStatus(row.get("status") or AppointmentStatus.SCHEDULED.value)
    except ValueError as e:
        raise ValidationError(
            f"Unknown appointment status: {row.get('status')}", field="status"
        ) from e

    try:
        return Appointment(
            id=str(row["id"]) if row.get("id") is not None else None,
            patient_id=str(_require(row, "user_id")),
            doctor=DoctorSummary(
                id=str(row.get("doctor_id") or doctor.get("id") or ""),
                full_name=doctor.get("full_name", ""),
                specialization=doctor.get("specialization", ""),
                department=doctor.get("department", ""),
            ),
            hospital=HospitalSummary(
                id=str(row.get("hospital_id") or hospital.get("id") or ""),
                name=hospital.get("name", ""),
                address=hospital.get("address", ""),
            ),
            scheduled_at=_parse_timestamp(
                _require(row, "appointment_date"), "appointment_date", tz
            ),
            reason=row.get("reason"),
            status=status,
            notes=row.get("notes"),
        )
    except pydantic.ValidationError as e:
        raise ValidationError(f"Invalid appointments row: {e.errors()[0]['msg']}") from e
