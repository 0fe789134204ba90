"""
Tests for backend row mapping in `adapters/supabase/records.py`.

Covers:
- health_metrics rows to Measurement, including string values and missing columns
- appointments rows with joined doctor/hospital objects to Appointment
- Appointment to insertable row using clinic (or system) wall time
"""

from __future__ import annotations

import time
from collections.abc import Iterator
from datetime import date, datetime, timedelta, timezone

import pytest

from adapters.supabase.records import (
    APPOINTMENT_DATE_FORMAT,
    appointment_from_row,
    appointment_to_row,
    measurement_from_row,
    measurements_from_rows,
)
from healthcare.config import SchedulingConfig
from healthcare.domain.models import AppointmentStatus, MetricKind
from healthcare.errors import ValidationError
from healthcare.services.scheduling import SchedulingAssistant

IST = timezone(timedelta(hours=5, minutes=30))


@pytest.fixture
def metric_row() -> dict:
    return {
        "id": 7,
        "user_id": "patient-1",
        "metric_type": "heart_rate",
        "value": "72",
        "unit": "bpm",
        "measured_at": "2026-10-17T08:00:00Z",
        "notes": None,
    }


@pytest.fixture
def appointment_row() -> dict:
    return {
        "id": "apt-1",
        "user_id": "patient-1",
        "doctor_id": "doc-1",
        "hospital_id": "hosp-1",
        "appointment_date": "2026-10-18T10:30:00+05:30",
        "status": "scheduled",
        "reason": "Follow-up",
        "notes": None,
        "doctor": {
            "full_name": "Meera Iyer",
            "specialization": "Cardiology",
            "department": "Heart",
        },
        "hospital": {"name": "City Hospital", "address": "12 MG Road"},
    }


class TestMeasurementRows:
    def test_maps_row(self, metric_row: dict) -> None:
        measurement = measurement_from_row(metric_row)

        assert measurement.id == "7"
        assert measurement.kind is MetricKind.HEART_RATE
        assert measurement.value == 72.0
        assert measurement.measured_at == datetime(2026, 10, 17, 8, 0, tzinfo=timezone.utc)

    def test_unit_defaults_from_kind(self, metric_row: dict) -> None:
        metric_row["unit"] = None

        assert measurement_from_row(metric_row).unit == "bpm"

    @pytest.mark.parametrize("column", ["metric_type", "value", "measured_at"])
    def test_missing_column(self, metric_row: dict, column: str) -> None:
        del metric_row[column]

        with pytest.raises(ValidationError) as exc_info:
            measurement_from_row(metric_row)
        assert exc_info.value.field == column

    def test_non_numeric_value(self, metric_row: dict) -> None:
        metric_row["value"] = "n/a"

        with pytest.raises(ValidationError):
            measurement_from_row(metric_row)

    def test_bad_timestamp(self, metric_row: dict) -> None:
        metric_row["measured_at"] = "yesterday"

        with pytest.raises(ValidationError):
            measurement_from_row(metric_row)

    def test_many_rows(self, metric_row: dict) -> None:
        rows = [metric_row, {**metric_row, "id": 8, "metric_type": "weight", "value": 70}]

        kinds = [m.kind for m in measurements_from_rows(rows)]

        assert kinds == [MetricKind.HEART_RATE, MetricKind.WEIGHT]


class TestAppointmentRows:
    def test_maps_row_with_joins(self, appointment_row: dict) -> None:
        appointment = appointment_from_row(appointment_row)

        assert appointment.id == "apt-1"
        assert appointment.patient_id == "patient-1"
        assert appointment.doctor.id == "doc-1"
        assert appointment.doctor.full_name == "Meera Iyer"
        assert appointment.hospital.address == "12 MG Road"
        assert appointment.scheduled_at == datetime(2026, 10, 18, 10, 30, tzinfo=IST)
        assert appointment.status is AppointmentStatus.SCHEDULED

    def test_missing_status_defaults_to_scheduled(self, appointment_row: dict) -> None:
        appointment_row["status"] = None

        assert appointment_from_row(appointment_row).status is AppointmentStatus.SCHEDULED

    def test_unknown_status(self, appointment_row: dict) -> None:
        appointment_row["status"] = "no_show"

        with pytest.raises(ValidationError) as exc_info:
            appointment_from_row(appointment_row)
        assert exc_info.value.field == "status"

    def test_missing_join(self, appointment_row: dict) -> None:
        del appointment_row["doctor"]

        with pytest.raises(ValidationError):
            appointment_from_row(appointment_row)

    def test_naive_wall_time_is_local(self, appointment_row: dict) -> None:
        appointment_row["appointment_date"] = "2026-10-18 10:30:00"

        scheduled_at = appointment_from_row(appointment_row).scheduled_at

        assert scheduled_at.tzinfo is not None
        assert (scheduled_at.hour, scheduled_at.minute) == (10, 30)

    def test_to_row_round_trip(self, appointment_row: dict) -> None:
        appointment = appointment_from_row(appointment_row)

        row = appointment_to_row(appointment)
        local = appointment.scheduled_at.astimezone()

        assert row["id"] == "apt-1"
        assert row["user_id"] == "patient-1"
        assert row["doctor_id"] == "doc-1"
        assert row["hospital_id"] == "hosp-1"
        assert row["appointment_date"] == local.strftime(APPOINTMENT_DATE_FORMAT)
        assert row["status"] == "scheduled"
        assert row["reason"] == "Follow-up"
        assert "notes" not in row
        assert appointment_from_row({**appointment_row, **row}).scheduled_at == (
            appointment.scheduled_at
        )


@pytest.fixture
def server_on_utc(monkeypatch: pytest.MonkeyPatch) -> Iterator[None]:
    """Run with the process time zone pinned to UTC, as on a typical server."""
    monkeypatch.setenv("TZ", "UTC")
    time.tzset()
    yield
    monkeypatch.undo()
    time.tzset()


@pytest.mark.usefixtures("server_on_utc")
class TestClinicTimeZone:
    """Stored wall time follows the clinic zone, not the server zone."""

    @pytest.fixture
    def scheduling(self) -> SchedulingConfig:
        return SchedulingConfig(timezone="Asia/Kolkata")

    def test_row_written_in_clinic_wall_time(
        self, appointment_row: dict, scheduling: SchedulingConfig
    ) -> None:
        scheduled_at = SchedulingAssistant(scheduling).to_absolute_timestamp(
            date(2030, 1, 10), "02:30 PM"
        )
        appointment = appointment_from_row(appointment_row).model_copy(
            update={"scheduled_at": scheduled_at}
        )

        row = appointment_to_row(appointment, scheduling.tzinfo())

        assert row["appointment_date"] == "2030-01-10 14:30:00"

    def test_naive_row_read_in_clinic_zone(
        self, appointment_row: dict, scheduling: SchedulingConfig
    ) -> None:
        appointment_row["appointment_date"] = "2030-01-10 14:30:00"

        scheduled_at = appointment_from_row(appointment_row, scheduling.tzinfo()).scheduled_at

        assert scheduled_at == datetime(2030, 1, 10, 14, 30, tzinfo=IST)

    def test_clinic_round_trip(self, appointment_row: dict, scheduling: SchedulingConfig) -> None:
        tz = scheduling.tzinfo()
        appointment = appointment_from_row(appointment_row, tz)

        row = appointment_to_row(appointment, tz)

        assert row["appointment_date"] == "2026-10-18 10:30:00"
        assert appointment_from_row({**appointment_row, **row}, tz).scheduled_at == (
            appointment.scheduled_at
        )

    def test_without_clinic_zone_falls_back_to_system(self, appointment_row: dict) -> None:
        appointment = appointment_from_row(appointment_row)

        assert appointment_to_row(appointment)["appointment_date"] == "2026-10-18 05:00:00"
