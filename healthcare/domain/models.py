"""
Domain models for the patient portal.

These models represent the core business concepts and are framework-agnostic.
They use Pydantic for validation; the hosted backend owns their persistence.
"""

import math
from datetime import UTC, date, datetime, time
from enum import Enum
from typing import Literal

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    ValidationInfo,
    computed_field,
    field_validator,
)


class MetricKind(str, Enum):
    """The six tracked vital-sign categories."""

    BLOOD_PRESSURE = "blood_pressure"
    HEART_RATE = "heart_rate"
    BLOOD_SUGAR = "blood_sugar"
    WEIGHT = "weight"
    TEMPERATURE = "temperature"
    OXYGEN_SATURATION = "oxygen_saturation"

    @property
    def display_name(self) -> str:
        return _KIND_DISPLAY[self][0]

    @property
    def default_unit(self) -> str:
        return _KIND_DISPLAY[self][1]

    @classmethod
    def evaluation_order(cls) -> tuple["MetricKind", ...]:
        """Fixed order in which advisory rules run."""
        return (
            cls.BLOOD_PRESSURE,
            cls.HEART_RATE,
            cls.BLOOD_SUGAR,
            cls.WEIGHT,
            cls.TEMPERATURE,
            cls.OXYGEN_SATURATION,
        )


_KIND_DISPLAY: dict[MetricKind, tuple[str, str]] = {
    MetricKind.BLOOD_PRESSURE: ("Blood Pressure", "mmHg"),
    MetricKind.HEART_RATE: ("Heart Rate", "bpm"),
    MetricKind.BLOOD_SUGAR: ("Blood Sugar", "mg/dL"),
    MetricKind.WEIGHT: ("Weight", "kg"),
    MetricKind.TEMPERATURE: ("Temperature", "°C"),
    MetricKind.OXYGEN_SATURATION: ("Oxygen Saturation", "%"),
}


class Measurement(BaseModel):
    """A single vital-sign reading recorded by the patient."""

    model_config = ConfigDict(frozen=True)  # Immutable once recorded

    kind: MetricKind
    value: float
    measured_at: datetime
    unit: str = Field(default="", validate_default=True)
    notes: str | None = None
    id: str | None = None

    @field_validator("value")
    @classmethod
    def value_must_be_finite(cls, v: float) -> float:
        if not math.isfinite(v):
            raise ValueError("measurement value must be a finite number")
        return v

    @field_validator("measured_at")
    @classmethod
    def assume_local_time(cls, v: datetime) -> datetime:
        # Backend rows carry local wall time without an offset
        if v.tzinfo is None:
            return v.astimezone()
        return v

    @field_validator("unit")
    @classmethod
    def default_unit_for_kind(cls, v: str, info: ValidationInfo) -> str:
        kind = info.data.get("kind")
        if not v and isinstance(kind, MetricKind):
            return kind.default_unit
        return v


class AdvisoryDirection(str, Enum):
    """Which way a reading strayed from its normal range."""

    HIGH = "high"
    LOW = "low"
    GAIN = "gain"
    LOSS = "loss"


class Advisory(BaseModel):
    """Advisory text triggered by one threshold rule."""

    model_config = ConfigDict(frozen=True)

    kind: MetricKind
    direction: AdvisoryDirection
    message: str = Field(min_length=1)


class AdvisoryReport(BaseModel):
    """Advisories for a measurement set together with the readings they were based on."""

    advisories: list[Advisory]
    latest: dict[MetricKind, Measurement]
    generated_at: datetime = Field(default_factory=lambda: datetime.now(UTC))

    @computed_field(return_type=str)
    def overall_status(self) -> Literal["normal", "attention"]:
        return "attention" if self.advisories else "normal"

    @property
    def messages(self) -> list[str]:
        return [advisory.message for advisory in self.advisories]


class TimeSlot(BaseModel):
    """Half-hour booking window within the daily grid."""

    model_config = ConfigDict(frozen=True)

    label: str = Field(pattern=r"^(0[1-9]|1[0-2]):[0-5]\d (AM|PM)$")
    start_hour: int = Field(ge=0, le=23)
    start_minute: Literal[0, 30]

    def as_time(self) -> time:
        return time(self.start_hour, self.start_minute)


class AppointmentStatus(str, Enum):
    SCHEDULED = "scheduled"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class DoctorSummary(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    full_name: str
    specialization: str
    department: str


class HospitalSummary(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    address: str


class PatientContact(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    full_name: str | None = None
    email: str | None = None


class AppointmentDraft(BaseModel):
    """Transient booking input: a calendar date, a grid slot and a reason."""

    model_config = ConfigDict(frozen=True)

    appointment_date: date
    slot: TimeSlot
    reason: str = ""


class BookingRequest(BaseModel):
    """Everything needed to book an appointment, passed in explicitly."""

    model_config = ConfigDict(frozen=True)

    patient: PatientContact
    doctor: DoctorSummary
    hospital: HospitalSummary
    appointment_date: date | str
    slot_label: str
    reason: str = ""


class Appointment(BaseModel):
    """Appointment record as exchanged with the backend store."""

    model_config = ConfigDict(frozen=True)

    id: str | None = None
    patient_id: str
    doctor: DoctorSummary
    hospital: HospitalSummary
    scheduled_at: datetime
    reason: str | None = None
    status: AppointmentStatus = AppointmentStatus.SCHEDULED
    notes: str | None = None

    @field_validator("scheduled_at")
    @classmethod
    def assume_local_time(cls, v: datetime) -> datetime:
        if v.tzinfo is None:
            return v.astimezone()
        return v
