"""
Appointment confirmation messages.

Delivery is best effort: notifiers report failures as Result errors and the
booking workflow logs them without failing the booking.
"""

from datetime import datetime
from typing import Protocol

import httpx
import structlog
from pydantic import BaseModel, Field

from healthcare.config import NotificationConfig
from healthcare.domain.models import Appointment, DoctorSummary, HospitalSummary, PatientContact
from healthcare.services.result import Result

logger = structlog.get_logger(__name__)


class ConfirmationPayload(BaseModel):
    """Everything the confirmation message needs, independent of the delivery channel."""

    patient_name: str = Field(default="Patient")
    patient_email: str
    appointment_at: datetime
    doctor: DoctorSummary
    hospital: HospitalSummary
    reason: str | None = None

    @classmethod
    def for_appointment(
        cls, appointment: Appointment, patient: PatientContact
    ) -> "ConfirmationPayload":
        if not patient.email:
            raise ValueError("patient has no e-mail address")
        return cls(
            patient_name=patient.full_name or "Patient",
            patient_email=patient.email,
            appointment_at=appointment.scheduled_at,
            doctor=appointment.doctor,
            hospital=appointment.hospital,
            reason=appointment.reason,
        )


def _ordinal(day: int) -> str:
    if 11 <= day % 100 <= 13:
        suffix = "th"
    else:
        suffix = {1: "st", 2: "nd", 3: "rd"}.get(day % 10, "th")
    return f"{day}{suffix}"


def format_appointment_datetime(moment: datetime) -> str:
    """Long human date and short time, e.g. 'October 17th, 2026 10:30 AM'."""
    months = (
        "January", "February", "March", "April", "May", "June",
        "July", "August", "September", "October", "November", "December",
    )  # fmt: skip
    hour12 = moment.hour % 12 or 12
    meridiem = "AM" if moment.hour < 12 else "PM"
    return (
        f"{months[moment.month - 1]} {_ordinal(moment.day)}, {moment.year} "
        f"{hour12}:{moment.minute:02d} {meridiem}"
    )


def render_confirmation_email(payload: ConfirmationPayload) -> str:
    """Plain-text body of the confirmation e-mail."""
    lines = [
        f"Dear {payload.patient_name},",
        "",
        f"Your appointment has been confirmed for "
        f"{format_appointment_datetime(payload.appointment_at)}.",
        "",
        "Details:",
        f"- Doctor: Dr. {payload.doctor.full_name}",
        f"- Specialization: {payload.doctor.specialization}",
        f"- Department: {payload.doctor.department}",
        f"- Hospital: {payload.hospital.name}",
        f"- Address: {payload.hospital.address}",
    ]
    if payload.reason:
        lines.append(f"- Reason: {payload.reason}")
    lines += [
        "",
        "Please arrive 15 minutes before your scheduled appointment time.",
        "If you need to reschedule or cancel, please do so at least 24 hours in advance.",
        "",
        "Best regards,",
        "HealthCare Team",
    ]
    return "\n".join(lines)


class ConfirmationNotifier(Protocol):
    """
    Protocol for delivering booking confirmations.

    Implementations return Result.err instead of raising for delivery failures.
    """

    async def send_confirmation(self, payload: ConfirmationPayload) -> Result[str, Exception]:
        ...


class ResendEmailNotifier:
    """Sends confirmations through the Resend e-mail API."""

    def __init__(
        self, config: NotificationConfig, client: httpx.AsyncClient | None = None
    ) -> None:
        if not config.resend_api_key:
            raise ValueError("ResendEmailNotifier requires a Resend API key")
        self.config = config
        self._client = client
        self.logger = logger.bind(component="resend_email_notifier")

    async def send_confirmation(self, payload: ConfirmationPayload) -> Result[str, Exception]:
        body = {
            "from": self.config.sender,
            "to": [payload.patient_email],
            "subject": self.config.subject,
            "text": render_confirmation_email(payload),
        }
        headers = {"Authorization": f"Bearer {self.config.resend_api_key}"}

        try:
            if self._client is not None:
                resp = await self._client.post(self.config.api_url, json=body, headers=headers)
            else:
                async with httpx.AsyncClient(timeout=self.config.timeout_seconds) as client:
                    resp = await client.post(self.config.api_url, json=body, headers=headers)
        except httpx.HTTPError as e:
            self.logger.warning("confirmation_email_transport_failed", error=str(e))
            return Result.err(e)

        if resp.is_success:
            self.logger.info("confirmation_email_sent", status_code=resp.status_code)
            return Result.ok("Email sent successfully")

        self.logger.warning(
            "confirmation_email_rejected", status_code=resp.status_code, body=resp.text[:200]
        )
        return Result.err(RuntimeError(f"Email API Error: {resp.text}"))


class ConsoleNotifier:
    """Development notifier that logs the rendered message instead of sending it."""

    def __init__(self) -> None:
        self.logger = logger.bind(component="console_notifier")
        self.sent: list[ConfirmationPayload] = []

    async def send_confirmation(self, payload: ConfirmationPayload) -> Result[str, Exception]:
        self.sent.append(payload)
        self.logger.info(
            "confirmation_email_logged",
            to=payload.patient_email,
            body=render_confirmation_email(payload),
        )
        return Result.ok("Email logged")


def build_notifier(config: NotificationConfig) -> ConfirmationNotifier | None:
    """None when confirmations are disabled, Resend with an API key, console logging otherwise."""
    if not config.enabled:
        logger.info("confirmations_disabled")
        return None
    if config.resend_api_key:
        return ResendEmailNotifier(config)
    return ConsoleNotifier()
