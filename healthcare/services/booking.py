"""
Appointment booking workflow.

Pipeline:
1. Re-validate the selected slot against the current time
2. Persist a scheduled appointment through the store
3. Send the confirmation, best effort

Persistence errors propagate to the caller. Confirmation failures are logged
and reported on the outcome, never raised.
"""

import asyncio
from collections.abc import Iterable
from dataclasses import dataclass
from datetime import datetime
from typing import Protocol

import structlog

from healthcare.domain.models import (
    Appointment,
    AppointmentStatus,
    BookingRequest,
)
from healthcare.errors import ValidationError
from healthcare.services.notifications import ConfirmationNotifier, ConfirmationPayload
from healthcare.services.scheduling import SchedulingAssistant

logger = structlog.get_logger(__name__)


class AppointmentStore(Protocol):
    """
    What the booking workflow needs from the hosted backend.

    The backend assigns ids and owns authorization; implementations raise on failure.
    """

    async def create_appointment(self, appointment: Appointment) -> Appointment:
        ...

    async def update_status(self, appointment_id: str, status: AppointmentStatus) -> None:
        ...


@dataclass(frozen=True)
class BookingOutcome:
    """Result of a booking: the stored appointment and whether the confirmation went out."""

    appointment: Appointment
    notified: bool
    notification_error: str | None = None


class BookingService:
    """Books and cancels appointments for a patient."""

    def __init__(
        self,
        store: AppointmentStore,
        notifier: ConfirmationNotifier | None = None,
        assistant: SchedulingAssistant | None = None,
        notification_timeout_seconds: float = 10.0,
    ) -> None:
        self.store = store
        self.notifier = notifier
        self.assistant = assistant or SchedulingAssistant()
        self.notification_timeout_seconds = notification_timeout_seconds
        self.logger = logger.bind(component="booking_service")

    async def book(self, request: BookingRequest) -> BookingOutcome:
        """
        Book the requested slot.

        Raises:
            ParseError: malformed date or time label.
            ValidationError: the slot is off the grid or no longer in the future.
        """
        # Re-check at submission time; the grid may have been rendered minutes ago
        draft = self.assistant.draft(request.appointment_date, request.slot_label, request.reason)
        scheduled_at = self.assistant.to_absolute_timestamp(
            draft.appointment_date, draft.slot.label
        )

        record = Appointment(
            patient_id=request.patient.id,
            doctor=request.doctor,
            hospital=request.hospital,
            scheduled_at=scheduled_at,
            reason=draft.reason or None,
            status=AppointmentStatus.SCHEDULED,
        )

        appointment = await self.store.create_appointment(record)
        self.logger.info(
            "appointment_booked",
            appointment_id=appointment.id,
            doctor_id=appointment.doctor.id,
            hospital_id=appointment.hospital.id,
            scheduled_at=appointment.scheduled_at.isoformat(),
        )

        notified, error = await self._send_confirmation(appointment, request)
        return BookingOutcome(appointment=appointment, notified=notified, notification_error=error)

    async def _send_confirmation(
        self, appointment: Appointment, request: BookingRequest
    ) -> tuple[bool, str | None]:
        if self.notifier is None:
            return False, None

        if not request.patient.email:
            self.logger.warning("confirmation_skipped_no_email", patient_id=request.patient.id)
            return False, "patient has no e-mail address"

        payload = ConfirmationPayload.for_appointment(appointment, request.patient)
        try:
            result = await asyncio.wait_for(
                self.notifier.send_confirmation(payload),
                timeout=self.notification_timeout_seconds,
            )
        except TimeoutError:
            self.logger.error(
                "confirmation_timeout",
                appointment_id=appointment.id,
                timeout_seconds=self.notification_timeout_seconds,
            )
            return False, "confirmation timed out"
        except Exception as e:
            self.logger.exception(
                "unexpected_confirmation_error", appointment_id=appointment.id, error=str(e)
            )
            return False, str(e)

        if result.is_err():
            error = str(result.unwrap_err())
            self.logger.error(
                "confirmation_failed", appointment_id=appointment.id, error=error
            )
            return False, error

        self.logger.info(
            "confirmation_sent", appointment_id=appointment.id, detail=result.unwrap()
        )
        return True, None

    async def cancel(self, appointment: Appointment) -> Appointment:
        """Cancel a scheduled appointment; completed or cancelled ones are rejected."""
        if appointment.id is None:
            raise ValidationError("Appointment has not been saved yet", field="id")
        if appointment.status is not AppointmentStatus.SCHEDULED:
            raise ValidationError(
                "Only scheduled appointments can be cancelled "
                f"(status: {appointment.status.value})",
                field="status",
            )

        await self.store.update_status(appointment.id, AppointmentStatus.CANCELLED)
        self.logger.info("appointment_cancelled", appointment_id=appointment.id)
        return appointment.model_copy(update={"status": AppointmentStatus.CANCELLED})


def split_appointments(
    appointments: Iterable[Appointment], now: datetime
) -> tuple[list[Appointment], list[Appointment]]:
    """
    Partition into (upcoming, past).

    Upcoming means scheduled and not yet started, soonest first. Everything else
    (completed, cancelled, or scheduled in the past) is past, most recent first.
    """
    upcoming: list[Appointment] = []
    past: list[Appointment] = []
    for appointment in appointments:
        if appointment.status is AppointmentStatus.SCHEDULED and appointment.scheduled_at >= now:
            upcoming.append(appointment)
        else:
            past.append(appointment)

    upcoming.sort(key=lambda a: a.scheduled_at)
    past.sort(key=lambda a: a.scheduled_at, reverse=True)
    return upcoming, past
