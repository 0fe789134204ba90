"""
End-to-end walkthrough of the portal core.

This script shows:
1. Configuration loading and validation
2. Today's bookable appointment slots
3. Health advisories for a set of sample readings
4. Booking an appointment and sending the confirmation

Run with: uv run python demo.py
"""

import asyncio
import itertools
from datetime import datetime, timedelta

from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from healthcare.config import get_config, validate_config
from healthcare.domain.models import (
    Appointment,
    AppointmentStatus,
    BookingRequest,
    DoctorSummary,
    HospitalSummary,
    PatientContact,
)
from healthcare.observability import configure_logging
from healthcare.services.booking import BookingService
from healthcare.services.measurement_intake import record_measurement
from healthcare.services.metric_advisor import MetricAdvisor
from healthcare.services.notifications import build_notifier
from healthcare.services.scheduling import SchedulingAssistant

console = Console()


class InMemoryAppointmentStore:
    """Stand-in for the hosted backend, good enough for a walkthrough."""

    def __init__(self) -> None:
        self._ids = itertools.count(1)
        self.appointments: dict[str, Appointment] = {}

    async def create_appointment(self, appointment: Appointment) -> Appointment:
        stored = appointment.model_copy(update={"id": f"apt-{next(self._ids)}"})
        self.appointments[stored.id] = stored  # type: ignore[index]
        return stored

    async def update_status(self, appointment_id: str, status: AppointmentStatus) -> None:
        current = self.appointments[appointment_id]
        self.appointments[appointment_id] = current.model_copy(update={"status": status})


def show_slots(assistant: SchedulingAssistant) -> None:
    today = assistant.now().date()
    table = Table(title=f"Slots for {today.isoformat()}")
    table.add_column("Time")
    table.add_column("Status")
    for slot in assistant.slots():
        past = assistant.is_past(slot, today)
        table.add_row(slot.label, "[dim]past[/dim]" if past else "[green]open[/green]")
    console.print(table)


def show_advisories(advisor: MetricAdvisor) -> None:
    now = datetime.now().astimezone()
    readings = [
        record_measurement("blood_pressure", "146", now),
        record_measurement("heart_rate", "72", now),
        record_measurement("weight", "72.5", now - timedelta(days=7)),
        record_measurement("weight", "70.0", now),
        record_measurement("oxygen_saturation", "97", now),
    ]
    report = advisor.build_report(readings)

    console.print(f"\nOverall status: [bold]{report.overall_status}[/bold]")
    for advisory in report.advisories:
        title = f"{advisory.kind.display_name} ({advisory.direction.value})"
        console.print(Panel(advisory.message, title=title))


async def book_demo_appointment(assistant: SchedulingAssistant) -> None:
    config = get_config()
    store = InMemoryAppointmentStore()
    service = BookingService(
        store,
        build_notifier(config.notifications),
        assistant,
        notification_timeout_seconds=config.notifications.timeout_seconds,
    )

    tomorrow = assistant.now().date() + timedelta(days=1)
    request = BookingRequest(
        patient=PatientContact(id="patient-1", full_name="Asha Rao", email="asha@example.com"),
        doctor=DoctorSummary(
            id="doc-1", full_name="Meera Iyer", specialization="Cardiology", department="Heart"
        ),
        hospital=HospitalSummary(id="hosp-1", name="City Hospital", address="12 MG Road"),
        appointment_date=tomorrow,
        slot_label="10:30 AM",
        reason="Routine check-up",
    )
    outcome = await service.book(request)

    console.print(
        f"\nBooked [bold]{outcome.appointment.id}[/bold] for "
        f"{outcome.appointment.scheduled_at:%Y-%m-%d %H:%M %Z} "
        f"(confirmation sent: {outcome.notified})"
    )


def main() -> None:
    validate_config()
    config = get_config()
    configure_logging(config.logging)

    console.print(Panel(f"HealthCare portal core ({config.environment})", style="bold blue"))

    assistant = SchedulingAssistant(config.scheduling)
    show_slots(assistant)
    show_advisories(MetricAdvisor(config.advisor))
    asyncio.run(book_demo_appointment(assistant))


if __name__ == "__main__":
    main()
