"""
Scheduling services: bookable slot generation and booking.
"""
from dataclasses import dataclass
from datetime import datetime, timedelta

import pytz
from django.conf import settings
from django.db import transaction
from django.utils import timezone

from apps.clinical import repository
from apps.clinical.models import AppointmentStatusChoices, AuditActionChoices, log_clinical_audit
from apps.core.observability import metrics
from apps.core.observability.events import log_appointment_booked
from apps.core.persistence import ConflictError, NotFoundError, PersistenceError
from apps.core.results import FailureKind, FlowResult
from apps.scheduling.weekdays import to_internal_weekday, to_sunday_based

# Appointments in these statuses keep their time occupied
OCCUPYING_STATUSES = [
    AppointmentStatusChoices.SCHEDULED,
    AppointmentStatusChoices.IN_PROGRESS,
    AppointmentStatusChoices.COMPLETED,
    AppointmentStatusChoices.NO_SHOW,
]


@dataclass(frozen=True)
class TimeSlot:
    start: datetime
    end: datetime

    def overlaps(self, start, end):
        return self.start < end and self.end > start


def allowed_intervals():
    return tuple(getattr(settings, 'CONSULTATION_SLOT_INTERVALS', (30, 60)))


def generate_slots(clinic_id, day, interval_minutes=None) -> FlowResult:
    """
    Compute bookable slots for a clinic on a calendar date.

    Active weekly rules for the date's weekday are cut into fixed-width
    intervals in the clinic's timezone. Slots starting in the past, slots
    touching a non-cancelled appointment and slots inside an availability
    exception are dropped. Overlapping rules produce each slot once.

    Args:
        clinic_id: Clinic pk
        day: datetime.date in the clinic's local calendar
        interval_minutes: slot width, one of CONSULTATION_SLOT_INTERVALS

    Returns:
        FlowResult with a sorted list of TimeSlot (possibly empty)
    """
    if interval_minutes is None:
        interval_minutes = getattr(settings, 'CONSULTATION_DEFAULT_SLOT_INTERVAL', 60)

    if interval_minutes not in allowed_intervals():
        return FlowResult.fail(
            FailureKind.INVALID_VALUE,
            f'Interval must be one of {", ".join(str(i) for i in allowed_intervals())} minutes'
        )

    try:
        clinic = repository.read_clinic(clinic_id)
        rules = repository.read_availability_rules(clinic.id, weekday=to_internal_weekday(day))
        if not rules:
            return FlowResult.success([])

        exceptions = repository.read_availability_exceptions(clinic.id, day)
        tz = pytz.timezone(clinic.timezone)
        day_start = tz.localize(datetime.combine(day, datetime.min.time()))
        day_end = day_start + timedelta(days=1)

        booked = repository.query_appointments(
            clinic_id=clinic.id,
            status__in=OCCUPYING_STATUSES,
            starts_at__lt=day_end,
            ends_at__gt=day_start,
        )
    except (NotFoundError, PersistenceError) as exc:
        return FlowResult.from_exception(exc)

    if any(block.is_full_day for block in exceptions):
        return FlowResult.success([])

    busy_periods = [(appt.starts_at, appt.ends_at) for appt in booked]
    for block in exceptions:
        busy_periods.append((
            tz.localize(datetime.combine(day, block.start_time)),
            tz.localize(datetime.combine(day, block.end_time)),
        ))

    now = timezone.now()
    width = timedelta(minutes=interval_minutes)
    slots = set()

    for rule in rules:
        cursor = datetime.combine(day, rule.start_time)
        rule_end = datetime.combine(day, rule.end_time)

        while cursor + width <= rule_end:
            slot = TimeSlot(start=tz.localize(cursor), end=tz.localize(cursor + width))
            cursor += width

            # Skip past slots
            if slot.start < now:
                continue

            if any(slot.overlaps(start, end) for start, end in busy_periods):
                continue

            slots.add(slot)

    result = sorted(slots, key=lambda s: s.start)
    metrics.slots_generated_total.inc(len(result))
    return FlowResult.success(result)


def book_appointment(clinic_id, patient, starts_at, interval_minutes=None, notes='', created_by=None) -> FlowResult:
    """
    Book an appointment in a slot offered by generate_slots.

    The clinic row is locked for the duration of the check-and-insert so two
    bookings for the same clinic are serialized.
    """
    if interval_minutes is None:
        interval_minutes = getattr(settings, 'CONSULTATION_DEFAULT_SLOT_INTERVAL', 60)

    try:
        with transaction.atomic():
            clinic = repository.read_clinic(clinic_id, lock=True)
            tz = pytz.timezone(clinic.timezone)
            local_day = starts_at.astimezone(tz).date()

            offered = generate_slots(clinic.id, local_day, interval_minutes)
            if not offered.ok:
                metrics.appointments_booked_total.labels(result=offered.kind).inc()
                return offered

            slot = next((s for s in offered.value if s.start == starts_at), None)
            if slot is None:
                ends_at = starts_at + timedelta(minutes=interval_minutes)
                taken = repository.query_appointments(
                    clinic_id=clinic.id,
                    status__in=OCCUPYING_STATUSES,
                    starts_at__lt=ends_at,
                    ends_at__gt=starts_at,
                )
                if taken:
                    raise ConflictError('The selected time was just booked, choose another slot')
                metrics.appointments_booked_total.labels(result=FailureKind.INVALID_VALUE.value).inc()
                return FlowResult.fail(
                    FailureKind.INVALID_VALUE,
                    'The selected time is not an available slot for this clinic'
                )

            appointment = repository.create_appointment(
                doctor_id=clinic.doctor_id,
                patient=patient,
                clinic=clinic,
                starts_at=slot.start,
                ends_at=slot.end,
                status=AppointmentStatusChoices.SCHEDULED,
                notes=notes or None,
            )

            log_clinical_audit(
                actor=created_by,
                instance=appointment,
                action=AuditActionChoices.CREATE,
                after={'starts_at': appointment.starts_at, 'ends_at': appointment.ends_at},
            )
    except (NotFoundError, ConflictError, PersistenceError) as exc:
        result = FlowResult.from_exception(exc)
        metrics.appointments_booked_total.labels(result=result.kind).inc()
        return result

    metrics.appointments_booked_total.labels(result='success').inc()
    log_appointment_booked(appointment, interval_minutes)
    return FlowResult.success(appointment)


def available_weekdays(clinic_ids):
    """
    Weekdays with at least one active rule, Sunday-based for calendar widgets.
    """
    weekdays = set()
    for clinic_id in clinic_ids:
        for rule in repository.read_availability_rules(clinic_id):
            weekdays.add(to_sunday_based(rule.weekday))
    return sorted(weekdays)
