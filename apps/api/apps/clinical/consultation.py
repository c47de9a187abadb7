"""
Consultation state machine.

    scheduled -> waiting -> in_progress -> completed

Each transition reads the appointment, checks its precondition, then writes
through a conditional update that only succeeds if the row is still in the
state that was checked. Timing metrics use the server clock.
"""
from dataclasses import dataclass
from typing import Optional

import pytz
from django.utils import timezone

from apps.authz.models import RoleChoices
from apps.clinical import repository
from apps.clinical.identity import can_start_consultation
from apps.clinical.models import AppointmentStatusChoices, ConsultationStatusChoices
from apps.clinical.transitions import (
    REPOSITORY_ERRORS,
    commit,
    load_appointment,
    minutes_between,
    reject,
    reject_exception,
)
from apps.core.observability import metrics
from apps.core.results import FailureKind, FlowResult

MARK_ARRIVED = 'mark_arrived'
START_CONSULTATION = 'start_consultation'
END_CONSULTATION = 'end_consultation'
CANCEL = 'cancel'
NO_SHOW = 'no_show'

CLOSED_STATUSES = (AppointmentStatusChoices.CANCELLED, AppointmentStatusChoices.NO_SHOW)


def _closed(appointment, transition):
    return reject(
        appointment.id, transition, FailureKind.PRECONDITION_FAILED,
        f'Appointment is {appointment.get_status_display().lower()}, no further changes are allowed'
    )


def mark_arrived(appointment_id, actor) -> FlowResult:
    appointment, failure = load_appointment(appointment_id, MARK_ARRIVED)
    if failure:
        return failure

    if appointment.status in CLOSED_STATUSES:
        return _closed(appointment, MARK_ARRIVED)

    if appointment.consultation_status != ConsultationStatusChoices.SCHEDULED:
        return reject(
            appointment.id, MARK_ARRIVED, FailureKind.PRECONDITION_FAILED,
            'Patient has already been marked as arrived'
        )

    return commit(
        appointment, MARK_ARRIVED, actor,
        expected={
            'consultation_status': ConsultationStatusChoices.SCHEDULED,
            'status': AppointmentStatusChoices.SCHEDULED,
        },
        patch={
            'patient_arrived_at': timezone.now(),
            'marked_arrived_by_id': actor.pk,
            'consultation_status': ConsultationStatusChoices.WAITING,
        }
    )


def start_consultation(appointment_id, actor, actor_role) -> FlowResult:
    """
    Move a waiting patient into consultation.

    Requires arrival and a validated identity. A doctor facing an unvalidated
    patient gets a validation_required failure with redirect
    'validate_identity' and can retry once validation is done.
    """
    appointment, failure = load_appointment(appointment_id, START_CONSULTATION)
    if failure:
        return failure

    if appointment.status in CLOSED_STATUSES:
        return _closed(appointment, START_CONSULTATION)

    if appointment.consultation_status == ConsultationStatusChoices.SCHEDULED or appointment.patient_arrived_at is None:
        return reject(
            appointment.id, START_CONSULTATION, FailureKind.PRECONDITION_FAILED,
            'Patient must be marked arrived before starting consultation'
        )

    if appointment.consultation_status != ConsultationStatusChoices.WAITING:
        return reject(
            appointment.id, START_CONSULTATION, FailureKind.PRECONDITION_FAILED,
            'Consultation has already started'
        )

    gate = can_start_consultation(appointment, actor_role)
    if not gate.allowed:
        return reject(
            appointment.id, START_CONSULTATION, FailureKind.VALIDATION_REQUIRED,
            gate.reason, redirect=gate.redirect
        )

    started_at = max(timezone.now(), appointment.patient_arrived_at)
    waiting = minutes_between(appointment.patient_arrived_at, started_at)

    result = commit(
        appointment, START_CONSULTATION, actor,
        expected={
            'consultation_status': ConsultationStatusChoices.WAITING,
            'status': AppointmentStatusChoices.SCHEDULED,
            'identity_validated': True,
            'patient_arrived_at__isnull': False,
        },
        patch={
            'consultation_started_at': started_at,
            'consultation_started_by_id': actor.pk,
            'consultation_status': ConsultationStatusChoices.IN_PROGRESS,
            'status': AppointmentStatusChoices.IN_PROGRESS,
            'waiting_time_minutes': waiting,
        }
    )
    if result.ok:
        metrics.consultation_waiting_minutes.observe(waiting)
    return result


def end_consultation(appointment_id, actor) -> FlowResult:
    """
    Close a consultation. A note with a non-empty diagnosis must exist.
    """
    appointment, failure = load_appointment(appointment_id, END_CONSULTATION)
    if failure:
        return failure

    if appointment.status in CLOSED_STATUSES:
        return _closed(appointment, END_CONSULTATION)

    if appointment.consultation_status == ConsultationStatusChoices.COMPLETED:
        return reject(
            appointment.id, END_CONSULTATION, FailureKind.PRECONDITION_FAILED,
            'Consultation has already ended'
        )

    if appointment.consultation_status != ConsultationStatusChoices.IN_PROGRESS:
        return reject(
            appointment.id, END_CONSULTATION, FailureKind.PRECONDITION_FAILED,
            'Consultation must be started before it can be ended'
        )

    try:
        note = repository.read_consultation_note(appointment.id)
    except REPOSITORY_ERRORS as exc:
        return reject_exception(appointment.id, END_CONSULTATION, exc)

    if note is None or not note.is_finalizable:
        return reject(
            appointment.id, END_CONSULTATION, FailureKind.MISSING_REQUIRED_FIELD,
            'A diagnosis is required before ending the consultation'
        )

    ended_at = max(timezone.now(), appointment.consultation_started_at)
    duration = minutes_between(appointment.consultation_started_at, ended_at)

    result = commit(
        appointment, END_CONSULTATION, actor,
        expected={
            'consultation_status': ConsultationStatusChoices.IN_PROGRESS,
            'status': AppointmentStatusChoices.IN_PROGRESS,
        },
        patch={
            'consultation_ended_at': ended_at,
            'consultation_ended_by_id': actor.pk,
            'consultation_status': ConsultationStatusChoices.COMPLETED,
            'status': AppointmentStatusChoices.COMPLETED,
            'consultation_duration_minutes': duration,
            'total_clinic_time_minutes': minutes_between(appointment.patient_arrived_at, ended_at),
        }
    )
    if result.ok:
        metrics.consultation_duration_minutes.observe(duration)
    return result


def cancel_appointment(appointment_id, actor, actor_role, reason) -> FlowResult:
    """
    Cancel an appointment that has not reached a terminal status.
    Patients may only cancel before they are marked arrived.

    The reason is kept in cancellation_reason and appended to notes as
    "[Cancelled by <role> on dd/mm/YYYY HH:MM]: <reason>" in clinic time.
    """
    appointment, failure = load_appointment(appointment_id, CANCEL)
    if failure:
        return failure

    reason = (reason or '').strip()
    if not reason:
        return reject(
            appointment.id, CANCEL, FailureKind.MISSING_REQUIRED_FIELD,
            'A cancellation reason is required'
        )

    if appointment.is_terminal:
        return _closed(appointment, CANCEL)

    if (actor_role == RoleChoices.PATIENT
            and appointment.consultation_status != ConsultationStatusChoices.SCHEDULED):
        return reject(
            appointment.id, CANCEL, FailureKind.PRECONDITION_FAILED,
            'Patients can only cancel before arriving at the clinic'
        )

    now = timezone.now()
    stamp = now.astimezone(pytz.timezone(appointment.clinic.timezone)).strftime('%d/%m/%Y %H:%M')
    entry = f'[Cancelled by {actor_role} on {stamp}]: {reason}'
    notes = f'{appointment.notes}\n\n{entry}' if appointment.notes else entry

    return commit(
        appointment, CANCEL, actor,
        expected={
            'status': appointment.status,
            'consultation_status': appointment.consultation_status,
        },
        patch={
            'status': AppointmentStatusChoices.CANCELLED,
            'cancellation_reason': reason,
            'notes': notes,
        },
        status_field='status'
    )


def mark_no_show(appointment_id, actor) -> FlowResult:
    """Flag a patient who never arrived, only once the start time has passed."""
    appointment, failure = load_appointment(appointment_id, NO_SHOW)
    if failure:
        return failure

    if (appointment.status != AppointmentStatusChoices.SCHEDULED
            or appointment.consultation_status != ConsultationStatusChoices.SCHEDULED):
        return reject(
            appointment.id, NO_SHOW, FailureKind.PRECONDITION_FAILED,
            'Only scheduled appointments without arrival can be marked as no-show'
        )

    if timezone.now() < appointment.starts_at:
        return reject(
            appointment.id, NO_SHOW, FailureKind.PRECONDITION_FAILED,
            'Cannot mark no-show before the appointment start time'
        )

    return commit(
        appointment, NO_SHOW, actor,
        expected={
            'status': AppointmentStatusChoices.SCHEDULED,
            'consultation_status': ConsultationStatusChoices.SCHEDULED,
        },
        patch={'status': AppointmentStatusChoices.NO_SHOW},
        status_field='status'
    )


# ============================================================================
# Daily queue
# ============================================================================

QUEUE_PRIORITY = {
    ConsultationStatusChoices.IN_PROGRESS.value: 0,
    ConsultationStatusChoices.WAITING.value: 1,
    ConsultationStatusChoices.SCHEDULED.value: 2,
    ConsultationStatusChoices.COMPLETED.value: 3,
}
CLOSED_PRIORITY = 4


@dataclass(frozen=True)
class QueueEntry:
    appointment: object
    live_waiting_minutes: Optional[int] = None


def _queue_priority(appointment):
    if appointment.status in CLOSED_STATUSES:
        return CLOSED_PRIORITY
    return QUEUE_PRIORITY.get(appointment.consultation_status, CLOSED_PRIORITY)


def consultation_queue(day, doctor=None, clinic_ids=None, patient=None) -> FlowResult:
    """
    A day's appointments in the order the front desk works them:
    in consultation, waiting, scheduled, completed, then cancelled/no-show.

    Waiting patients carry the minutes they have waited so far.
    """
    filters = {'starts_at__date': day}
    if doctor is not None:
        filters['doctor'] = doctor
    if clinic_ids is not None:
        filters['clinic_id__in'] = list(clinic_ids)
    if patient is not None:
        filters['patient'] = patient

    try:
        appointments = repository.query_appointments(**filters)
    except REPOSITORY_ERRORS as exc:
        return FlowResult.from_exception(exc)

    now = timezone.now()
    entries = []
    for appointment in sorted(appointments, key=lambda a: (_queue_priority(a), a.starts_at)):
        waiting = None
        if (appointment.consultation_status == ConsultationStatusChoices.WAITING
                and appointment.status not in CLOSED_STATUSES):
            waiting = minutes_between(appointment.patient_arrived_at, now)
        entries.append(QueueEntry(appointment=appointment, live_waiting_minutes=waiting))

    return FlowResult.success(entries)
