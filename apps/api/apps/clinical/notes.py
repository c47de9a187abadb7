"""
Consultation notes store.

One note per appointment, saved incrementally while the consultation runs.
Diagnosis is only enforced when the consultation is ended.
"""
import pytz
from django.db import transaction

from apps.clinical import repository
from apps.clinical.models import (
    AppointmentStatusChoices,
    AuditActionChoices,
    ConsultationStatusChoices,
    log_clinical_audit,
)
from apps.clinical.transitions import REPOSITORY_ERRORS
from apps.core.observability import log_domain_event
from apps.core.results import FailureKind, FlowResult

EDITABLE_CONSULTATION_STATUSES = (ConsultationStatusChoices.IN_PROGRESS, ConsultationStatusChoices.COMPLETED)


def consultation_date(appointment):
    """Local calendar date of the consultation in the clinic's timezone."""
    moment = appointment.consultation_started_at or appointment.starts_at
    return moment.astimezone(pytz.timezone(appointment.clinic.timezone)).date()


def _rejected(appointment_id, kind, message):
    log_domain_event(
        'consultation_note_rejected',
        entity_type='Appointment',
        entity_id=str(appointment_id),
        result='blocked',
        failure_kind=str(kind),
    )
    return FlowResult.fail(kind, message)


def save_note(appointment_id, doctor, fields, actor=None) -> FlowResult:
    """
    Upsert the consultation note of an appointment.

    Args:
        appointment_id: Appointment pk
        doctor: User recorded as the note's author
        fields: any of diagnosis, prescription, recommendations, follow_up_date
        actor: User performing the save (defaults to doctor)

    Edits after completion are accepted and audited with late_edit=True.
    """
    actor = actor or doctor

    try:
        appointment = repository.read_appointment(appointment_id)
    except REPOSITORY_ERRORS as exc:
        return FlowResult.from_exception(exc)

    if appointment.status in (AppointmentStatusChoices.CANCELLED, AppointmentStatusChoices.NO_SHOW):
        return _rejected(
            appointment.id, FailureKind.PRECONDITION_FAILED,
            f'Appointment is {appointment.get_status_display().lower()}, notes cannot be saved'
        )

    if appointment.consultation_status not in EDITABLE_CONSULTATION_STATUSES:
        return _rejected(
            appointment.id, FailureKind.PRECONDITION_FAILED,
            'Notes can only be saved once the consultation has started'
        )

    follow_up_date = fields.get('follow_up_date')
    if follow_up_date and follow_up_date < consultation_date(appointment):
        return _rejected(
            appointment.id, FailureKind.INVALID_VALUE,
            'Follow-up date cannot be before the consultation date'
        )

    late_edit = appointment.consultation_status == ConsultationStatusChoices.COMPLETED

    try:
        with transaction.atomic():
            note, created, before = repository.upsert_consultation_note(appointment, doctor, fields)
            changed = [key for key, value in before.items() if getattr(note, key) != value]
            log_clinical_audit(
                actor=actor,
                instance=note,
                action=AuditActionChoices.CREATE if created else AuditActionChoices.UPDATE,
                changed_fields=changed if not created else None,
                late_edit=late_edit,
            )
    except REPOSITORY_ERRORS as exc:
        return FlowResult.from_exception(exc)

    log_domain_event(
        'consultation_note_saved',
        entity_type='ConsultationNote',
        entity_id=str(note.id),
        entity_ids={'appointment_id': str(appointment.id)},
        result='success',
        note_created=created,
        late_edit=late_edit,
        has_diagnosis=note.is_finalizable,
    )
    return FlowResult.success(note)
