"""
Identity validation gate.

A consultation may only start once the patient's identity has been confirmed
for that appointment. Doctors are sent to the self-serve validation flow,
everyone else is simply blocked.
"""
from dataclasses import dataclass
from typing import Optional

from django.db import transaction
from django.utils import timezone

from apps.authz.models import RoleChoices
from apps.clinical import repository
from apps.clinical.models import (
    Appointment,
    AppointmentStatusChoices,
    AuditActionChoices,
    DocumentTypeChoices,
    log_clinical_audit,
)
from apps.clinical.signals import appointment_transitioned
from apps.clinical.transitions import REPOSITORY_ERRORS, load_appointment, reject, reject_exception
from apps.core.observability import metrics
from apps.core.observability.events import log_identity_validated
from apps.core.persistence import ConflictError
from apps.core.results import FailureKind, FlowResult

VALIDATE_IDENTITY = 'validate_identity'
REQUIRED_DOCUMENT_TYPES = (DocumentTypeChoices.PROFILE_IMAGE, DocumentTypeChoices.IDENTIFICATION)


@dataclass(frozen=True)
class GateDecision:
    allowed: bool
    reason: Optional[str] = None
    redirect: Optional[str] = None


def can_start_consultation(appointment, actor_role) -> GateDecision:
    if appointment.identity_validated:
        return GateDecision(allowed=True)

    if actor_role == RoleChoices.DOCTOR:
        return GateDecision(
            allowed=False,
            reason='Patient identity must be validated before starting the consultation',
            redirect=VALIDATE_IDENTITY,
        )

    return GateDecision(allowed=False, reason='validation required')


def identity_documents(patient_id):
    """Latest document URL per document type for a patient."""
    documents = {}
    for document in sorted(repository.read_patient_documents(patient_id), key=lambda d: d.uploaded_at):
        documents[document.document_type] = document.document_url
    return documents


def has_required_documents(patient_id):
    """True when both a profile photo and an identification document are on file."""
    documents = identity_documents(patient_id)
    return all(doc_type in documents for doc_type in REQUIRED_DOCUMENT_TYPES)


def validate_identity(appointment_id, validator, notes='') -> FlowResult:
    """
    Confirm the patient's identity for an appointment.

    The first validation flips identity_validated; every call, first or not,
    appends an IdentityValidation record.

    Returns:
        FlowResult with the new IdentityValidation
    """
    appointment, failure = load_appointment(appointment_id, VALIDATE_IDENTITY)
    if failure:
        return failure

    if appointment.status in (AppointmentStatusChoices.CANCELLED, AppointmentStatusChoices.NO_SHOW):
        return reject(
            appointment.id, VALIDATE_IDENTITY, FailureKind.PRECONDITION_FAILED,
            f'Appointment is {appointment.get_status_display().lower()}, identity cannot be validated'
        )

    now = timezone.now()
    revalidation = appointment.identity_validated

    try:
        with transaction.atomic():
            if not revalidation:
                try:
                    appointment = repository.conditional_update_appointment(
                        appointment.id,
                        {'identity_validated': False},
                        {
                            'identity_validated': True,
                            'identity_validated_at': now,
                            'identity_validated_by_id': validator.pk,
                        }
                    )
                except ConflictError:
                    # Someone validated first, this event is kept as history only
                    revalidation = True

            record = repository.insert_identity_validation(appointment, validator, notes, now)
            log_clinical_audit(
                actor=validator,
                instance=record,
                action=AuditActionChoices.CREATE,
                appointment=appointment,
                after={'validated_at': now},
                revalidation=revalidation,
            )
    except REPOSITORY_ERRORS as exc:
        return reject_exception(appointment.id, VALIDATE_IDENTITY, exc)

    outcome = 'revalidated' if revalidation else 'validated'
    metrics.identity_validations_total.labels(outcome=outcome).inc()
    metrics.consultation_transition_total.labels(transition=VALIDATE_IDENTITY, result='success').inc()
    log_identity_validated(appointment, validator.pk, revalidation=revalidation)

    if not revalidation:
        appointment_transitioned.send(
            sender=Appointment,
            appointment_id=str(appointment.id),
            transition=VALIDATE_IDENTITY,
            from_status=appointment.consultation_status,
            to_status=appointment.consultation_status,
            actor_id=str(validator.pk),
        )

    return FlowResult.success(record)
