"""
Shared plumbing for consultation flow transitions: the compare-and-swap
commit, rejection reporting and minute arithmetic.
"""
from decimal import Decimal, ROUND_HALF_UP

from django.db import transaction

from apps.clinical import repository
from apps.clinical.models import Appointment, AuditActionChoices, log_clinical_audit
from apps.clinical.signals import appointment_transitioned
from apps.core.observability import metrics
from apps.core.observability.events import log_appointment_transition, log_transition_rejected
from apps.core.persistence import ConflictError, NotFoundError, PersistenceError
from apps.core.results import FlowResult

REPOSITORY_ERRORS = (NotFoundError, ConflictError, PersistenceError)


def minutes_between(start, end):
    """
    Whole minutes from start to end, rounded half-up, never negative.

    Returns None when either end is missing.
    """
    if start is None or end is None:
        return None
    minutes = Decimal(str((end - start).total_seconds())) / Decimal(60)
    return max(0, int(minutes.quantize(Decimal('1'), rounding=ROUND_HALF_UP)))


def reject(appointment_id, transition, kind, message, redirect=None):
    """Record a refused transition and return its failure result."""
    kind = str(kind)
    metrics.consultation_transition_total.labels(transition=transition, result=kind).inc()
    log_transition_rejected(appointment_id, transition, kind)
    return FlowResult.fail(kind, message, redirect=redirect)


def reject_exception(appointment_id, transition, exc):
    result = FlowResult.from_exception(exc)
    return reject(appointment_id, transition, result.kind, result.failure.message)


def load_appointment(appointment_id, transition):
    """
    Read an appointment for a transition.

    Returns:
        tuple: (appointment, None) or (None, failure result)
    """
    try:
        return repository.read_appointment(appointment_id), None
    except REPOSITORY_ERRORS as exc:
        return None, reject_exception(appointment_id, transition, exc)


def commit(appointment, transition, actor, expected, patch, status_field='consultation_status'):
    """
    Apply a transition as one conditional update plus its audit row.

    The update only lands if the row still matches `expected`; a concurrent
    writer that got there first turns this call into a conflict failure and
    leaves the row untouched.
    """
    before = {key: getattr(appointment, key) for key in patch}

    try:
        with transaction.atomic():
            updated = repository.conditional_update_appointment(appointment.id, expected, patch)
            log_clinical_audit(
                actor=actor,
                instance=updated,
                action=AuditActionChoices.TRANSITION,
                before=before,
                after={key: getattr(updated, key) for key in patch},
                changed_fields=list(patch),
                transition=transition,
            )
    except REPOSITORY_ERRORS as exc:
        return reject_exception(appointment.id, transition, exc)

    from_status = getattr(appointment, status_field)
    to_status = getattr(updated, status_field)

    metrics.consultation_transition_total.labels(transition=transition, result='success').inc()
    log_appointment_transition(updated, transition, from_status, to_status)
    appointment_transitioned.send(
        sender=Appointment,
        appointment_id=str(updated.id),
        transition=transition,
        from_status=from_status,
        to_status=to_status,
        actor_id=str(actor.pk) if actor else None,
    )
    return FlowResult.success(updated)
