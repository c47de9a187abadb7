"""
Domain events logging helpers.

Provides structured event logging for business operations.
"""
from typing import Dict, Optional
from .logging import get_sanitized_logger, safe_extra, sanitize_dict

logger = get_sanitized_logger(__name__)


def log_domain_event(
    event_name: str,
    entity_type: Optional[str] = None,
    entity_id: Optional[str] = None,
    entity_ids: Optional[Dict[str, str]] = None,
    result: str = 'success',
    **extra_fields
):
    """
    Log a domain event with structured data.

    Args:
        event_name: Name of the event (e.g., 'appointment_transition', 'appointment_booked')
        entity_type: Type of entity (e.g., 'Appointment')
        entity_id: ID of primary entity
        entity_ids: Dictionary of related entity IDs
        result: Result of operation (success, failure, blocked, etc.)
        **extra_fields: Additional fields to log (will be sanitized)

    Example:
        log_domain_event(
            'appointment_transition',
            entity_type='Appointment',
            entity_id=str(appointment.id),
            result='success',
            transition='start_consultation',
            waiting_time_minutes=15
        )
    """
    event_data = {
        'event': event_name,
        'result': result,
    }

    if entity_type:
        event_data['entity_type'] = entity_type

    if entity_id:
        event_data['entity_id'] = entity_id

    if entity_ids:
        event_data.update(entity_ids)

    event_data.update(sanitize_dict(extra_fields))
    event_data = safe_extra(event_data)

    # Log at appropriate level based on result
    if result in ['failure', 'error']:
        logger.error(f'Domain event: {event_name}', extra=event_data)
    elif result in ['warning', 'blocked', 'conflict']:
        logger.warning(f'Domain event: {event_name}', extra=event_data)
    else:
        logger.info(f'Domain event: {event_name}', extra=event_data)


def log_appointment_transition(appointment, transition, from_status, to_status, result='success', **extra):
    """Log a consultation flow transition on an appointment."""
    log_domain_event(
        'appointment_transition',
        entity_type='Appointment',
        entity_id=str(appointment.id),
        entity_ids={
            'appointment_id': str(appointment.id),
            'clinic_id': str(appointment.clinic_id),
        },
        result=result,
        transition=transition,
        from_status=from_status,
        to_status=to_status,
        **extra
    )


def log_transition_rejected(appointment_id, transition, kind, **extra):
    """Log a transition attempt that was refused (precondition, gate, conflict)."""
    result = 'failure' if kind == 'persistence_error' else 'blocked'
    log_domain_event(
        'appointment_transition_rejected',
        entity_type='Appointment',
        entity_id=str(appointment_id),
        result=result,
        transition=transition,
        failure_kind=kind,
        **extra
    )


def log_identity_validated(appointment, validator_id, revalidation=False):
    """Log an identity validation event (first or additive)."""
    log_domain_event(
        'patient_identity_validated',
        entity_type='Appointment',
        entity_id=str(appointment.id),
        entity_ids={
            'appointment_id': str(appointment.id),
            'patient_id': str(appointment.patient_id),
            'validated_by': str(validator_id),
        },
        result='success',
        revalidation=revalidation
    )


def log_appointment_booked(appointment, interval_minutes):
    """Log creation of an appointment from a generated slot."""
    log_domain_event(
        'appointment_booked',
        entity_type='Appointment',
        entity_id=str(appointment.id),
        entity_ids={
            'appointment_id': str(appointment.id),
            'clinic_id': str(appointment.clinic_id),
            'doctor_id': str(appointment.doctor_id),
        },
        result='success',
        interval_minutes=interval_minutes,
        starts_at=appointment.starts_at.isoformat()
    )
