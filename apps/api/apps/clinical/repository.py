"""
Persistence collaborator for the consultation flow.

Every function runs in its own atomic block, is retried once on a database
error and raises NotFoundError / ConflictError / PersistenceError.
"""
from django.utils import timezone

from apps.core.models import Clinic
from apps.core.persistence import ConflictError, NotFoundError, persistence_call
from apps.clinical.models import (
    Appointment,
    ConsultationNote,
    IdentityValidation,
    PatientDocument,
)
from apps.scheduling.models import AvailabilityException, AvailabilitySlot

NOTE_FIELDS = ('diagnosis', 'prescription', 'recommendations', 'follow_up_date')


@persistence_call('read_appointment')
def read_appointment(appointment_id):
    try:
        return Appointment.objects.select_related('clinic').get(pk=appointment_id)
    except Appointment.DoesNotExist:
        raise NotFoundError(f'Appointment {appointment_id} not found')


@persistence_call('conditional_update_appointment')
def conditional_update_appointment(appointment_id, expected, patch):
    """
    Compare-and-swap on an appointment row.

    Args:
        appointment_id: Appointment pk
        expected: field lookups the current row must match (e.g. consultation_status='waiting')
        patch: field values to write

    Returns:
        The refreshed Appointment

    Raises:
        NotFoundError: id does not exist
        ConflictError: row exists but no longer matches `expected`
    """
    updated = Appointment.objects.filter(pk=appointment_id, **expected).update(
        **patch,
        updated_at=timezone.now()
    )
    if updated == 0:
        if not Appointment.objects.filter(pk=appointment_id).exists():
            raise NotFoundError(f'Appointment {appointment_id} not found')
        raise ConflictError('The appointment was changed by someone else, reload and try again')
    return Appointment.objects.select_related('clinic').get(pk=appointment_id)


@persistence_call('query_appointments')
def query_appointments(**filters):
    return list(
        Appointment.objects.filter(**filters)
        .select_related('clinic', 'patient', 'doctor')
        .order_by('starts_at')
    )


@persistence_call('create_appointment')
def create_appointment(**fields):
    return Appointment.objects.create(**fields)


@persistence_call('read_consultation_note')
def read_consultation_note(appointment_id):
    return ConsultationNote.objects.filter(appointment_id=appointment_id).first()


@persistence_call('upsert_consultation_note')
def upsert_consultation_note(appointment, doctor, fields):
    """
    Create the note for an appointment or update it in place.

    Only keys present in `fields` are written.

    Returns:
        tuple: (note, created, before) where before holds the previous values
    """
    values = {k: v for k, v in fields.items() if k in NOTE_FIELDS}
    note = ConsultationNote.objects.select_for_update().filter(appointment=appointment).first()
    if note is None:
        note = ConsultationNote.objects.create(
            appointment=appointment,
            doctor=doctor,
            patient_id=appointment.patient_id,
            **values
        )
        return note, True, {}

    before = {k: getattr(note, k) for k in values}
    for key, value in values.items():
        setattr(note, key, value)
    note.save(update_fields=list(values) + ['updated_at'])
    return note, False, before


@persistence_call('insert_identity_validation')
def insert_identity_validation(appointment, validated_by, validation_notes, validated_at):
    return IdentityValidation.objects.create(
        appointment=appointment,
        patient_id=appointment.patient_id,
        validated_by=validated_by,
        validation_notes=validation_notes or '',
        validated_at=validated_at,
    )


@persistence_call('read_identity_validations')
def read_identity_validations(appointment_id):
    return list(
        IdentityValidation.objects.filter(appointment_id=appointment_id)
        .select_related('validated_by')
        .order_by('validated_at')
    )


@persistence_call('read_patient_documents')
def read_patient_documents(patient_id):
    return list(PatientDocument.objects.filter(patient_id=patient_id))


@persistence_call('read_clinic')
def read_clinic(clinic_id, lock=False):
    queryset = Clinic.objects.filter(pk=clinic_id, is_active=True)
    if lock:
        queryset = queryset.select_for_update()
    clinic = queryset.first()
    if clinic is None:
        raise NotFoundError(f'Clinic {clinic_id} not found')
    return clinic


@persistence_call('read_availability_rules')
def read_availability_rules(clinic_id, weekday=None):
    queryset = AvailabilitySlot.objects.filter(clinic_id=clinic_id, is_active=True)
    if weekday is not None:
        queryset = queryset.filter(weekday=weekday)
    return list(queryset.order_by('weekday', 'start_time'))


@persistence_call('read_availability_exceptions')
def read_availability_exceptions(clinic_id, day):
    return list(AvailabilityException.objects.filter(clinic_id=clinic_id, date=day))
