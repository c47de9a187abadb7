"""
Clinical models: appointment, patient_identity_validation,
consultation_note, patient_document, clinical_audit_log
"""
import uuid
from django.db import models
from django.conf import settings


# ============================================================================
# Enums
# ============================================================================

class AppointmentStatusChoices(models.TextChoices):
    """
    Coarse appointment status:
    - scheduled -> in_progress | cancelled | no_show
    - in_progress -> completed | cancelled
    - completed, cancelled, no_show are terminal states
    """
    SCHEDULED = 'scheduled', 'Scheduled'
    IN_PROGRESS = 'in_progress', 'In Progress'
    COMPLETED = 'completed', 'Completed'
    CANCELLED = 'cancelled', 'Cancelled'
    NO_SHOW = 'no_show', 'No Show'


class ConsultationStatusChoices(models.TextChoices):
    """
    In-visit lifecycle:
    - scheduled -> waiting (patient arrived)
    - waiting -> in_progress (consultation started)
    - in_progress -> completed (consultation ended)
    """
    SCHEDULED = 'scheduled', 'Scheduled'
    WAITING = 'waiting', 'Waiting'
    IN_PROGRESS = 'in_progress', 'In Progress'
    COMPLETED = 'completed', 'Completed'


class DocumentTypeChoices(models.TextChoices):
    IDENTIFICATION = 'identification', 'Identification'
    PROFILE_IMAGE = 'profile_image', 'Profile Image'


class AuditActionChoices(models.TextChoices):
    """Clinical audit log action types"""
    CREATE = 'create', 'Create'
    UPDATE = 'update', 'Update'
    TRANSITION = 'transition', 'Transition'


class AuditEntityTypeChoices(models.TextChoices):
    """Clinical entity types for audit logging"""
    APPOINTMENT = 'Appointment', 'Appointment'
    CONSULTATION_NOTE = 'ConsultationNote', 'Consultation Note'
    IDENTITY_VALIDATION = 'IdentityValidation', 'Identity Validation'


# ============================================================================
# Appointment
# ============================================================================

class Appointment(models.Model):
    """
    One scheduled patient/doctor encounter at a clinic.

    Fields:
    - id: UUID PK
    - doctor_id, patient_id: FK -> auth_user
    - clinic_id: FK -> clinic
    - starts_at, ends_at
    - status: coarse status (scheduled|in_progress|completed|cancelled|no_show)
    - consultation_status: in-visit lifecycle (scheduled|waiting|in_progress|completed)
    - identity_validated, identity_validated_at, identity_validated_by
    - patient_arrived_at, marked_arrived_by
    - consultation_started_at, consultation_started_by
    - consultation_ended_at, consultation_ended_by
    - waiting_time_minutes, consultation_duration_minutes,
      total_clinic_time_minutes: derived at transition time
    - notes, cancellation_reason: free text
    - created_at, updated_at

    BUSINESS RULES:
    - Rows are only changed through apps.clinical.consultation / identity,
      each change is a conditional update on the expected state
    - Never deleted, only cancelled
    """
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    doctor = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        related_name='doctor_appointments'
    )
    patient = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        related_name='patient_appointments'
    )
    clinic = models.ForeignKey(
        'core.Clinic',
        on_delete=models.PROTECT,
        related_name='appointments'
    )
    starts_at = models.DateTimeField()
    ends_at = models.DateTimeField()
    status = models.CharField(
        max_length=20,
        choices=AppointmentStatusChoices.choices,
        default=AppointmentStatusChoices.SCHEDULED
    )
    consultation_status = models.CharField(
        max_length=20,
        choices=ConsultationStatusChoices.choices,
        default=ConsultationStatusChoices.SCHEDULED
    )

    # Identity gate
    identity_validated = models.BooleanField(default=False)
    identity_validated_at = models.DateTimeField(blank=True, null=True)
    identity_validated_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        blank=True,
        null=True,
        related_name='+'
    )

    # Consultation flow timestamps
    patient_arrived_at = models.DateTimeField(blank=True, null=True)
    marked_arrived_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        blank=True,
        null=True,
        related_name='+'
    )
    consultation_started_at = models.DateTimeField(blank=True, null=True)
    consultation_started_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        blank=True,
        null=True,
        related_name='+'
    )
    consultation_ended_at = models.DateTimeField(blank=True, null=True)
    consultation_ended_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        blank=True,
        null=True,
        related_name='+'
    )

    # Derived timing metrics
    waiting_time_minutes = models.PositiveIntegerField(blank=True, null=True)
    consultation_duration_minutes = models.PositiveIntegerField(blank=True, null=True)
    total_clinic_time_minutes = models.PositiveIntegerField(blank=True, null=True)

    notes = models.TextField(blank=True, null=True)
    cancellation_reason = models.TextField(blank=True, null=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'appointment'
        verbose_name = 'Appointment'
        verbose_name_plural = 'Appointments'
        ordering = ['starts_at']
        indexes = [
            models.Index(fields=['patient'], name='idx_appointment_patient'),
            models.Index(fields=['doctor'], name='idx_appointment_doctor'),
            models.Index(fields=['clinic', 'starts_at'], name='idx_appointment_clinic_start'),
            models.Index(fields=['status'], name='idx_appointment_status'),
            models.Index(fields=['consultation_status'], name='idx_appointment_consult'),
        ]

    # BUSINESS RULE: statuses that end the appointment
    TERMINAL_STATUSES = ['completed', 'cancelled', 'no_show']

    def __str__(self):
        return f"Appointment {self.starts_at:%Y-%m-%d %H:%M} - {self.patient}"

    @property
    def is_terminal(self):
        return self.status in self.TERMINAL_STATUSES


# ============================================================================
# Identity validation
# ============================================================================

class IdentityValidation(models.Model):
    """
    One record per identity validation event.

    History is cumulative: the first record is the one that set
    Appointment.identity_validated, later records never revert it.
    """
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    appointment = models.ForeignKey(
        Appointment,
        on_delete=models.CASCADE,
        related_name='identity_validations'
    )
    patient = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        related_name='identity_validations'
    )
    validated_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        related_name='performed_identity_validations'
    )
    validation_notes = models.TextField(blank=True)
    validated_at = models.DateTimeField()

    class Meta:
        db_table = 'patient_identity_validation'
        verbose_name = 'Identity Validation'
        verbose_name_plural = 'Identity Validations'
        ordering = ['validated_at']
        indexes = [
            models.Index(fields=['appointment'], name='idx_identity_appointment'),
        ]

    def __str__(self):
        return f"Identity validation {self.validated_at:%Y-%m-%d %H:%M} by {self.validated_by}"


class PatientDocument(models.Model):
    """
    Reference to a document uploaded by a patient.

    File storage is external, only the URL is kept here.
    """
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    patient = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name='documents'
    )
    document_type = models.CharField(
        max_length=20,
        choices=DocumentTypeChoices.choices
    )
    document_url = models.URLField(max_length=500)
    uploaded_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = 'patient_document'
        verbose_name = 'Patient Document'
        verbose_name_plural = 'Patient Documents'
        indexes = [
            models.Index(fields=['patient', 'document_type'], name='idx_document_patient_type'),
        ]

    def __str__(self):
        return f"{self.get_document_type_display()} - {self.patient}"


# ============================================================================
# Consultation note
# ============================================================================

class ConsultationNote(models.Model):
    """
    Structured medical note, one per appointment.

    diagnosis may be blank during the visit (autosave) but must be
    non-empty before the consultation can be ended.
    """
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    appointment = models.OneToOneField(
        Appointment,
        on_delete=models.CASCADE,
        related_name='consultation_note'
    )
    doctor = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        related_name='authored_consultation_notes'
    )
    patient = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        related_name='consultation_notes'
    )
    diagnosis = models.TextField(blank=True)
    prescription = models.TextField(blank=True)
    recommendations = models.TextField(blank=True)
    follow_up_date = models.DateField(blank=True, null=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'consultation_note'
        verbose_name = 'Consultation Note'
        verbose_name_plural = 'Consultation Notes'

    def __str__(self):
        return f"Note for {self.appointment_id}"

    @property
    def is_finalizable(self):
        return bool((self.diagnosis or '').strip())


# ============================================================================
# Clinical Audit Log
# ============================================================================

class ClinicalAuditLog(models.Model):
    """
    Lightweight audit trail for consultation flow changes.

    Fields:
    - id: UUID PK
    - created_at: timestamp of action
    - actor_user: who made the change (nullable for system actions)
    - action: create|update|transition
    - entity_type: type of entity changed
    - entity_id: UUID of the entity
    - patient: related patient (for easier querying)
    - appointment: related appointment
    - metadata: JSON with transition, changed_fields, before/after snapshots
    """
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    created_at = models.DateTimeField(auto_now_add=True)

    actor_user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        blank=True,
        null=True,
        related_name='clinical_audit_logs',
        help_text='User who performed the action (null for system actions)'
    )

    action = models.CharField(
        max_length=10,
        choices=AuditActionChoices.choices
    )

    entity_type = models.CharField(
        max_length=50,
        choices=AuditEntityTypeChoices.choices
    )

    entity_id = models.UUIDField(
        help_text='UUID of the entity that was changed'
    )

    patient = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        blank=True,
        null=True,
        related_name='+'
    )

    appointment = models.ForeignKey(
        Appointment,
        on_delete=models.SET_NULL,
        blank=True,
        null=True,
        related_name='audit_logs'
    )

    metadata = models.JSONField(
        default=dict,
        help_text='Changed fields, before/after snapshots, request metadata'
    )

    class Meta:
        db_table = 'clinical_audit_log'
        verbose_name = 'Clinical Audit Log'
        verbose_name_plural = 'Clinical Audit Logs'
        indexes = [
            models.Index(fields=['created_at'], name='idx_audit_created_at'),
            models.Index(fields=['actor_user'], name='idx_audit_actor'),
            models.Index(fields=['entity_id'], name='idx_audit_entity_id'),
            models.Index(fields=['action'], name='idx_audit_action'),
        ]
        ordering = ['-created_at']

    def __str__(self):
        actor = self.actor_user.email if self.actor_user else 'system'
        return f"{self.action} on {self.entity_type}[{str(self.entity_id)[:8]}] by {actor}"


# ============================================================================
# Audit Helper Functions
# ============================================================================

def _audit_value(value):
    """Make a field value JSON-serializable for metadata."""
    if value is None or isinstance(value, (bool, int, float, str)):
        return value
    if hasattr(value, 'isoformat'):
        return value.isoformat()
    return str(value)


def log_clinical_audit(
    actor,
    instance,
    action,
    before=None,
    after=None,
    changed_fields=None,
    appointment=None,
    **extra
):
    """
    Helper function to create clinical audit log entries.

    Args:
        actor: User instance or None for system actions
        instance: The clinical entity instance being audited
        action: 'create'|'update'|'transition'
        before: Dict of field values before change
        after: Dict of field values after change
        changed_fields: List of field names that changed
        appointment: Appointment instance (inferred from instance if omitted)
        **extra: Additional metadata keys (e.g. transition='start_consultation')

    Returns:
        ClinicalAuditLog instance
    """
    from apps.core.observability import metrics

    entity_type = instance.__class__.__name__

    if appointment is None:
        appointment = instance if isinstance(instance, Appointment) else getattr(instance, 'appointment', None)

    patient_id = getattr(instance, 'patient_id', None)

    metadata = {}

    if changed_fields:
        metadata['changed_fields'] = list(changed_fields)

    if before:
        metadata['before'] = {k: _audit_value(v) for k, v in before.items()}

    if after:
        metadata['after'] = {k: _audit_value(v) for k, v in after.items()}

    metadata.update({k: _audit_value(v) for k, v in extra.items()})

    audit_log = ClinicalAuditLog.objects.create(
        actor_user=actor,
        action=action,
        entity_type=entity_type,
        entity_id=instance.pk,
        patient_id=patient_id,
        appointment=appointment,
        metadata=metadata
    )

    metrics.clinical_auditlog_created_total.labels(model=entity_type, action=action).inc()

    return audit_log
