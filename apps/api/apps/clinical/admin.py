from django.contrib import admin
from .models import (
    Appointment,
    ClinicalAuditLog,
    ConsultationNote,
    IdentityValidation,
    PatientDocument,
)


@admin.register(Appointment)
class AppointmentAdmin(admin.ModelAdmin):
    list_display = ['starts_at', 'clinic', 'doctor', 'patient', 'status', 'consultation_status', 'identity_validated']
    list_filter = ['status', 'consultation_status', 'identity_validated', 'clinic']
    search_fields = ['patient__email', 'patient__full_name', 'doctor__email']
    date_hierarchy = 'starts_at'
    # Flow fields only change through the consultation endpoints
    readonly_fields = [
        'id', 'status', 'consultation_status',
        'identity_validated', 'identity_validated_at', 'identity_validated_by',
        'patient_arrived_at', 'marked_arrived_by',
        'consultation_started_at', 'consultation_started_by',
        'consultation_ended_at', 'consultation_ended_by',
        'waiting_time_minutes', 'consultation_duration_minutes', 'total_clinic_time_minutes',
        'created_at', 'updated_at',
    ]


@admin.register(IdentityValidation)
class IdentityValidationAdmin(admin.ModelAdmin):
    list_display = ['validated_at', 'appointment', 'patient', 'validated_by']
    readonly_fields = ['id', 'appointment', 'patient', 'validated_by', 'validation_notes', 'validated_at']

    def has_delete_permission(self, request, obj=None):
        # Validation history is append-only
        return False


@admin.register(ConsultationNote)
class ConsultationNoteAdmin(admin.ModelAdmin):
    list_display = ['appointment', 'doctor', 'patient', 'follow_up_date', 'updated_at']
    readonly_fields = ['id', 'created_at', 'updated_at']


@admin.register(PatientDocument)
class PatientDocumentAdmin(admin.ModelAdmin):
    list_display = ['patient', 'document_type', 'uploaded_at']
    list_filter = ['document_type']
    search_fields = ['patient__email']


@admin.register(ClinicalAuditLog)
class ClinicalAuditLogAdmin(admin.ModelAdmin):
    list_display = ['created_at', 'action', 'entity_type', 'entity_id', 'actor_user']
    list_filter = ['action', 'entity_type', 'created_at']
    readonly_fields = ['id', 'created_at', 'actor_user', 'action', 'entity_type', 'entity_id', 'patient', 'appointment', 'metadata']

    def has_add_permission(self, request):
        # Audit logs should not be manually created
        return False

    def has_delete_permission(self, request, obj=None):
        # Audit logs should not be deleted
        return False
