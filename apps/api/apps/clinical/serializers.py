"""
Clinical serializers: appointments, queue entries, identity validations
and consultation notes.
"""
from rest_framework import serializers

from apps.clinical.models import (
    Appointment,
    AppointmentStatusChoices,
    ConsultationNote,
    ConsultationStatusChoices,
    IdentityValidation,
)


class AppointmentSerializer(serializers.ModelSerializer):
    """
    Read-only appointment representation.

    Appointment rows only change through the flow endpoints, never by PATCH.
    """
    patient_name = serializers.CharField(source='patient.full_name', read_only=True)
    doctor_name = serializers.CharField(source='doctor.full_name', read_only=True)
    clinic_name = serializers.CharField(source='clinic.name', read_only=True)
    has_consultation_note = serializers.SerializerMethodField()

    class Meta:
        model = Appointment
        fields = [
            'id',
            'doctor',
            'doctor_name',
            'patient',
            'patient_name',
            'clinic',
            'clinic_name',
            'starts_at',
            'ends_at',
            'status',
            'consultation_status',
            'identity_validated',
            'identity_validated_at',
            'identity_validated_by',
            'patient_arrived_at',
            'marked_arrived_by',
            'consultation_started_at',
            'consultation_started_by',
            'consultation_ended_at',
            'consultation_ended_by',
            'waiting_time_minutes',
            'consultation_duration_minutes',
            'total_clinic_time_minutes',
            'notes',
            'cancellation_reason',
            'has_consultation_note',
            'created_at',
            'updated_at',
        ]
        read_only_fields = fields

    def get_has_consultation_note(self, obj):
        return ConsultationNote.objects.filter(appointment_id=obj.id).exists()


class QueueEntrySerializer(serializers.Serializer):
    appointment = AppointmentSerializer()
    live_waiting_minutes = serializers.IntegerField(allow_null=True)


class IdentityValidationSerializer(serializers.ModelSerializer):
    validated_by_name = serializers.CharField(source='validated_by.full_name', read_only=True)

    class Meta:
        model = IdentityValidation
        fields = [
            'id',
            'appointment',
            'patient',
            'validated_by',
            'validated_by_name',
            'validation_notes',
            'validated_at',
        ]
        read_only_fields = fields


class ValidateIdentityRequestSerializer(serializers.Serializer):
    notes = serializers.CharField(required=False, allow_blank=True, default='')


class CancelRequestSerializer(serializers.Serializer):
    reason = serializers.CharField(allow_blank=False, trim_whitespace=True)


class ConsultationNoteSerializer(serializers.ModelSerializer):

    class Meta:
        model = ConsultationNote
        fields = [
            'id',
            'appointment',
            'doctor',
            'patient',
            'diagnosis',
            'prescription',
            'recommendations',
            'follow_up_date',
            'created_at',
            'updated_at',
        ]
        read_only_fields = fields


class ConsultationNoteWriteSerializer(serializers.Serializer):
    """
    Partial note payload for autosave. Every field is optional and blank
    diagnosis is accepted until the consultation is ended.
    """
    diagnosis = serializers.CharField(required=False, allow_blank=True, trim_whitespace=False)
    prescription = serializers.CharField(required=False, allow_blank=True, trim_whitespace=False)
    recommendations = serializers.CharField(required=False, allow_blank=True, trim_whitespace=False)
    follow_up_date = serializers.DateField(required=False, allow_null=True)


class AppointmentCreateSerializer(serializers.Serializer):
    clinic_id = serializers.UUIDField()
    starts_at = serializers.DateTimeField()
    interval_minutes = serializers.IntegerField(required=False)
    patient_id = serializers.UUIDField(required=False)
    notes = serializers.CharField(required=False, allow_blank=True, default='')


class AppointmentFilterSerializer(serializers.Serializer):
    """Query parameters accepted by the appointment list."""
    date = serializers.DateField(required=False)
    status = serializers.ChoiceField(choices=AppointmentStatusChoices.choices, required=False)
    consultation_status = serializers.ChoiceField(choices=ConsultationStatusChoices.choices, required=False)
    clinic_id = serializers.UUIDField(required=False)


class QueueQuerySerializer(serializers.Serializer):
    date = serializers.DateField(required=False)
    clinic_id = serializers.UUIDField(required=False)
