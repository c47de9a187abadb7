"""
Scheduling serializers: availability rules, slots and booking requests.
"""
import pytz
from django.conf import settings
from rest_framework import serializers

from apps.scheduling.models import AvailabilityException, AvailabilitySlot


class AvailabilitySlotSerializer(serializers.ModelSerializer):
    """Weekly availability rule (weekday: 0=Monday..6=Sunday)."""

    class Meta:
        model = AvailabilitySlot
        fields = [
            'id',
            'clinic',
            'weekday',
            'start_time',
            'end_time',
            'slot_duration_minutes',
            'is_active',
            'created_at',
            'updated_at',
        ]
        read_only_fields = ['id', 'created_at', 'updated_at']

    def validate(self, attrs):
        start_time = attrs.get('start_time', getattr(self.instance, 'start_time', None))
        end_time = attrs.get('end_time', getattr(self.instance, 'end_time', None))
        if start_time and end_time and end_time <= start_time:
            raise serializers.ValidationError({'end_time': 'end_time must be after start_time'})
        return attrs


class AvailabilityExceptionSerializer(serializers.ModelSerializer):
    """One-off closure; omit both times to block the whole day."""

    class Meta:
        model = AvailabilityException
        fields = ['id', 'clinic', 'date', 'start_time', 'end_time', 'type', 'reason', 'created_at']
        read_only_fields = ['id', 'created_at']

    def validate(self, attrs):
        start_time = attrs.get('start_time', getattr(self.instance, 'start_time', None))
        end_time = attrs.get('end_time', getattr(self.instance, 'end_time', None))
        if (start_time is None) != (end_time is None):
            raise serializers.ValidationError('start_time and end_time must be given together')
        if start_time and end_time and end_time <= start_time:
            raise serializers.ValidationError({'end_time': 'end_time must be after start_time'})
        return attrs


class SlotQuerySerializer(serializers.Serializer):
    date = serializers.DateField()
    interval = serializers.IntegerField(required=False)

    def validate_interval(self, value):
        allowed = tuple(getattr(settings, 'CONSULTATION_SLOT_INTERVALS', (30, 60)))
        if value not in allowed:
            raise serializers.ValidationError(f'Interval must be one of {list(allowed)}')
        return value


class TimeSlotSerializer(serializers.Serializer):
    """
    A generated slot. `start`/`end` are absolute instants, `local_start`/
    `local_end` are HH:MM in the clinic's timezone.
    """
    start = serializers.DateTimeField()
    end = serializers.DateTimeField()
    local_start = serializers.SerializerMethodField()
    local_end = serializers.SerializerMethodField()

    def _local(self, value):
        tz = pytz.timezone(self.context['clinic'].timezone)
        return value.astimezone(tz).strftime('%H:%M')

    def get_local_start(self, obj):
        return self._local(obj.start)

    def get_local_end(self, obj):
        return self._local(obj.end)


class BookingRequestSerializer(serializers.Serializer):
    starts_at = serializers.DateTimeField()
    interval_minutes = serializers.IntegerField(required=False)
    patient_id = serializers.UUIDField(required=False)
    notes = serializers.CharField(required=False, allow_blank=True, default='')


class RuleQuerySerializer(serializers.Serializer):
    clinic_id = serializers.UUIDField(required=False)
