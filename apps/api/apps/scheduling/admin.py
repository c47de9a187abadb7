from django.contrib import admin
from .models import AvailabilityException, AvailabilitySlot


@admin.register(AvailabilitySlot)
class AvailabilitySlotAdmin(admin.ModelAdmin):
    list_display = ['clinic', 'weekday', 'start_time', 'end_time', 'slot_duration_minutes', 'is_active']
    list_filter = ['is_active', 'weekday', 'clinic']
    readonly_fields = ['id', 'created_at', 'updated_at']


@admin.register(AvailabilityException)
class AvailabilityExceptionAdmin(admin.ModelAdmin):
    list_display = ['clinic', 'date', 'start_time', 'end_time', 'type']
    list_filter = ['type', 'clinic']
    date_hierarchy = 'date'
    readonly_fields = ['id', 'created_at']
