from django.contrib import admin
from .models import Clinic


@admin.register(Clinic)
class ClinicAdmin(admin.ModelAdmin):
    list_display = ['name', 'doctor', 'city', 'timezone', 'is_primary', 'is_active', 'created_at']
    list_filter = ['is_active', 'is_primary', 'timezone']
    search_fields = ['name', 'city', 'doctor__email']
    readonly_fields = ['id', 'created_at', 'updated_at']
