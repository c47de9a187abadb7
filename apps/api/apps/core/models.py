"""
Core models: clinic
"""
import uuid
from django.db import models
from django.conf import settings


class Clinic(models.Model):
    """
    Physical practice location belonging to one doctor.

    Fields:
    - id: UUID PK
    - doctor_id: FK -> auth_user (role doctor)
    - name
    - address, city, state, country: nullable
    - timezone: IANA name used to localize weekly availability rules
    - consultation_fee: nullable
    - is_primary: bool default false
    - is_active: bool default true
    - created_at, updated_at
    """
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    doctor = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        related_name='clinics'
    )
    name = models.CharField(max_length=255)
    address = models.CharField(max_length=255, blank=True, null=True)
    city = models.CharField(max_length=100, blank=True, null=True)
    state = models.CharField(max_length=100, blank=True, null=True)
    country = models.CharField(max_length=100, blank=True, null=True)
    timezone = models.CharField(max_length=64, default='America/Mexico_City')
    consultation_fee = models.DecimalField(max_digits=10, decimal_places=2, blank=True, null=True)
    is_primary = models.BooleanField(default=False)
    is_active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'clinic'
        verbose_name = 'Clinic'
        verbose_name_plural = 'Clinics'
        indexes = [
            models.Index(fields=['doctor'], name='idx_clinic_doctor'),
            models.Index(fields=['is_active'], name='idx_clinic_active'),
        ]

    def __str__(self):
        return self.name
