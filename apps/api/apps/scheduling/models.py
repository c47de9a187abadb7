"""
Scheduling models: availability_slot, availability_exception
"""
import uuid
from django.db import models
from django.core.validators import MaxValueValidator, MinValueValidator


class WeekdayChoices(models.IntegerChoices):
    """Stored weekday index, Monday=0 .. Sunday=6."""
    MONDAY = 0, 'Monday'
    TUESDAY = 1, 'Tuesday'
    WEDNESDAY = 2, 'Wednesday'
    THURSDAY = 3, 'Thursday'
    FRIDAY = 4, 'Friday'
    SATURDAY = 5, 'Saturday'
    SUNDAY = 6, 'Sunday'


class AvailabilityExceptionTypeChoices(models.TextChoices):
    BLOCKED = 'blocked', 'Blocked'
    VACATION = 'vacation', 'Vacation'
    HOLIDAY = 'holiday', 'Holiday'


class AvailabilitySlot(models.Model):
    """
    Weekly recurring availability rule for a clinic.

    Fields:
    - clinic_id: FK -> clinic
    - weekday: 0=Monday..6=Sunday
    - start_time, end_time: local wall-clock time in the clinic timezone
    - slot_duration_minutes: preferred granularity shown to patients
    - is_active
    """
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    clinic = models.ForeignKey(
        'core.Clinic',
        on_delete=models.CASCADE,
        related_name='availability_slots'
    )
    weekday = models.PositiveSmallIntegerField(
        choices=WeekdayChoices.choices,
        validators=[MinValueValidator(0), MaxValueValidator(6)]
    )
    start_time = models.TimeField()
    end_time = models.TimeField()
    slot_duration_minutes = models.PositiveSmallIntegerField(default=60)
    is_active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'availability_slot'
        verbose_name = 'Availability Slot'
        verbose_name_plural = 'Availability Slots'
        ordering = ['weekday', 'start_time']
        indexes = [
            models.Index(fields=['clinic', 'weekday'], name='idx_availability_clinic_day'),
        ]

    def __str__(self):
        return f"{self.get_weekday_display()} {self.start_time:%H:%M}-{self.end_time:%H:%M}"


class AvailabilityException(models.Model):
    """
    One-off closure for a clinic on a given date.

    A null start_time/end_time pair blocks the whole day.
    """
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    clinic = models.ForeignKey(
        'core.Clinic',
        on_delete=models.CASCADE,
        related_name='availability_exceptions'
    )
    date = models.DateField()
    start_time = models.TimeField(blank=True, null=True)
    end_time = models.TimeField(blank=True, null=True)
    type = models.CharField(
        max_length=20,
        choices=AvailabilityExceptionTypeChoices.choices,
        default=AvailabilityExceptionTypeChoices.BLOCKED
    )
    reason = models.CharField(max_length=255, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = 'availability_exception'
        verbose_name = 'Availability Exception'
        verbose_name_plural = 'Availability Exceptions'
        indexes = [
            models.Index(fields=['clinic', 'date'], name='idx_avail_exception_day'),
        ]

    def __str__(self):
        return f"{self.get_type_display()} {self.date}"

    @property
    def is_full_day(self):
        return self.start_time is None or self.end_time is None
