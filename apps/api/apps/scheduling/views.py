"""
Scheduling API: availability rules, bookable slots and booking.
"""
from django.contrib.auth import get_user_model
from django.db.models import Q
from rest_framework import status, viewsets
from rest_framework.decorators import action
from rest_framework.exceptions import PermissionDenied, ValidationError
from rest_framework.response import Response

from apps.authz.models import RoleChoices
from apps.authz.permissions import HasAnyRole, assigned_clinic_ids, get_acting_role, get_user_roles
from apps.clinical.serializers import AppointmentSerializer
from apps.core.models import Clinic
from apps.core.persistence import PersistenceError
from apps.core.results import FlowResult, failure_response
from apps.scheduling.models import AvailabilityException, AvailabilitySlot
from apps.scheduling.serializers import (
    AvailabilityExceptionSerializer,
    AvailabilitySlotSerializer,
    BookingRequestSerializer,
    RuleQuerySerializer,
    SlotQuerySerializer,
    TimeSlotSerializer,
)
from apps.scheduling.services import available_weekdays, book_appointment, generate_slots

ALL_ROLES = {RoleChoices.ADMIN, RoleChoices.DOCTOR, RoleChoices.ASSISTANT, RoleChoices.PATIENT}
STAFF_ROLES = {RoleChoices.ADMIN, RoleChoices.DOCTOR, RoleChoices.ASSISTANT}
MANAGER_ROLES = {RoleChoices.ADMIN, RoleChoices.DOCTOR}
UUID_REGEX = r'[0-9a-fA-F]{8}-[0-9a-fA-F]{4}-[0-9a-fA-F]{4}-[0-9a-fA-F]{4}-[0-9a-fA-F]{12}'


def resolve_booking_patient(user, patient_id):
    """
    Patients always book for themselves; staff must name the patient.
    """
    roles = get_user_roles(user)
    if not roles & STAFF_ROLES:
        return user

    if patient_id is None:
        if RoleChoices.PATIENT in roles:
            return user
        raise ValidationError({'patient_id': 'This field is required.'})

    User = get_user_model()
    patient = User.objects.filter(
        pk=patient_id,
        is_active=True,
        user_roles__role__name=RoleChoices.PATIENT
    ).first()
    if patient is None:
        raise ValidationError({'patient_id': 'Unknown patient'})
    return patient


class ClinicSchedulingViewSet(viewsets.GenericViewSet):
    """
    Slot generation and booking for a clinic.

    GET  /api/v1/scheduling/clinics/{id}/slots/?date=YYYY-MM-DD&interval=30
    POST /api/v1/scheduling/clinics/{id}/book/
    GET  /api/v1/scheduling/clinics/{id}/weekdays/
    """
    queryset = Clinic.objects.filter(is_active=True)
    permission_classes = [HasAnyRole]
    allowed_roles = ALL_ROLES
    lookup_value_regex = UUID_REGEX

    @action(detail=True, methods=['get'])
    def slots(self, request, pk=None):
        clinic = self.get_object()
        query = SlotQuerySerializer(data=request.query_params)
        query.is_valid(raise_exception=True)

        result = generate_slots(clinic.id, query.validated_data['date'], query.validated_data.get('interval'))
        if not result.ok:
            return failure_response(result)

        serializer = TimeSlotSerializer(result.value, many=True, context={'clinic': clinic})
        return Response({
            'clinic_id': str(clinic.id),
            'date': query.validated_data['date'].isoformat(),
            'timezone': clinic.timezone,
            'slots': serializer.data,
        })

    @action(detail=True, methods=['post'])
    def book(self, request, pk=None):
        clinic = self.get_object()
        serializer = BookingRequestSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        patient = resolve_booking_patient(request.user, data.get('patient_id'))

        result = book_appointment(
            clinic.id,
            patient,
            data['starts_at'],
            interval_minutes=data.get('interval_minutes'),
            notes=data.get('notes', ''),
            created_by=request.user,
        )
        if not result.ok:
            return failure_response(result)

        return Response(AppointmentSerializer(result.value).data, status=status.HTTP_201_CREATED)

    @action(detail=True, methods=['get'])
    def weekdays(self, request, pk=None):
        """Weekdays with availability, Sunday=0 for calendar widgets."""
        clinic = self.get_object()
        try:
            weekdays = available_weekdays([clinic.id])
        except PersistenceError as exc:
            return failure_response(FlowResult.from_exception(exc))
        return Response({'clinic_id': str(clinic.id), 'weekdays': weekdays})


class ClinicScopedRuleViewSet(viewsets.ModelViewSet):
    """
    Base for availability rule CRUD.

    - Admin: all clinics
    - Doctor: own clinics, read/write
    - Assistant: assigned clinics, read only
    """
    permission_classes = [HasAnyRole]
    allowed_roles = STAFF_ROLES
    lookup_value_regex = UUID_REGEX

    action_roles = {
        'create': MANAGER_ROLES,
        'update': MANAGER_ROLES,
        'partial_update': MANAGER_ROLES,
        'destroy': MANAGER_ROLES,
    }

    def get_queryset(self):
        user = self.request.user
        roles = get_user_roles(user)
        queryset = self.model.objects.select_related('clinic')

        if RoleChoices.ADMIN not in roles:
            scope = Q(clinic__doctor=user)
            if RoleChoices.ASSISTANT in roles:
                scope |= Q(clinic_id__in=assigned_clinic_ids(user))
            queryset = queryset.filter(scope)

        query = RuleQuerySerializer(data=self.request.query_params)
        query.is_valid(raise_exception=True)
        clinic_id = query.validated_data.get('clinic_id')
        if clinic_id:
            queryset = queryset.filter(clinic_id=clinic_id)
        return queryset

    def _check_clinic(self, clinic):
        if get_acting_role(self.request.user) != RoleChoices.ADMIN and clinic.doctor_id != self.request.user.pk:
            raise PermissionDenied('You can only manage availability of your own clinics')

    def perform_create(self, serializer):
        self._check_clinic(serializer.validated_data['clinic'])
        serializer.save()

    def perform_update(self, serializer):
        self._check_clinic(serializer.validated_data.get('clinic', serializer.instance.clinic))
        serializer.save()

    def perform_destroy(self, instance):
        self._check_clinic(instance.clinic)
        instance.delete()


class AvailabilitySlotViewSet(ClinicScopedRuleViewSet):
    """CRUD /api/v1/scheduling/availability/"""
    model = AvailabilitySlot
    serializer_class = AvailabilitySlotSerializer

    def get_queryset(self):
        return super().get_queryset().order_by('clinic', 'weekday', 'start_time')


class AvailabilityExceptionViewSet(ClinicScopedRuleViewSet):
    """CRUD /api/v1/scheduling/availability-exceptions/"""
    model = AvailabilityException
    serializer_class = AvailabilityExceptionSerializer

    def get_queryset(self):
        return super().get_queryset().order_by('date', 'start_time')
