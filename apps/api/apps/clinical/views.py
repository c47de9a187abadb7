"""
Clinical API: appointments and the consultation flow.

Every flow endpoint delegates to a service function returning a FlowResult;
failures are rendered as {"error", "kind", "redirect"?} with the status code
of their kind.
"""
from django.utils import timezone
from rest_framework import mixins, status, viewsets
from rest_framework.decorators import action
from rest_framework.response import Response

from apps.authz.models import RoleChoices
from apps.authz.permissions import assigned_clinic_ids, get_acting_role, get_user_roles
from apps.clinical import consultation, identity, notes, repository
from apps.clinical.models import Appointment
from apps.clinical.permissions import AppointmentPermission, scope_appointments
from apps.clinical.serializers import (
    AppointmentCreateSerializer,
    AppointmentFilterSerializer,
    AppointmentSerializer,
    CancelRequestSerializer,
    ConsultationNoteSerializer,
    ConsultationNoteWriteSerializer,
    IdentityValidationSerializer,
    QueueEntrySerializer,
    QueueQuerySerializer,
    ValidateIdentityRequestSerializer,
)
from apps.core.persistence import PersistenceError
from apps.core.results import FailureKind, FlowResult, failure_response
from apps.scheduling.services import book_appointment
from apps.scheduling.views import UUID_REGEX, resolve_booking_patient


class AppointmentViewSet(mixins.ListModelMixin,
                         mixins.RetrieveModelMixin,
                         viewsets.GenericViewSet):
    """
    Appointment API ViewSet.

    GET  /api/v1/clinical/appointments/
    POST /api/v1/clinical/appointments/
    GET  /api/v1/clinical/appointments/{id}/
    POST /api/v1/clinical/appointments/{id}/arrive/
    POST /api/v1/clinical/appointments/{id}/validate-identity/
    POST /api/v1/clinical/appointments/{id}/start/
    POST /api/v1/clinical/appointments/{id}/end/
    POST /api/v1/clinical/appointments/{id}/cancel/
    POST /api/v1/clinical/appointments/{id}/no-show/
    GET|PUT /api/v1/clinical/appointments/{id}/note/
    GET  /api/v1/clinical/appointments/{id}/identity-validations/
    GET  /api/v1/clinical/appointments/queue/?date=YYYY-MM-DD&clinic_id=
    """
    serializer_class = AppointmentSerializer
    permission_classes = [AppointmentPermission]
    lookup_value_regex = UUID_REGEX

    def get_queryset(self):
        queryset = Appointment.objects.select_related('clinic', 'patient', 'doctor')
        queryset = scope_appointments(queryset, self.request.user)

        params = AppointmentFilterSerializer(data=self.request.query_params)
        params.is_valid(raise_exception=True)
        filters = params.validated_data
        if filters.get('date'):
            queryset = queryset.filter(starts_at__date=filters['date'])
        if filters.get('status'):
            queryset = queryset.filter(status=filters['status'])
        if filters.get('consultation_status'):
            queryset = queryset.filter(consultation_status=filters['consultation_status'])
        if filters.get('clinic_id'):
            queryset = queryset.filter(clinic_id=filters['clinic_id'])

        return queryset.order_by('starts_at')

    def _respond(self, result, serializer_class=AppointmentSerializer, success_status=status.HTTP_200_OK):
        if not result.ok:
            return failure_response(result)
        return Response(serializer_class(result.value).data, status=success_status)

    def create(self, request):
        serializer = AppointmentCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        patient = resolve_booking_patient(request.user, data.get('patient_id'))
        result = book_appointment(
            data['clinic_id'],
            patient,
            data['starts_at'],
            interval_minutes=data.get('interval_minutes'),
            notes=data.get('notes', ''),
            created_by=request.user,
        )
        return self._respond(result, success_status=status.HTTP_201_CREATED)

    @action(detail=True, methods=['post'])
    def arrive(self, request, pk=None):
        """Mark the patient as arrived (scheduled -> waiting)."""
        appointment = self.get_object()
        return self._respond(consultation.mark_arrived(appointment.id, request.user))

    @action(detail=True, methods=['post'], url_path='validate-identity')
    def validate_identity(self, request, pk=None):
        """
        Record an identity validation.

        Blocked with missing_required_field unless the patient has both a
        profile photo and an identification document on file.
        """
        appointment = self.get_object()
        serializer = ValidateIdentityRequestSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        try:
            documents_ok = identity.has_required_documents(appointment.patient_id)
        except PersistenceError as exc:
            return failure_response(FlowResult.from_exception(exc))

        if not documents_ok:
            return failure_response(FlowResult.fail(
                FailureKind.MISSING_REQUIRED_FIELD,
                'Patient must have a profile photo and an identification document on file'
            ))

        result = identity.validate_identity(
            appointment.id,
            request.user,
            serializer.validated_data.get('notes', '')
        )
        return self._respond(result, IdentityValidationSerializer, status.HTTP_201_CREATED)

    @action(detail=True, methods=['post'])
    def start(self, request, pk=None):
        """Start the consultation (waiting -> in_progress)."""
        appointment = self.get_object()
        result = consultation.start_consultation(
            appointment.id,
            request.user,
            get_acting_role(request.user)
        )
        return self._respond(result)

    @action(detail=True, methods=['post'])
    def end(self, request, pk=None):
        """End the consultation (in_progress -> completed)."""
        appointment = self.get_object()
        return self._respond(consultation.end_consultation(appointment.id, request.user))

    @action(detail=True, methods=['post'])
    def cancel(self, request, pk=None):
        appointment = self.get_object()
        serializer = CancelRequestSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        result = consultation.cancel_appointment(
            appointment.id,
            request.user,
            get_acting_role(request.user),
            serializer.validated_data['reason']
        )
        return self._respond(result)

    @action(detail=True, methods=['post'], url_path='no-show')
    def no_show(self, request, pk=None):
        appointment = self.get_object()
        return self._respond(consultation.mark_no_show(appointment.id, request.user))

    @action(detail=True, methods=['get', 'put'])
    def note(self, request, pk=None):
        """
        GET: current consultation note (404 if none yet)
        PUT: upsert, partial payloads allowed for autosave
        """
        appointment = self.get_object()

        if request.method == 'GET':
            try:
                note = repository.read_consultation_note(appointment.id)
            except PersistenceError as exc:
                return failure_response(FlowResult.from_exception(exc))
            if note is None:
                return failure_response(FlowResult.fail(
                    FailureKind.NOT_FOUND, 'No consultation note for this appointment'
                ))
            return Response(ConsultationNoteSerializer(note).data)

        serializer = ConsultationNoteWriteSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        doctor = request.user if RoleChoices.DOCTOR in get_user_roles(request.user) else appointment.doctor
        result = notes.save_note(appointment.id, doctor, serializer.validated_data, actor=request.user)
        return self._respond(result, ConsultationNoteSerializer)

    @action(detail=True, methods=['get'], url_path='identity-validations')
    def identity_validations(self, request, pk=None):
        appointment = self.get_object()
        try:
            records = repository.read_identity_validations(appointment.id)
        except PersistenceError as exc:
            return failure_response(FlowResult.from_exception(exc))
        return Response(IdentityValidationSerializer(records, many=True).data)

    @action(detail=False, methods=['get'])
    def queue(self, request):
        """Day queue ordered for the front desk, with live waiting minutes."""
        query = QueueQuerySerializer(data=request.query_params)
        query.is_valid(raise_exception=True)
        day = query.validated_data.get('date') or timezone.localdate()
        clinic_id = query.validated_data.get('clinic_id')
        role = get_acting_role(request.user)

        doctor = None
        clinic_ids = None
        if role == RoleChoices.DOCTOR:
            doctor = request.user
        elif role == RoleChoices.ASSISTANT:
            clinic_ids = assigned_clinic_ids(request.user)

        if clinic_id:
            if clinic_ids is not None and clinic_id not in clinic_ids:
                return failure_response(FlowResult.fail(FailureKind.NOT_FOUND, f'Clinic {clinic_id} not found'))
            clinic_ids = [clinic_id]

        result = consultation.consultation_queue(day, doctor=doctor, clinic_ids=clinic_ids)
        if not result.ok:
            return failure_response(result)

        return Response({
            'date': day.isoformat(),
            'entries': QueueEntrySerializer(result.value, many=True).data,
        })
