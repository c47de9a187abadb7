"""
Tests for the consultation state machine.

Test Coverage:
1. Full visit timing (arrival 09:10, start 09:25, end 09:50)
2. Out-of-order transitions fail with precondition_failed
3. Identity gate blocks assistants and redirects doctors
4. Ending requires a diagnosis
5. Concurrent writers lose with conflict instead of overwriting
6. Cancel / no-show and the daily queue
7. Audit rows and the transition signal
"""
import uuid
from unittest.mock import patch

import pytest

from apps.clinical import consultation
from apps.clinical.identity import validate_identity
from apps.clinical.models import (
    Appointment,
    AppointmentStatusChoices,
    ClinicalAuditLog,
    ConsultationNote,
    ConsultationStatusChoices,
)
from apps.clinical.signals import appointment_transitioned
from apps.clinical.transitions import minutes_between

from .conftest import CONSULTATION_DAY, at, frozen_now


def add_note(appointment, doctor, diagnosis='Dermatitis atópica'):
    return ConsultationNote.objects.create(
        appointment=appointment,
        doctor=doctor,
        patient=appointment.patient,
        diagnosis=diagnosis,
    )


@pytest.mark.django_db
class TestConsultationScenario:

    def test_full_visit_timing(self, validated_appointment, assistant_user, doctor_user):
        appointment = validated_appointment

        with frozen_now(at(9, 10)):
            arrived = consultation.mark_arrived(appointment.id, assistant_user)
        assert arrived.ok
        assert arrived.value.consultation_status == 'waiting'
        assert arrived.value.marked_arrived_by_id == assistant_user.id

        with frozen_now(at(9, 25)):
            started = consultation.start_consultation(appointment.id, doctor_user, 'doctor')
        assert started.ok
        assert started.value.consultation_status == 'in_progress'
        assert started.value.status == 'in_progress'
        assert started.value.waiting_time_minutes == 15

        add_note(appointment, doctor_user)

        with frozen_now(at(9, 50)):
            ended = consultation.end_consultation(appointment.id, doctor_user)
        assert ended.ok

        appointment.refresh_from_db()
        assert appointment.consultation_status == 'completed'
        assert appointment.status == 'completed'
        assert appointment.consultation_duration_minutes == 25
        assert appointment.total_clinic_time_minutes == 40
        assert appointment.patient_arrived_at <= appointment.consultation_started_at <= appointment.consultation_ended_at
        assert appointment.consultation_ended_by == doctor_user

    def test_doctor_redirected_then_succeeds(self, appointment, assistant_user, doctor_user):
        with frozen_now(at(9, 10)):
            consultation.mark_arrived(appointment.id, assistant_user)

        with frozen_now(at(9, 20)):
            blocked = consultation.start_consultation(appointment.id, doctor_user, 'doctor')
        assert blocked.kind == 'validation_required'
        assert blocked.failure.redirect == 'validate_identity'

        with frozen_now(at(9, 21)):
            assert validate_identity(appointment.id, doctor_user, 'Photo matches').ok

        with frozen_now(at(9, 22)):
            retried = consultation.start_consultation(appointment.id, doctor_user, 'doctor')
        assert retried.ok
        assert retried.value.waiting_time_minutes == 12


@pytest.mark.django_db
class TestPreconditions:

    def test_mark_arrived_twice_fails(self, appointment, assistant_user):
        with frozen_now(at(9, 10)):
            assert consultation.mark_arrived(appointment.id, assistant_user).ok
        with frozen_now(at(9, 11)):
            second = consultation.mark_arrived(appointment.id, assistant_user)

        assert second.kind == 'precondition_failed'
        appointment.refresh_from_db()
        assert appointment.patient_arrived_at == at(9, 10)

    def test_start_before_arrival_fails(self, validated_appointment, assistant_user):
        result = consultation.start_consultation(validated_appointment.id, assistant_user, 'assistant')

        assert result.kind == 'precondition_failed'
        assert 'arrived' in result.failure.message
        validated_appointment.refresh_from_db()
        assert validated_appointment.consultation_started_at is None

    def test_assistant_blocked_by_identity_gate(self, appointment, assistant_user):
        consultation.mark_arrived(appointment.id, assistant_user)

        result = consultation.start_consultation(appointment.id, assistant_user, 'assistant')

        assert result.kind == 'validation_required'
        assert result.failure.redirect is None
        appointment.refresh_from_db()
        assert appointment.consultation_status == 'waiting'

    def test_start_twice_fails(self, validated_appointment, assistant_user, doctor_user):
        consultation.mark_arrived(validated_appointment.id, assistant_user)
        assert consultation.start_consultation(validated_appointment.id, doctor_user, 'doctor').ok

        result = consultation.start_consultation(validated_appointment.id, doctor_user, 'doctor')

        assert result.kind == 'precondition_failed'

    def test_end_without_note_fails(self, validated_appointment, assistant_user, doctor_user):
        consultation.mark_arrived(validated_appointment.id, assistant_user)
        consultation.start_consultation(validated_appointment.id, doctor_user, 'doctor')

        result = consultation.end_consultation(validated_appointment.id, doctor_user)

        assert result.kind == 'missing_required_field'

    def test_end_with_blank_diagnosis_fails(self, validated_appointment, assistant_user, doctor_user):
        consultation.mark_arrived(validated_appointment.id, assistant_user)
        consultation.start_consultation(validated_appointment.id, doctor_user, 'doctor')
        add_note(validated_appointment, doctor_user, diagnosis='   ')

        result = consultation.end_consultation(validated_appointment.id, doctor_user)

        assert result.kind == 'missing_required_field'
        validated_appointment.refresh_from_db()
        assert validated_appointment.consultation_status == 'in_progress'

    def test_end_before_start_fails(self, validated_appointment, doctor_user):
        result = consultation.end_consultation(validated_appointment.id, doctor_user)

        assert result.kind == 'precondition_failed'

    def test_unknown_appointment(self, db, doctor_user):
        result = consultation.mark_arrived(uuid.uuid4(), doctor_user)

        assert result.kind == 'not_found'

    def test_completed_is_terminal(self, validated_appointment, assistant_user, doctor_user):
        consultation.mark_arrived(validated_appointment.id, assistant_user)
        consultation.start_consultation(validated_appointment.id, doctor_user, 'doctor')
        add_note(validated_appointment, doctor_user)
        consultation.end_consultation(validated_appointment.id, doctor_user)

        assert consultation.end_consultation(validated_appointment.id, doctor_user).kind == 'precondition_failed'
        assert consultation.mark_arrived(validated_appointment.id, doctor_user).kind == 'precondition_failed'
        assert consultation.cancel_appointment(
            validated_appointment.id, doctor_user, 'doctor', 'Too late'
        ).kind == 'precondition_failed'


@pytest.mark.django_db
class TestConcurrency:

    def test_stale_writer_gets_conflict(self, appointment, assistant_user, admin_user):
        stale = Appointment.objects.get(pk=appointment.id)

        with frozen_now(at(9, 10)):
            assert consultation.mark_arrived(appointment.id, assistant_user).ok

        with patch('apps.clinical.transitions.repository.read_appointment', return_value=stale):
            with frozen_now(at(9, 11)):
                result = consultation.mark_arrived(appointment.id, admin_user)

        assert result.kind == 'conflict'
        appointment.refresh_from_db()
        assert appointment.patient_arrived_at == at(9, 10)
        assert appointment.marked_arrived_by == assistant_user

    def test_persistence_error_reported(self, appointment, assistant_user):
        from apps.core.persistence import PersistenceError

        with patch('apps.clinical.transitions.repository.read_appointment',
                   side_effect=PersistenceError('read_appointment failed')):
            result = consultation.mark_arrived(appointment.id, assistant_user)

        assert result.kind == 'persistence_error'


@pytest.mark.django_db
class TestCancelAndNoShow:

    def test_cancel_appends_note(self, appointment_factory, patient_user):
        appointment = appointment_factory(notes='Trae estudios')

        with frozen_now(at(8, 5)):
            result = consultation.cancel_appointment(appointment.id, patient_user, 'patient', 'Viaje de trabajo')

        assert result.ok
        assert result.value.status == 'cancelled'
        assert result.value.cancellation_reason == 'Viaje de trabajo'
        assert result.value.notes == (
            'Trae estudios\n\n[Cancelled by patient on 10/03/2026 08:05]: Viaje de trabajo'
        )

    def test_cancel_requires_reason(self, appointment, patient_user):
        result = consultation.cancel_appointment(appointment.id, patient_user, 'patient', '  ')

        assert result.kind == 'missing_required_field'

    def test_cancelled_blocks_transitions(self, appointment, assistant_user):
        consultation.cancel_appointment(appointment.id, assistant_user, 'assistant', 'Clinic closed')

        assert consultation.mark_arrived(appointment.id, assistant_user).kind == 'precondition_failed'
        assert consultation.cancel_appointment(
            appointment.id, assistant_user, 'assistant', 'Again'
        ).kind == 'precondition_failed'

    def test_cancel_in_progress(self, validated_appointment, assistant_user, doctor_user):
        consultation.mark_arrived(validated_appointment.id, assistant_user)
        consultation.start_consultation(validated_appointment.id, doctor_user, 'doctor')

        result = consultation.cancel_appointment(validated_appointment.id, doctor_user, 'doctor', 'Emergency')

        assert result.ok
        assert result.value.status == 'cancelled'

    def test_patient_cannot_cancel_after_arrival(self, appointment, assistant_user, patient_user):
        consultation.mark_arrived(appointment.id, assistant_user)

        result = consultation.cancel_appointment(appointment.id, patient_user, 'patient', 'Me voy')

        assert result.kind == 'precondition_failed'
        appointment.refresh_from_db()
        assert appointment.status == 'scheduled'
        assert appointment.cancellation_reason is None

    def test_staff_can_cancel_after_arrival(self, appointment, assistant_user):
        consultation.mark_arrived(appointment.id, assistant_user)

        result = consultation.cancel_appointment(appointment.id, assistant_user, 'assistant', 'Paciente se retiró')

        assert result.ok

    def test_no_show_only_after_start_time(self, appointment, assistant_user):
        with frozen_now(at(8, 59)):
            early = consultation.mark_no_show(appointment.id, assistant_user)
        with frozen_now(at(9, 30)):
            late = consultation.mark_no_show(appointment.id, assistant_user)

        assert early.kind == 'precondition_failed'
        assert late.ok
        assert late.value.status == 'no_show'

    def test_no_show_after_arrival_fails(self, appointment, assistant_user):
        consultation.mark_arrived(appointment.id, assistant_user)

        with frozen_now(at(9, 30)):
            result = consultation.mark_no_show(appointment.id, assistant_user)

        assert result.kind == 'precondition_failed'


@pytest.mark.django_db
class TestAuditAndSignals:

    def test_transition_writes_audit_log(self, appointment, assistant_user):
        with frozen_now(at(9, 10)):
            consultation.mark_arrived(appointment.id, assistant_user)

        log = ClinicalAuditLog.objects.get(appointment=appointment, action='transition')
        assert log.actor_user == assistant_user
        assert log.metadata['transition'] == 'mark_arrived'
        assert log.metadata['before']['consultation_status'] == 'scheduled'
        assert log.metadata['after']['consultation_status'] == 'waiting'
        assert 'patient_arrived_at' in log.metadata['changed_fields']

    def test_rejected_transition_writes_nothing(self, appointment, assistant_user):
        consultation.start_consultation(appointment.id, assistant_user, 'assistant')

        assert not ClinicalAuditLog.objects.exists()

    def test_signal_emitted(self, appointment, assistant_user):
        received = []

        def listener(sender, **kwargs):
            received.append(kwargs)

        appointment_transitioned.connect(listener)
        try:
            consultation.mark_arrived(appointment.id, assistant_user)
        finally:
            appointment_transitioned.disconnect(listener)

        assert len(received) == 1
        assert received[0]['appointment_id'] == str(appointment.id)
        assert received[0]['transition'] == 'mark_arrived'
        assert received[0]['from_status'] == 'scheduled'
        assert received[0]['to_status'] == 'waiting'


@pytest.mark.django_db
class TestQueue:

    def test_queue_order_and_live_waiting(self, appointment_factory, assistant_user, doctor_user):
        scheduled = appointment_factory(starts_at=at(11))
        waiting = appointment_factory(starts_at=at(10))
        in_progress = appointment_factory(starts_at=at(9), identity_validated=True)
        cancelled = appointment_factory(starts_at=at(8), status=AppointmentStatusChoices.CANCELLED)

        with frozen_now(at(9, 0)):
            consultation.mark_arrived(in_progress.id, assistant_user)
            consultation.start_consultation(in_progress.id, doctor_user, 'doctor')
        with frozen_now(at(9, 40)):
            consultation.mark_arrived(waiting.id, assistant_user)

        with frozen_now(at(9, 52)):
            result = consultation.consultation_queue(CONSULTATION_DAY, doctor=doctor_user)

        assert result.ok
        order = [entry.appointment.id for entry in result.value]
        assert order == [in_progress.id, waiting.id, scheduled.id, cancelled.id]
        assert result.value[1].live_waiting_minutes == 12
        assert result.value[0].live_waiting_minutes is None


class TestMinutesBetween:

    def test_rounds_half_up(self):
        assert minutes_between(at(9), at(9, 0).replace(second=30)) == 1
        assert minutes_between(at(9), at(9, 0).replace(second=29)) == 0

    def test_never_negative(self):
        assert minutes_between(at(9, 30), at(9)) == 0

    def test_missing_end(self):
        assert minutes_between(None, at(9)) is None
