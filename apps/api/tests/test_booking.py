"""
Tests for booking appointments from generated slots.
"""
from datetime import timedelta

import pytest

from apps.clinical.models import Appointment, ClinicalAuditLog
from apps.scheduling.services import book_appointment

from .conftest import at, frozen_now

EARLY = at(6)


@pytest.mark.django_db
class TestBookAppointment:

    def test_books_offered_slot(self, clinic, tuesday_morning, patient_user, assistant_user):
        with frozen_now(EARLY):
            result = book_appointment(clinic.id, patient_user, at(10), 60, notes='Primera vez', created_by=assistant_user)

        assert result.ok
        appointment = result.value
        assert appointment.status == 'scheduled'
        assert appointment.consultation_status == 'scheduled'
        assert appointment.doctor_id == clinic.doctor_id
        assert appointment.ends_at == at(10) + timedelta(minutes=60)
        assert appointment.identity_validated is False
        assert ClinicalAuditLog.objects.filter(entity_id=appointment.id, action='create').exists()

    def test_same_slot_twice_conflicts(self, clinic, tuesday_morning, patient_user):
        with frozen_now(EARLY):
            first = book_appointment(clinic.id, patient_user, at(10), 60)
            second = book_appointment(clinic.id, patient_user, at(10), 60)

        assert first.ok
        assert not second.ok
        assert second.kind == 'conflict'
        assert Appointment.objects.count() == 1

    def test_off_grid_time_is_invalid(self, clinic, tuesday_morning, patient_user):
        with frozen_now(EARLY):
            result = book_appointment(clinic.id, patient_user, at(10, 15), 60)

        assert result.kind == 'invalid_value'

    def test_past_slot_is_invalid(self, clinic, tuesday_morning, patient_user):
        with frozen_now(at(10, 30)):
            result = book_appointment(clinic.id, patient_user, at(10), 60)

        assert result.kind == 'invalid_value'

    def test_unknown_interval(self, clinic, tuesday_morning, patient_user):
        with frozen_now(EARLY):
            result = book_appointment(clinic.id, patient_user, at(10), 20)

        assert result.kind == 'invalid_value'


@pytest.mark.django_db
class TestBookingApi:

    def test_patient_books_for_self(self, patient_client, patient_user, clinic, tuesday_morning):
        with frozen_now(EARLY):
            response = patient_client.post(
                f'/api/v1/scheduling/clinics/{clinic.id}/book/',
                {'starts_at': at(11).isoformat(), 'interval_minutes': 60},
                format='json'
            )

        assert response.status_code == 201
        assert response.data['patient'] == patient_user.id
        assert response.data['status'] == 'scheduled'

    def test_assistant_must_name_patient(self, assistant_client, clinic, tuesday_morning):
        with frozen_now(EARLY):
            response = assistant_client.post(
                f'/api/v1/scheduling/clinics/{clinic.id}/book/',
                {'starts_at': at(11).isoformat()},
                format='json'
            )

        assert response.status_code == 400
        assert 'patient_id' in response.data

    def test_assistant_books_for_patient(self, assistant_client, patient_user, clinic, tuesday_morning):
        with frozen_now(EARLY):
            response = assistant_client.post(
                '/api/v1/clinical/appointments/',
                {
                    'clinic_id': str(clinic.id),
                    'patient_id': str(patient_user.id),
                    'starts_at': at(9).isoformat(),
                },
                format='json'
            )

        assert response.status_code == 201
        assert response.data['patient'] == patient_user.id

    def test_taken_slot_returns_409(self, patient_client, clinic, tuesday_morning, appointment_factory):
        appointment_factory(starts_at=at(11))

        with frozen_now(EARLY):
            response = patient_client.post(
                f'/api/v1/scheduling/clinics/{clinic.id}/book/',
                {'starts_at': at(11).isoformat(), 'interval_minutes': 60},
                format='json'
            )

        assert response.status_code == 409
        assert response.data['kind'] == 'conflict'
