"""
Tests for slot generation.

Test Coverage:
1. Rules are cut into fixed-width slots for the matching weekday
2. Booked appointments and availability exceptions are subtracted
3. Past slots are dropped on the same day
4. Clinic timezone is applied to the wall-clock rules
5. Invalid interval and unknown clinic are reported as failures
6. Endpoint returns local times and Sunday-based weekdays
"""
import uuid
from datetime import time, timedelta

import pytest

from apps.clinical.models import AppointmentStatusChoices
from apps.scheduling.models import AvailabilityException, AvailabilitySlot
from apps.scheduling.services import generate_slots

from .conftest import CONSULTATION_DAY, at, frozen_now

EARLY = at(6)


def starts(result):
    return [slot.start for slot in result.value]


@pytest.mark.django_db
class TestGenerateSlots:

    def test_hourly_slots_for_matching_weekday(self, clinic, tuesday_morning):
        with frozen_now(EARLY):
            result = generate_slots(clinic.id, CONSULTATION_DAY, 60)

        assert result.ok
        assert starts(result) == [at(9), at(10), at(11)]
        assert [slot.end for slot in result.value] == [at(10), at(11), at(12)]

    def test_half_hour_slots(self, clinic, tuesday_morning):
        with frozen_now(EARLY):
            result = generate_slots(clinic.id, CONSULTATION_DAY, 30)

        assert len(result.value) == 6
        assert result.value[1].start == at(9, 30)

    def test_no_rule_for_weekday_is_empty_not_error(self, clinic, tuesday_morning):
        with frozen_now(EARLY):
            result = generate_slots(clinic.id, CONSULTATION_DAY + timedelta(days=1), 60)

        assert result.ok
        assert result.value == []

    def test_inactive_rule_ignored(self, clinic, tuesday_morning):
        tuesday_morning.is_active = False
        tuesday_morning.save()

        with frozen_now(EARLY):
            result = generate_slots(clinic.id, CONSULTATION_DAY, 60)

        assert result.value == []

    def test_booked_appointment_removes_slot(self, clinic, tuesday_morning, appointment_factory):
        appointment_factory(starts_at=at(10))

        with frozen_now(EARLY):
            result = generate_slots(clinic.id, CONSULTATION_DAY, 60)

        assert starts(result) == [at(9), at(11)]

    def test_half_hour_appointment_blocks_overlapping_hour(self, clinic, tuesday_morning, appointment_factory):
        appointment_factory(starts_at=at(9, 30), ends_at=at(10))

        with frozen_now(EARLY):
            result = generate_slots(clinic.id, CONSULTATION_DAY, 60)

        assert starts(result) == [at(10), at(11)]

    def test_cancelled_appointment_frees_slot(self, clinic, tuesday_morning, appointment_factory):
        appointment_factory(starts_at=at(10), status=AppointmentStatusChoices.CANCELLED)

        with frozen_now(EARLY):
            result = generate_slots(clinic.id, CONSULTATION_DAY, 60)

        assert starts(result) == [at(9), at(10), at(11)]

    def test_appointment_at_other_clinic_does_not_block(self, clinic, other_clinic, tuesday_morning,
                                                        appointment_factory):
        appointment_factory(clinic=other_clinic, starts_at=at(10))

        with frozen_now(EARLY):
            result = generate_slots(clinic.id, CONSULTATION_DAY, 60)

        assert len(result.value) == 3

    def test_past_slots_dropped(self, clinic, tuesday_morning):
        with frozen_now(at(10, 15)):
            result = generate_slots(clinic.id, CONSULTATION_DAY, 60)

        assert starts(result) == [at(11)]

    def test_partial_exception_subtracted(self, clinic, tuesday_morning):
        AvailabilityException.objects.create(
            clinic=clinic,
            date=CONSULTATION_DAY,
            start_time=time(10, 0),
            end_time=time(11, 0),
            reason='Staff meeting',
        )

        with frozen_now(EARLY):
            result = generate_slots(clinic.id, CONSULTATION_DAY, 30)

        assert starts(result) == [at(9), at(9, 30), at(11), at(11, 30)]

    def test_full_day_exception_blocks_everything(self, clinic, tuesday_morning):
        AvailabilityException.objects.create(clinic=clinic, date=CONSULTATION_DAY, type='holiday')

        with frozen_now(EARLY):
            result = generate_slots(clinic.id, CONSULTATION_DAY, 60)

        assert result.ok
        assert result.value == []

    def test_overlapping_rules_deduplicated(self, clinic, tuesday_morning):
        AvailabilitySlot.objects.create(clinic=clinic, weekday=1, start_time=time(11, 0), end_time=time(13, 0))

        with frozen_now(EARLY):
            result = generate_slots(clinic.id, CONSULTATION_DAY, 60)

        assert starts(result) == [at(9), at(10), at(11), at(12)]

    def test_generation_is_deterministic(self, clinic, tuesday_morning, appointment_factory):
        appointment_factory(starts_at=at(9))

        with frozen_now(EARLY):
            first = generate_slots(clinic.id, CONSULTATION_DAY, 30)
            second = generate_slots(clinic.id, CONSULTATION_DAY, 30)

        assert first.value == second.value

    def test_clinic_timezone_applied(self, clinic, tuesday_morning):
        clinic.timezone = 'America/Mexico_City'  # UTC-6, no DST
        clinic.save()

        with frozen_now(EARLY):
            result = generate_slots(clinic.id, CONSULTATION_DAY, 60)

        assert starts(result) == [at(15), at(16), at(17)]

    def test_invalid_interval(self, clinic, tuesday_morning):
        result = generate_slots(clinic.id, CONSULTATION_DAY, 45)

        assert not result.ok
        assert result.kind == 'invalid_value'

    def test_unknown_clinic(self, db):
        result = generate_slots(uuid.uuid4(), CONSULTATION_DAY, 60)

        assert not result.ok
        assert result.kind == 'not_found'

    def test_default_interval_from_settings(self, clinic, tuesday_morning, settings):
        settings.CONSULTATION_DEFAULT_SLOT_INTERVAL = 30

        with frozen_now(EARLY):
            result = generate_slots(clinic.id, CONSULTATION_DAY)

        assert len(result.value) == 6


@pytest.mark.django_db
class TestSlotEndpoints:

    def test_slots_endpoint(self, patient_client, clinic, tuesday_morning):
        clinic.timezone = 'America/Mexico_City'
        clinic.save()

        with frozen_now(EARLY):
            response = patient_client.get(
                f'/api/v1/scheduling/clinics/{clinic.id}/slots/',
                {'date': CONSULTATION_DAY.isoformat(), 'interval': 60}
            )

        assert response.status_code == 200
        assert response.data['timezone'] == 'America/Mexico_City'
        assert [s['local_start'] for s in response.data['slots']] == ['09:00', '10:00', '11:00']

    def test_slots_endpoint_rejects_bad_interval(self, patient_client, clinic):
        response = patient_client.get(
            f'/api/v1/scheduling/clinics/{clinic.id}/slots/',
            {'date': CONSULTATION_DAY.isoformat(), 'interval': 45}
        )

        assert response.status_code == 400

    def test_slots_endpoint_requires_auth(self, api_client, clinic):
        response = api_client.get(
            f'/api/v1/scheduling/clinics/{clinic.id}/slots/',
            {'date': CONSULTATION_DAY.isoformat()}
        )

        assert response.status_code == 401

    def test_weekdays_are_sunday_based(self, patient_client, clinic, tuesday_morning):
        AvailabilitySlot.objects.create(clinic=clinic, weekday=6, start_time=time(10), end_time=time(12))

        response = patient_client.get(f'/api/v1/scheduling/clinics/{clinic.id}/weekdays/')

        assert response.status_code == 200
        # Tuesday -> 2, Sunday -> 0
        assert response.data['weekdays'] == [0, 2]


@pytest.mark.django_db
class TestAvailabilityRulesApi:

    def test_doctor_creates_rule_for_own_clinic(self, doctor_client, clinic):
        response = doctor_client.post('/api/v1/scheduling/availability/', {
            'clinic': str(clinic.id),
            'weekday': 2,
            'start_time': '16:00',
            'end_time': '19:00',
        }, format='json')

        assert response.status_code == 201
        assert AvailabilitySlot.objects.filter(clinic=clinic, weekday=2).exists()

    def test_end_before_start_rejected(self, doctor_client, clinic):
        response = doctor_client.post('/api/v1/scheduling/availability/', {
            'clinic': str(clinic.id),
            'weekday': 2,
            'start_time': '19:00',
            'end_time': '16:00',
        }, format='json')

        assert response.status_code == 400

    def test_doctor_cannot_manage_other_clinic(self, doctor_client, other_clinic):
        response = doctor_client.post('/api/v1/scheduling/availability/', {
            'clinic': str(other_clinic.id),
            'weekday': 2,
            'start_time': '16:00',
            'end_time': '19:00',
        }, format='json')

        assert response.status_code == 403

    def test_assistant_reads_but_cannot_write(self, assistant_client, clinic, tuesday_morning):
        response = assistant_client.get('/api/v1/scheduling/availability/')
        assert response.status_code == 200
        assert response.data['count'] == 1

        response = assistant_client.post('/api/v1/scheduling/availability/', {
            'clinic': str(clinic.id),
            'weekday': 3,
            'start_time': '09:00',
            'end_time': '10:00',
        }, format='json')
        assert response.status_code == 403

    def test_patient_has_no_access(self, patient_client):
        response = patient_client.get('/api/v1/scheduling/availability/')

        assert response.status_code == 403

    def test_malformed_clinic_filter_rejected(self, doctor_client, tuesday_morning):
        response = doctor_client.get('/api/v1/scheduling/availability/', {'clinic_id': 'nope'})

        assert response.status_code == 400
        assert 'clinic_id' in response.data

    def test_clinic_filter(self, doctor_client, tuesday_morning, clinic):
        response = doctor_client.get('/api/v1/scheduling/availability/', {'clinic_id': str(clinic.id)})

        assert response.status_code == 200
        assert [item['id'] for item in response.data['results']] == [str(tuesday_morning.id)]

    def test_non_uuid_lookup_is_404(self, doctor_client, tuesday_morning):
        response = doctor_client.get('/api/v1/scheduling/availability/' + '-' * 36 + '/')

        assert response.status_code == 404
