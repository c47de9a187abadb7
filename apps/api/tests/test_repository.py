"""
Tests for the persistence collaborator: conditional updates and retries.
"""
import uuid
from unittest.mock import Mock, patch

import pytest
from django.db import OperationalError
from prometheus_client import REGISTRY

from apps.clinical import repository
from apps.core.persistence import ConflictError, NotFoundError, PersistenceError, persistence_call


@pytest.mark.django_db
class TestConditionalUpdate:

    def test_applies_when_expected_matches(self, appointment):
        updated = repository.conditional_update_appointment(
            appointment.id,
            {'consultation_status': 'scheduled'},
            {'consultation_status': 'waiting'}
        )

        assert updated.consultation_status == 'waiting'
        assert updated.updated_at >= appointment.updated_at

    def test_conflict_leaves_row_untouched(self, appointment):
        with pytest.raises(ConflictError):
            repository.conditional_update_appointment(
                appointment.id,
                {'consultation_status': 'waiting'},
                {'consultation_status': 'in_progress'}
            )

        appointment.refresh_from_db()
        assert appointment.consultation_status == 'scheduled'

    def test_missing_row(self, db):
        with pytest.raises(NotFoundError):
            repository.conditional_update_appointment(uuid.uuid4(), {}, {'notes': 'x'})

    def test_read_clinic_ignores_inactive(self, clinic):
        clinic.is_active = False
        clinic.save()

        with pytest.raises(NotFoundError):
            repository.read_clinic(clinic.id)


@pytest.mark.django_db
class TestPersistenceCall:

    def test_retries_once_then_succeeds(self):
        func = Mock(side_effect=[OperationalError('database is locked'), 'ok'])
        wrapped = persistence_call('flaky_read')(func)
        before = REGISTRY.get_sample_value(
            'persistence_retries_total', {'operation': 'flaky_read'}
        ) or 0

        assert wrapped() == 'ok'
        assert func.call_count == 2
        assert REGISTRY.get_sample_value(
            'persistence_retries_total', {'operation': 'flaky_read'}
        ) == before + 1

    def test_raises_persistence_error_after_retry(self):
        func = Mock(side_effect=OperationalError('connection lost'))
        wrapped = persistence_call('broken_write')(func)

        with pytest.raises(PersistenceError):
            wrapped()
        assert func.call_count == 2

    def test_domain_errors_are_not_retried(self):
        func = Mock(side_effect=ConflictError('stale'))
        wrapped = persistence_call('cas')(func)

        with pytest.raises(ConflictError):
            wrapped()
        assert func.call_count == 1

    def test_retry_count_from_settings(self, settings):
        settings.CONSULTATION_PERSISTENCE_RETRIES = 0
        func = Mock(side_effect=OperationalError('down'))

        with pytest.raises(PersistenceError):
            persistence_call('no_retry')(func)()
        assert func.call_count == 1

    def test_repository_function_wrapped(self, appointment):
        with patch('apps.clinical.repository.Appointment.objects.select_related',
                   side_effect=OperationalError('gone')):
            with pytest.raises(PersistenceError):
                repository.read_appointment(appointment.id)


@pytest.mark.django_db
def test_suite_runs_on_in_memory_sqlite():
    from django.db import connection

    assert connection.vendor == 'sqlite'
    assert 'memory' in str(connection.settings_dict['NAME'])
