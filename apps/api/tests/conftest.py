"""
Global test fixtures for pytest.

Provides reusable fixtures for API and service testing:
- Users and authenticated API clients by role
- Clinic, availability rules, appointments and identity documents
- A frozen clock for the consultation flow
"""
from contextlib import contextmanager
from datetime import datetime, time, timedelta, timezone as dt_timezone
from unittest.mock import patch

import pytest
from rest_framework.test import APIClient

from apps.authz.models import ClinicAssistant, Role, RoleChoices, User, UserRole
from apps.clinical.models import Appointment, DocumentTypeChoices, PatientDocument
from apps.core.models import Clinic
from apps.scheduling.models import AvailabilitySlot

# Tuesday
CONSULTATION_DAY = datetime(2026, 3, 10, tzinfo=dt_timezone.utc).date()


def at(hour, minute=0, day=CONSULTATION_DAY):
    """Aware UTC datetime on the consultation day."""
    return datetime.combine(day, time(hour, minute), tzinfo=dt_timezone.utc)


@contextmanager
def frozen_now(moment):
    """Freeze django.utils.timezone.now() at `moment`."""
    with patch('django.utils.timezone.now', return_value=moment):
        yield moment


def create_user_with_role(email, role_name, **extra):
    """Helper function to create user with role"""
    user = User.objects.create_user(
        email=email,
        password='testpass123',
        is_active=True,
        **extra
    )
    role, _ = Role.objects.get_or_create(
        name=role_name,
        defaults={'name': role_name}
    )
    UserRole.objects.create(user=user, role=role)
    return user


def client_for(user):
    client = APIClient()
    client.force_authenticate(user=user)
    return client


# ============================================================================
# Users
# ============================================================================

@pytest.fixture
def admin_user(db):
    return create_user_with_role('admin@test.com', RoleChoices.ADMIN, is_staff=True, full_name='Admin')


@pytest.fixture
def doctor_user(db):
    return create_user_with_role('doctor@test.com', RoleChoices.DOCTOR, full_name='Dra. Ana Ruiz')


@pytest.fixture
def assistant_user(db, clinic):
    user = create_user_with_role('assistant@test.com', RoleChoices.ASSISTANT, full_name='Luis Assistant')
    ClinicAssistant.objects.create(assistant=user, clinic=clinic)
    return user


@pytest.fixture
def patient_user(db):
    return create_user_with_role('patient@test.com', RoleChoices.PATIENT, full_name='Juan Paciente')


# ============================================================================
# API Clients
# ============================================================================

@pytest.fixture
def api_client():
    """Unauthenticated DRF API client."""
    return APIClient()


@pytest.fixture
def admin_client(admin_user):
    return client_for(admin_user)


@pytest.fixture
def doctor_client(doctor_user):
    return client_for(doctor_user)


@pytest.fixture
def assistant_client(assistant_user):
    return client_for(assistant_user)


@pytest.fixture
def patient_client(patient_user):
    return client_for(patient_user)


# ============================================================================
# Clinic and scheduling
# ============================================================================

@pytest.fixture
def clinic(db, doctor_user):
    return Clinic.objects.create(
        doctor=doctor_user,
        name='Consultorio Centro',
        city='CDMX',
        timezone='UTC',
        is_primary=True,
    )


@pytest.fixture
def other_clinic(db):
    other_doctor = create_user_with_role('other.doctor@test.com', RoleChoices.DOCTOR)
    return Clinic.objects.create(doctor=other_doctor, name='Consultorio Norte', timezone='UTC')


@pytest.fixture
def tuesday_morning(db, clinic):
    """Tuesday 09:00-12:00 availability rule."""
    return AvailabilitySlot.objects.create(
        clinic=clinic,
        weekday=1,
        start_time=time(9, 0),
        end_time=time(12, 0),
    )


# ============================================================================
# Appointments
# ============================================================================

@pytest.fixture
def appointment_factory(db, clinic, doctor_user, patient_user):
    """
    Factory fixture for creating appointments.

    Defaults to 09:00-10:00 on the consultation day, status scheduled.
    """
    def _create_appointment(**kwargs):
        starts_at = kwargs.pop('starts_at', at(9))
        defaults = {
            'clinic': clinic,
            'doctor': doctor_user,
            'patient': patient_user,
            'starts_at': starts_at,
            'ends_at': starts_at + timedelta(hours=1),
        }
        defaults.update(kwargs)
        return Appointment.objects.create(**defaults)

    return _create_appointment


@pytest.fixture
def appointment(appointment_factory):
    return appointment_factory()


@pytest.fixture
def validated_appointment(appointment_factory, assistant_user):
    return appointment_factory(
        identity_validated=True,
        identity_validated_at=at(8, 55),
        identity_validated_by=assistant_user,
    )


@pytest.fixture
def identity_documents(db, patient_user):
    """Profile photo + identification document for the patient."""
    return [
        PatientDocument.objects.create(
            patient=patient_user,
            document_type=DocumentTypeChoices.PROFILE_IMAGE,
            document_url='https://files.test/profile.jpg',
        ),
        PatientDocument.objects.create(
            patient=patient_user,
            document_type=DocumentTypeChoices.IDENTIFICATION,
            document_url='https://files.test/ine.jpg',
        ),
    ]
