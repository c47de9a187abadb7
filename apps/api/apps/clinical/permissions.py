"""
Clinical permissions and appointment scoping by role.
"""
from django.db.models import Q
from rest_framework import permissions

from apps.authz.models import RoleChoices
from apps.authz.permissions import assigned_clinic_ids, get_user_roles

ALL_ROLES = {RoleChoices.ADMIN, RoleChoices.DOCTOR, RoleChoices.ASSISTANT, RoleChoices.PATIENT}
FRONT_DESK_ROLES = {RoleChoices.ADMIN, RoleChoices.DOCTOR, RoleChoices.ASSISTANT}
CLINICIAN_ROLES = {RoleChoices.ADMIN, RoleChoices.DOCTOR}


class AppointmentPermission(permissions.BasePermission):
    """
    Permission for appointment and consultation flow endpoints.

    - list/retrieve/create/cancel: admin, doctor, assistant, patient
    - arrive/validate-identity/start/no-show/queue/identity-validations:
      admin, doctor, assistant
    - end/note: admin, doctor

    Which appointments are visible is decided by scope_appointments().
    """

    ACTION_ROLES = {
        'list': ALL_ROLES,
        'retrieve': ALL_ROLES,
        'create': ALL_ROLES,
        'cancel': ALL_ROLES,
        'arrive': FRONT_DESK_ROLES,
        'validate_identity': FRONT_DESK_ROLES,
        'start': FRONT_DESK_ROLES,
        'no_show': FRONT_DESK_ROLES,
        'queue': FRONT_DESK_ROLES,
        'identity_validations': FRONT_DESK_ROLES,
        'end': CLINICIAN_ROLES,
        'note': CLINICIAN_ROLES,
    }

    def has_permission(self, request, view):
        if not request.user or not request.user.is_authenticated:
            return False

        user_roles = get_user_roles(request.user)
        allowed_roles = self.ACTION_ROLES.get(view.action, set())
        return bool(user_roles & allowed_roles)


def scope_appointments(queryset, user):
    """
    Restrict an appointment queryset to what the user may see.

    - Admin: everything
    - Doctor: own appointments
    - Assistant: appointments at assigned clinics
    - Patient: own appointments
    """
    roles = get_user_roles(user)
    if RoleChoices.ADMIN in roles:
        return queryset

    scope = Q(pk__in=[])
    if RoleChoices.DOCTOR in roles:
        scope |= Q(doctor=user)
    if RoleChoices.ASSISTANT in roles:
        scope |= Q(clinic_id__in=assigned_clinic_ids(user))
    if RoleChoices.PATIENT in roles:
        scope |= Q(patient=user)
    return queryset.filter(scope)
