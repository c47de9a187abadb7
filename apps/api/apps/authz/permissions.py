"""
Role helpers and base permissions shared by the scheduling and clinical APIs.
"""
from rest_framework import permissions
from apps.authz.models import RoleChoices, ClinicAssistant

# Precedence used when a user holds several roles and a single acting role is needed
ROLE_PRECEDENCE = [
    RoleChoices.ADMIN,
    RoleChoices.DOCTOR,
    RoleChoices.ASSISTANT,
    RoleChoices.PATIENT,
]


def get_user_roles(user):
    """Return the set of role names held by a user."""
    if not user or not user.is_authenticated:
        return set()
    return set(user.user_roles.values_list('role__name', flat=True))


def get_acting_role(user):
    """Return the highest-precedence role of a user, or None."""
    roles = get_user_roles(user)
    for role in ROLE_PRECEDENCE:
        if role in roles:
            return role.value
    return None


def assigned_clinic_ids(user):
    """Clinic ids an assistant is assigned to."""
    return list(
        ClinicAssistant.objects.filter(assistant=user).values_list('clinic_id', flat=True)
    )


class HasAnyRole(permissions.BasePermission):
    """
    Allow access when the user holds at least one of `view.allowed_roles`.

    Views can narrow per action with a dict `view.action_roles`.
    """

    def has_permission(self, request, view):
        if not request.user or not request.user.is_authenticated:
            return False

        user_roles = get_user_roles(request.user)
        action_roles = getattr(view, 'action_roles', {})
        allowed = action_roles.get(getattr(view, 'action', None))
        if allowed is None:
            allowed = getattr(view, 'allowed_roles', set())

        return bool(user_roles & set(allowed))
