"""
Health check endpoints.

/healthz answers as long as the process is up; /readyz also checks the
database and that the consultation roles have been bootstrapped.
"""
import logging

from django.conf import settings
from django.db import DatabaseError, connection
from django.http import JsonResponse
from django.views import View

logger = logging.getLogger(__name__)


class HealthzView(View):
    """
    Liveness check. Does not touch dependencies.
    """

    def get(self, request):
        health_data = {
            'status': 'ok',
            'version': getattr(settings, 'VERSION', 'unknown'),
        }

        commit_hash = getattr(settings, 'COMMIT_HASH', None)
        if commit_hash:
            health_data['commit'] = commit_hash

        return JsonResponse(health_data, status=200)


class ReadyzView(View):
    """
    Readiness check.

    Not ready while the database is unreachable or any of the
    admin/doctor/assistant/patient roles is missing (migrations not applied).
    """

    def get(self, request):
        checks = {
            'database': self._check_database(),
        }
        checks['roles'] = checks['database'] and self._check_roles()

        all_healthy = all(checks.values())

        response_data = {
            'status': 'ready' if all_healthy else 'not_ready',
            'checks': checks,
        }

        return JsonResponse(response_data, status=200 if all_healthy else 503)

    def _check_database(self):
        try:
            with connection.cursor() as cursor:
                cursor.execute('SELECT 1')
                return True
        except DatabaseError as e:
            logger.error(
                'Database health check failed',
                extra={
                    'event': 'health_check_failed',
                    'check': 'database',
                    'error': str(e)
                }
            )
            return False

    def _check_roles(self):
        from apps.authz.models import Role, RoleChoices

        try:
            present = set(Role.objects.values_list('name', flat=True))
        except DatabaseError as e:
            logger.error(
                'Role health check failed',
                extra={'event': 'health_check_failed', 'check': 'roles', 'error': str(e)}
            )
            return False

        missing = set(RoleChoices.values) - present
        if missing:
            logger.warning(
                'Consultation roles missing',
                extra={'event': 'health_check_failed', 'check': 'roles', 'missing': sorted(missing)}
            )
            return False
        return True
