"""
Discriminated results returned by scheduling and consultation operations.

Operations never raise for expected failures; they return FlowResult.fail(...)
with a Failure the API layer turns into a response body.
"""
from dataclasses import dataclass
from typing import Any, Optional

from django.db import models
from rest_framework import status
from rest_framework.response import Response

from apps.core.persistence import ConflictError, NotFoundError, PersistenceError


class FailureKind(models.TextChoices):
    PRECONDITION_FAILED = 'precondition_failed', 'Precondition Failed'
    VALIDATION_REQUIRED = 'validation_required', 'Validation Required'
    MISSING_REQUIRED_FIELD = 'missing_required_field', 'Missing Required Field'
    INVALID_VALUE = 'invalid_value', 'Invalid Value'
    CONFLICT = 'conflict', 'Conflict'
    NOT_FOUND = 'not_found', 'Not Found'
    PERSISTENCE_ERROR = 'persistence_error', 'Persistence Error'


HTTP_STATUS_BY_KIND = {
    FailureKind.PRECONDITION_FAILED.value: status.HTTP_400_BAD_REQUEST,
    FailureKind.VALIDATION_REQUIRED.value: status.HTTP_400_BAD_REQUEST,
    FailureKind.MISSING_REQUIRED_FIELD.value: status.HTTP_400_BAD_REQUEST,
    FailureKind.INVALID_VALUE.value: status.HTTP_400_BAD_REQUEST,
    FailureKind.CONFLICT.value: status.HTTP_409_CONFLICT,
    FailureKind.NOT_FOUND.value: status.HTTP_404_NOT_FOUND,
    FailureKind.PERSISTENCE_ERROR.value: status.HTTP_503_SERVICE_UNAVAILABLE,
}


@dataclass(frozen=True)
class Failure:
    kind: str
    message: str
    redirect: Optional[str] = None

    def as_dict(self):
        data = {'error': self.message, 'kind': self.kind}
        if self.redirect:
            data['redirect'] = self.redirect
        return data


@dataclass(frozen=True)
class FlowResult:
    ok: bool
    value: Any = None
    failure: Optional[Failure] = None

    @classmethod
    def success(cls, value=None):
        return cls(ok=True, value=value)

    @classmethod
    def fail(cls, kind, message, redirect=None):
        return cls(ok=False, failure=Failure(kind=str(kind), message=message, redirect=redirect))

    @classmethod
    def from_exception(cls, exc):
        """Map a repository exception onto its failure kind."""
        if isinstance(exc, NotFoundError):
            return cls.fail(FailureKind.NOT_FOUND, str(exc))
        if isinstance(exc, ConflictError):
            return cls.fail(FailureKind.CONFLICT, str(exc))
        if isinstance(exc, PersistenceError):
            return cls.fail(FailureKind.PERSISTENCE_ERROR, 'The record could not be saved, please retry')
        raise exc

    @property
    def kind(self):
        return self.failure.kind if self.failure else None


def failure_response(result):
    """Build a DRF error Response for a failed FlowResult."""
    failure = result.failure
    return Response(
        failure.as_dict(),
        status=HTTP_STATUS_BY_KIND.get(failure.kind, status.HTTP_400_BAD_REQUEST)
    )
