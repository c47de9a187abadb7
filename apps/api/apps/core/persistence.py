"""
Persistence errors and the retry-once wrapper used by repository functions.

Repository functions raise these exceptions; services catch them at the seam
and turn them into failure results.
"""
from functools import wraps

from django.conf import settings
from django.db import DatabaseError, transaction

from apps.core.observability import metrics
from apps.core.observability.logging import get_sanitized_logger

logger = get_sanitized_logger(__name__)


class NotFoundError(Exception):
    """Referenced record (appointment, clinic) does not exist."""
    pass


class ConflictError(Exception):
    """Conditional update matched the id but not the expected state."""
    pass


class PersistenceError(Exception):
    """Database I/O failed even after the allowed retries."""
    pass


def persistence_call(operation):
    """
    Wrap a repository function in its own atomic block and retry it on
    DatabaseError.

    Each attempt runs in a savepoint, so a failed attempt leaves the outer
    transaction usable. After CONSULTATION_PERSISTENCE_RETRIES extra attempts
    the error is raised as PersistenceError.
    """
    def decorator(func):
        @wraps(func)
        def wrapper(*args, **kwargs):
            retries = getattr(settings, 'CONSULTATION_PERSISTENCE_RETRIES', 1)
            attempt = 0
            while True:
                try:
                    with transaction.atomic():
                        return func(*args, **kwargs)
                except DatabaseError as exc:
                    if attempt >= retries:
                        metrics.exceptions_total.labels(
                            exception_type=exc.__class__.__name__,
                            location=operation,
                        ).inc()
                        logger.error(
                            f'Persistence call failed: {operation}',
                            extra={
                                'event': 'persistence_error',
                                'operation': operation,
                                'attempts': attempt + 1,
                                'error': exc.__class__.__name__,
                            }
                        )
                        raise PersistenceError(f'{operation} failed: {exc}') from exc
                    attempt += 1
                    metrics.persistence_retries_total.labels(operation=operation).inc()
                    logger.warning(
                        f'Retrying persistence call: {operation}',
                        extra={
                            'event': 'persistence_retry',
                            'operation': operation,
                            'attempt': attempt,
                        }
                    )
        return wrapper
    return decorator
