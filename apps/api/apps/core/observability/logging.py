"""
Structured logging for the consultation API.

Clinical free text (diagnosis, prescription, cancellation reasons, identity
validation notes) and patient contact data never reach the log stream: the
JSON formatter and sanitize_dict() redact them by key.
"""
import json
import logging
from datetime import datetime, timezone

from .correlation import get_request_id, get_trace_id, get_user_id, get_user_roles


# Keys whose values are redacted wherever they appear
SENSITIVE_FIELDS = {
    # credentials
    'password',
    'token',
    'secret',
    'api_key',
    # consultation note and appointment free text
    'diagnosis',
    'prescription',
    'recommendations',
    'notes',
    'validation_notes',
    'reason',
    'cancellation_reason',
    # patient identity
    'full_name',
    'email',
    'phone',
    'document_url',
}

# LogRecord attributes; logging refuses extra={} keys that collide with them
RESERVED_LOG_ATTRS = {
    'name', 'msg', 'args', 'created', 'filename', 'funcName', 'levelname',
    'levelno', 'lineno', 'module', 'msecs', 'pathname', 'process',
    'processName', 'relativeCreated', 'thread', 'threadName', 'exc_info',
    'exc_text', 'stack_info', 'taskName', 'message', 'asctime',
}


class CorrelationFilter(logging.Filter):
    """
    Stamps every record with the request id, trace id and acting user
    stored by RequestCorrelationMiddleware.
    """

    def filter(self, record):
        record.request_id = get_request_id() or '-'
        record.trace_id = get_trace_id() or '-'
        record.user_id = get_user_id() or '-'
        record.user_roles = ','.join(get_user_roles()) or '-'
        return True


class SanitizedJSONFormatter(logging.Formatter):
    """
    One JSON object per line, used outside DEBUG.

    Extra fields (appointment_id, transition, failure_kind, ...) are emitted
    as top-level keys; sensitive keys are replaced with [REDACTED], also
    inside nested dicts such as audit before/after snapshots.
    """

    def format(self, record):
        log_data = {
            'timestamp': datetime.now(timezone.utc).isoformat().replace('+00:00', 'Z'),
            'level': record.levelname,
            'logger': record.name,
            'message': record.getMessage(),
            'request_id': getattr(record, 'request_id', '-'),
            'trace_id': getattr(record, 'trace_id', '-'),
            'user_id': getattr(record, 'user_id', '-'),
            'user_roles': getattr(record, 'user_roles', '-'),
        }

        for key, value in record.__dict__.items():
            if key in log_data or key.startswith('_') or key in RESERVED_LOG_ATTRS:
                continue
            if key.lower() in SENSITIVE_FIELDS:
                log_data[key] = '[REDACTED]'
            else:
                log_data[key] = self._sanitize_value(value)

        if record.exc_info:
            log_data['exception'] = self.formatException(record.exc_info)

        return json.dumps(log_data, default=str)

    def _sanitize_value(self, value):
        if isinstance(value, dict):
            return {
                k: '[REDACTED]' if str(k).lower() in SENSITIVE_FIELDS else self._sanitize_value(v)
                for k, v in value.items()
            }
        elif isinstance(value, (list, tuple)):
            return [self._sanitize_value(v) for v in value]
        else:
            return value


def get_sanitized_logger(name):
    """
    Get a logger with correlation filter applied.

    Usage:
        logger = get_sanitized_logger(__name__)
        logger.warning('Retrying persistence call', extra={'event': 'persistence_retry', 'operation': 'read_appointment'})
    """
    logger = logging.getLogger(name)

    if not any(isinstance(f, CorrelationFilter) for f in logger.filters):
        logger.addFilter(CorrelationFilter())

    return logger


def sanitize_dict(data):
    """
    Copy of `data` with sensitive keys redacted, recursing into dicts and
    lists of dicts.
    """
    if not isinstance(data, dict):
        return data

    sanitized = {}
    for key, value in data.items():
        if str(key).lower() in SENSITIVE_FIELDS:
            sanitized[key] = '[REDACTED]'
        elif isinstance(value, dict):
            sanitized[key] = sanitize_dict(value)
        elif isinstance(value, (list, tuple)):
            sanitized[key] = [
                sanitize_dict(v) if isinstance(v, dict) else v
                for v in value
            ]
        else:
            sanitized[key] = value

    return sanitized


def safe_extra(data):
    """
    Prefix keys that would collide with LogRecord attributes
    (created -> extra_created) so logging accepts them as extra={}.
    """
    return {
        f'extra_{key}' if key in RESERVED_LOG_ATTRS else key: value
        for key, value in data.items()
    }
