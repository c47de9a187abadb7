"""
Metrics instrumentation wrapper around prometheus_client.
"""
import logging
from functools import wraps
import time

from prometheus_client import Counter, Histogram

logger = logging.getLogger(__name__)

# Minute buckets shared by the consultation timing histograms
MINUTE_BUCKETS = [5, 10, 15, 20, 30, 45, 60, 90, 120, 180, 240]


class MetricsRegistry:
    """
    Central metrics registry.

    Provides typed access to all application metrics.
    """

    def __init__(self):
        """Initialize metrics registry."""
        self._setup_metrics()

    def _create_counter(self, name, description, labels=None):
        """Create a counter metric."""
        return Counter(name, description, labels or [])

    def _create_histogram(self, name, description, labels=None, buckets=None):
        """Create a histogram metric."""
        if buckets:
            return Histogram(name, description, labels or [], buckets=buckets)
        return Histogram(name, description, labels or [])

    def _setup_metrics(self):
        """Setup all application metrics."""

        # ===================================================================
        # HTTP Metrics
        # ===================================================================
        self.http_requests_total = self._create_counter(
            'http_requests_total',
            'Total HTTP requests',
            ['method', 'status']
        )

        self.http_request_duration_seconds = self._create_histogram(
            'http_request_duration_seconds',
            'HTTP request duration in seconds',
            ['method'],
            buckets=[0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0]
        )

        self.exceptions_total = self._create_counter(
            'exceptions_total',
            'Total exceptions',
            ['exception_type', 'location']
        )

        # ===================================================================
        # Consultation Flow Metrics
        # ===================================================================
        self.consultation_transition_total = self._create_counter(
            'consultation_transition_total',
            'Consultation flow transitions',
            ['transition', 'result']  # result: success or the failure kind
        )

        self.consultation_waiting_minutes = self._create_histogram(
            'consultation_waiting_minutes',
            'Minutes between patient arrival and consultation start',
            buckets=MINUTE_BUCKETS
        )

        self.consultation_duration_minutes = self._create_histogram(
            'consultation_duration_minutes',
            'Minutes between consultation start and end',
            buckets=MINUTE_BUCKETS
        )

        self.identity_validations_total = self._create_counter(
            'identity_validations_total',
            'Identity validation events',
            ['outcome']  # validated, revalidated
        )

        # ===================================================================
        # Scheduling Metrics
        # ===================================================================
        self.slots_generated_total = self._create_counter(
            'slots_generated_total',
            'Bookable slots returned by availability generation'
        )

        self.appointments_booked_total = self._create_counter(
            'appointments_booked_total',
            'Appointment booking attempts',
            ['result']
        )

        # ===================================================================
        # Persistence Metrics
        # ===================================================================
        self.persistence_retries_total = self._create_counter(
            'persistence_retries_total',
            'Persistence calls retried after a database error',
            ['operation']
        )

        self.clinical_auditlog_created_total = self._create_counter(
            'clinical_auditlog_created_total',
            'Clinical audit logs created',
            ['model', 'action']
        )

    def track_duration(self, histogram_metric):
        """
        Decorator to track function duration.

        Usage:
            @metrics.track_duration(metrics.http_request_duration_seconds.labels(method='GET'))
            def handler(request):
                ...
        """
        def decorator(func):
            @wraps(func)
            def wrapper(*args, **kwargs):
                start_time = time.time()
                try:
                    return func(*args, **kwargs)
                finally:
                    duration = time.time() - start_time
                    histogram_metric.observe(duration)
            return wrapper
        return decorator


# Global metrics instance
metrics = MetricsRegistry()
