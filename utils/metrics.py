"""Application metrics collection using Prometheus"""
import time
import functools
import logging
from prometheus_client import (
    Counter, Histogram, Gauge, CollectorRegistry, CONTENT_TYPE_LATEST, generate_latest
)
from flask import Response

logger = logging.getLogger(__name__)

REGISTRY = CollectorRegistry()

api_request_duration = Histogram(
    'geo_api_duration_seconds',
    'Time spent calling the geospatial API',
    ['endpoint'],
    buckets=[0.05, 0.1, 0.25, 0.5, 1, 2, 5, 10, 30],
    registry=REGISTRY
)

api_request_counter = Counter(
    'geo_api_requests_total',
    'Total geospatial API requests',
    ['endpoint', 'status'],
    registry=REGISTRY
)

view_action_counter = Counter(
    'explorer_view_actions_total',
    'Map view actions handled',
    ['action', 'status'],
    registry=REGISTRY
)

boundary_features_gauge = Gauge(
    'explorer_boundary_features',
    'Boundary features registered in the most recently updated session',
    registry=REGISTRY
)

error_counter = Counter(
    'application_errors_total',
    'Total application errors',
    ['error_type', 'component'],
    registry=REGISTRY
)


class MetricsCollector:
    @staticmethod
    def track_api_call(endpoint: str):
        """Time a remote API call and count it by outcome."""
        def decorator(func):
            @functools.wraps(func)
            def wrapper(*args, **kwargs):
                start = time.time()
                status = 'success'
                try:
                    return func(*args, **kwargs)
                except Exception as e:
                    status = 'failed'
                    error_counter.labels(error_type=type(e).__name__, component='geo_api').inc()
                    raise
                finally:
                    api_request_duration.labels(endpoint=endpoint).observe(time.time() - start)
                    api_request_counter.labels(endpoint=endpoint, status=status).inc()
            return wrapper
        return decorator

    @staticmethod
    def record_view_action(action: str, ok: bool = True):
        view_action_counter.labels(action=action, status='success' if ok else 'failed').inc()


def get_metrics() -> Response:
    return Response(generate_latest(REGISTRY), mimetype=CONTENT_TYPE_LATEST)


metrics_collector = MetricsCollector()
