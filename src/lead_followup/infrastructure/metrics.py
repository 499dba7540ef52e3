"""
Application Metrics.

In-process counters, gauges and histograms exported in the
Prometheus text format.
"""

import time
from collections import defaultdict
from threading import Lock
from typing import Dict, List, Optional, Tuple

from flask import Flask, Response, g, request


LabelKey = Tuple[Tuple[str, str], ...]


def _labels_key(labels: Dict[str, str]) -> LabelKey:
    return tuple(sorted((k, str(v)) for k, v in labels.items()))


def _format_labels(key: LabelKey, extra: Optional[Dict[str, str]] = None) -> str:
    pairs = list(key) + sorted((extra or {}).items())
    if not pairs:
        return ""
    return "{" + ",".join(f'{k}="{v}"' for k, v in pairs) + "}"


class Counter:
    """A monotonically increasing counter metric."""

    kind = "counter"

    def __init__(self, name: str, description: str) -> None:
        self.name = name
        self.description = description
        self._values: Dict[LabelKey, float] = defaultdict(float)
        self._lock = Lock()

    def inc(self, value: float = 1.0, **labels: str) -> None:
        """Increment the counter."""
        with self._lock:
            self._values[_labels_key(labels)] += value

    def value(self, **labels: str) -> float:
        """Current value for one label set."""
        with self._lock:
            return self._values.get(_labels_key(labels), 0.0)

    def samples(self) -> List[str]:
        with self._lock:
            return [
                f"{self.name}{_format_labels(key)} {value}"
                for key, value in self._values.items()
            ]


class Gauge(Counter):
    """A gauge metric that can go up and down."""

    kind = "gauge"

    def set(self, value: float, **labels: str) -> None:
        with self._lock:
            self._values[_labels_key(labels)] = value

    def dec(self, value: float = 1.0, **labels: str) -> None:
        self.inc(-value, **labels)


class Histogram:
    """A histogram metric for tracking distributions."""

    kind = "histogram"
    DEFAULT_BUCKETS = (0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0)

    def __init__(
        self,
        name: str,
        description: str,
        buckets: tuple = DEFAULT_BUCKETS,
    ) -> None:
        self.name = name
        self.description = description
        self.buckets = buckets
        self._counts: Dict[LabelKey, Dict[float, int]] = defaultdict(lambda: defaultdict(int))
        self._sums: Dict[LabelKey, float] = defaultdict(float)
        self._totals: Dict[LabelKey, int] = defaultdict(int)
        self._lock = Lock()

    def observe(self, value: float, **labels: str) -> None:
        """Record an observation."""
        key = _labels_key(labels)
        with self._lock:
            self._sums[key] += value
            self._totals[key] += 1
            for bucket in self.buckets:
                if value <= bucket:
                    self._counts[key][bucket] += 1

    def samples(self) -> List[str]:
        lines = []
        with self._lock:
            for key, total in self._totals.items():
                for bucket in self.buckets:
                    labels = _format_labels(key, {"le": str(bucket)})
                    lines.append(f"{self.name}_bucket{labels} {self._counts[key][bucket]}")
                lines.append(f"{self.name}_bucket{_format_labels(key, {'le': '+Inf'})} {total}")
                lines.append(f"{self.name}_sum{_format_labels(key)} {self._sums[key]}")
                lines.append(f"{self.name}_count{_format_labels(key)} {total}")
        return lines


class MetricsRegistry:
    """Registry for all application metrics."""

    def __init__(self) -> None:
        # HTTP metrics
        self.http_requests_total = Counter(
            "http_requests_total",
            "Total number of HTTP requests",
        )
        self.http_request_duration_seconds = Histogram(
            "http_request_duration_seconds",
            "HTTP request latency in seconds",
        )

        # Business metrics
        self.alerts_generated_total = Counter(
            "alerts_generated_total",
            "Total number of follow-up alerts computed",
        )
        self.followups_auto_created_total = Counter(
            "followups_auto_created_total",
            "Total number of follow-up tasks created from alerts",
        )
        self.notifications_shown_total = Counter(
            "notifications_shown_total",
            "Total number of follow-up notifications raised",
        )
        self.notification_scans_total = Counter(
            "notification_scans_total",
            "Total number of notification scans executed",
        )

        # External service metrics
        self.external_requests_total = Counter(
            "external_requests_total",
            "Total number of external service requests",
        )
        self.circuit_breaker_state = Gauge(
            "circuit_breaker_state",
            "Current state of circuit breakers (0=closed, 1=half-open, 2=open)",
        )

    def all(self) -> list:
        return [
            self.http_requests_total,
            self.http_request_duration_seconds,
            self.alerts_generated_total,
            self.followups_auto_created_total,
            self.notifications_shown_total,
            self.notification_scans_total,
            self.external_requests_total,
            self.circuit_breaker_state,
        ]

    def to_prometheus_format(self) -> str:
        """Export metrics in Prometheus text format."""
        lines = []
        for metric in self.all():
            lines.append(f"# HELP {metric.name} {metric.description}")
            lines.append(f"# TYPE {metric.name} {metric.kind}")
            lines.extend(metric.samples())
        return "\n".join(lines) + "\n"


# Global metrics registry
_metrics: Optional[MetricsRegistry] = None


def get_metrics() -> MetricsRegistry:
    """Get global metrics registry."""
    global _metrics
    if _metrics is None:
        _metrics = MetricsRegistry()
    return _metrics


def reset_metrics() -> None:
    """Drop all recorded values (for testing)."""
    global _metrics
    _metrics = None


def setup_metrics_middleware(app: Flask) -> None:
    """
    Setup Flask middleware for automatic HTTP metrics collection.

    Args:
        app: Flask application instance.
    """
    @app.before_request
    def before_request() -> None:
        g.metrics_start_time = time.time()

    @app.after_request
    def after_request(response):
        metrics = get_metrics()
        duration = time.time() - getattr(g, "metrics_start_time", time.time())
        endpoint = request.endpoint or "unknown"

        metrics.http_requests_total.inc(
            method=request.method,
            endpoint=endpoint,
            status=str(response.status_code),
        )
        metrics.http_request_duration_seconds.observe(
            duration,
            method=request.method,
            endpoint=endpoint,
        )

        return response


def metrics_endpoint() -> Response:
    """Prometheus metrics endpoint handler."""
    return Response(
        get_metrics().to_prometheus_format(),
        mimetype="text/plain; charset=utf-8",
    )
