"""
Prometheus metrics for the work-assignment scheduler.

Business metrics cover the assignment lifecycle (creation, transitions,
auto-assign outcomes, request completion) and the per-technician lock.

Usage:
    from core.metrics import track_assignment_created, track_lock_wait

    track_assignment_created(mode="auto", category="HardwareIssue")
"""

from prometheus_client import Counter, Gauge, Histogram

# ==============================================================================
# Business Metrics - Assignment Lifecycle
# ==============================================================================

assignment_created_total = Counter(
    'assignment_created_total',
    'Total work assignments created',
    ['mode', 'category']
)

assignment_status_changed_total = Counter(
    'assignment_status_changed_total',
    'Total work assignment status changes',
    ['from_status', 'to_status']
)

auto_assign_failed_total = Counter(
    'auto_assign_failed_total',
    'Auto-assign attempts where no candidate was available',
    ['category']
)

predictor_fallback_total = Counter(
    'predictor_fallback_total',
    'Candidate lookups served by the local keyword heuristic',
    ['reason']
)

request_completed_total = Counter(
    'request_completed_total',
    'Service requests completed through assignment completion',
    ['category', 'resolution_time_bucket']
)

assignment_completion_hours = Histogram(
    'assignment_completion_hours',
    'Hours from assignment start to completion',
    buckets=(0.5, 1, 2, 4, 8, 16, 24, 48, 96, float('inf'))
)

# ==============================================================================
# Concurrency Metrics
# ==============================================================================

technician_lock_wait_seconds = Histogram(
    'technician_lock_wait_seconds',
    'Time spent waiting for a scheduling lock',
    ['backend'],
    buckets=(0.001, 0.005, 0.01, 0.05, 0.1, 0.5, 1, 5, 10, float('inf'))
)

technician_lock_timeouts_total = Counter(
    'technician_lock_timeouts_total',
    'Scheduling lock acquisitions that timed out',
    ['backend']
)

notification_dispatch_total = Counter(
    'notification_dispatch_total',
    'Background notification dispatches by outcome',
    ['kind', 'outcome']
)

notifications_in_flight = Gauge(
    'notifications_in_flight',
    'Background notification tasks currently running'
)

# ==============================================================================
# Helper Functions
# ==============================================================================

def track_assignment_created(mode: str, category: str):
    """Track assignment creation."""
    assignment_created_total.labels(mode=mode, category=category).inc()


def track_status_change(from_status: str, to_status: str):
    """Track assignment status change."""
    assignment_status_changed_total.labels(
        from_status=from_status,
        to_status=to_status
    ).inc()


def track_auto_assign_failed(category: str):
    auto_assign_failed_total.labels(category=category).inc()


def track_predictor_fallback(reason: str):
    predictor_fallback_total.labels(reason=reason).inc()


def track_request_completed(category: str, resolution_time_seconds: float):
    """Track request completion."""
    if resolution_time_seconds < 3600:
        bucket = "<1h"
    elif resolution_time_seconds < 14400:
        bucket = "1-4h"
    elif resolution_time_seconds < 86400:
        bucket = "4-24h"
    elif resolution_time_seconds < 172800:
        bucket = "1-2d"
    else:
        bucket = ">2d"

    request_completed_total.labels(
        category=category,
        resolution_time_bucket=bucket
    ).inc()


def track_completion_hours(hours: float):
    assignment_completion_hours.observe(hours)


def track_lock_wait(backend: str, seconds: float):
    technician_lock_wait_seconds.labels(backend=backend).observe(seconds)


def track_lock_timeout(backend: str):
    technician_lock_timeouts_total.labels(backend=backend).inc()


def track_notification(kind: str, success: bool):
    notification_dispatch_total.labels(
        kind=kind,
        outcome="success" if success else "failure"
    ).inc()
