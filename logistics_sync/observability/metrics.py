"""
Prometheus metrics collection for logistics-sync

This module provides metrics instrumentation for monitoring import runs,
row outcomes, write errors and store performance.
"""
import os
from contextlib import contextmanager

from prometheus_client import (
    CollectorRegistry,
    Counter,
    Gauge,
    Histogram,
    generate_latest,
    start_http_server,
)

# Private registry for import metrics
REGISTRY = CollectorRegistry()


# =======================
# RUN METRICS
# =======================

# Runs by outcome
import_runs_total = Counter(
    name="import_runs_total",
    documentation="Total number of import runs",
    labelnames=["kind", "mode", "status"],  # status: success, failed
    registry=REGISTRY,
)

# Triggers dropped because a run of the same kind was in progress
import_triggers_dropped_total = Counter(
    name="import_triggers_dropped_total",
    documentation="Total number of import triggers dropped while a run was in progress",
    labelnames=["kind"],
    registry=REGISTRY,
)

# Run duration histogram
import_run_duration_seconds = Histogram(
    name="import_run_duration_seconds",
    documentation="Wall-clock duration of import runs in seconds",
    labelnames=["kind", "mode"],
    buckets=[1.0, 5.0, 10.0, 30.0, 60.0, 120.0, 300.0, 600.0, 1800.0],
    registry=REGISTRY,
)

# Whether a kind is running (1) or idle (0)
import_run_active = Gauge(
    name="import_run_active",
    documentation="Whether an import run of the kind is in progress",
    labelnames=["kind"],
    registry=REGISTRY,
)

# Timestamp of the last successful run
import_last_success_timestamp = Gauge(
    name="import_last_success_timestamp_seconds",
    documentation="Unix time of the last successful import run",
    labelnames=["kind"],
    registry=REGISTRY,
)

# =======================
# ROW METRICS
# =======================

# Row outcomes
import_rows_total = Counter(
    name="import_rows_total",
    documentation="Total number of extract rows by outcome",
    labelnames=["kind", "outcome"],  # outcome: created, updated, unchanged, skipped, deleted
    registry=REGISTRY,
)

# Write errors
import_write_errors_total = Counter(
    name="import_write_errors_total",
    documentation="Total number of failed store writes (per item)",
    labelnames=["kind", "operation"],  # operation: create, update, delete
    registry=REGISTRY,
)

# =======================
# STORE METRICS
# =======================

# Identity index size
identity_index_size = Gauge(
    name="import_identity_index_size",
    documentation="Number of stored records loaded into the identity index",
    labelnames=["kind"],
    registry=REGISTRY,
)

# Flush duration
store_flush_duration_seconds = Histogram(
    name="import_store_flush_duration_seconds",
    documentation="Time spent flushing a write batch to the store in seconds",
    labelnames=["kind", "operation"],
    buckets=[0.01, 0.05, 0.1, 0.5, 1.0, 5.0, 10.0, 30.0],
    registry=REGISTRY,
)


# =======================
# RECORDING HELPERS
# =======================

ROW_OUTCOMES = ("created", "updated", "unchanged", "skipped", "deleted")


@contextmanager
def track_flush(kind: str, operation: str):
    """
    Time one store flush.

    Usage:
        with track_flush("stock", "create"):
            store.create_many(kind, batch)
    """
    with store_flush_duration_seconds.labels(kind=kind, operation=operation).time():
        yield


@contextmanager
def run_active(kind: str):
    """Mark a kind as running for the duration of the block."""
    gauge = import_run_active.labels(kind=kind)
    gauge.set(1)
    try:
        yield
    finally:
        gauge.set(0)


def record_trigger_dropped(kind: str) -> None:
    import_triggers_dropped_total.labels(kind=kind).inc()


def record_index_size(kind: str, size: int) -> None:
    identity_index_size.labels(kind=kind).set(size)


def record_run(report) -> None:
    """
    Record the metrics of a finished run.

    Args:
        report: Finished RunReport
    """
    kind = report.kind
    mode = report.mode.value

    import_runs_total.labels(kind=kind, mode=mode, status=report.status).inc()
    if report.duration_seconds is not None:
        import_run_duration_seconds.labels(kind=kind, mode=mode).observe(report.duration_seconds)

    for outcome in ROW_OUTCOMES:
        count = getattr(report, outcome)
        if count:
            import_rows_total.labels(kind=kind, outcome=outcome).inc(count)

    if report.status == "success" and report.finished_at is not None:
        import_last_success_timestamp.labels(kind=kind).set(report.finished_at.timestamp())


def record_write_errors(kind: str, operation: str, count: int) -> None:
    """
    Record failed store writes.

    Args:
        kind: Record kind name
        operation: create, update or delete
        count: Number of failed items
    """
    if count > 0:
        import_write_errors_total.labels(kind=kind, operation=operation).inc(count)


# =======================
# EXPOSITION
# =======================

def generate_metrics() -> bytes:
    """Current metrics in the Prometheus text format."""
    return generate_latest(REGISTRY)


def start_metrics_server(port: int | None = None) -> int:
    """
    Serve the metrics over HTTP from a background thread.

    Args:
        port: Port to listen on (defaults to env var METRICS_PORT, then 8000)

    Returns:
        The port in use
    """
    metrics_port = port or int(os.getenv("METRICS_PORT", "8000"))
    start_http_server(metrics_port, registry=REGISTRY)
    return metrics_port
