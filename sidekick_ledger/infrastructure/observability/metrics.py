"""Prometheus metrics for monitoring reconciliation, interest and Torn API health"""

from typing import Iterable

from prometheus_client import Counter, Gauge, Histogram

from sidekick_ledger.domain.models import Obligation, ObligationKind

# Ledger metrics
repayments_applied_counter = Counter(
    "sidekick_repayments_applied_total",
    "Repayments applied to obligations",
    ["source"],  # automatic | manual
)

log_events_skipped_counter = Counter(
    "sidekick_log_events_skipped_total",
    "Transaction log events not applied during reconciliation",
    ["reason"],  # stale | unrecognized | malformed | no_marker | duplicate | unmatched
)

reconciliation_failures_counter = Counter(
    "sidekick_reconciliation_failures_total",
    "Reconciliation passes that failed to fetch or persist",
)

interest_accrued_counter = Counter(
    "sidekick_interest_accrual_runs_total",
    "Interest accrual runs",
    ["outcome"],  # changed | unchanged | failed
)

open_obligations_gauge = Gauge(
    "sidekick_open_obligations",
    "Open obligations by kind",
    ["kind"],
)

# Torn API metrics
torn_api_latency_histogram = Histogram(
    "torn_api_latency_seconds",
    "Torn API response time",
    buckets=[0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0],
)

torn_api_failures_counter = Counter(
    "torn_api_failures_total",
    "Failed Torn API calls",
)

# Service health
request_duration_histogram = Histogram(
    "http_request_duration_seconds",
    "HTTP request latency",
    ["method", "endpoint", "status"],
)


def record_repayment(automatic: bool) -> None:
    repayments_applied_counter.labels(source="automatic" if automatic else "manual").inc()


def record_skipped_events(skipped: dict) -> None:
    for reason, count in skipped.items():
        log_events_skipped_counter.labels(reason=reason).inc(count)


def record_open_obligations(obligations: Iterable[Obligation]) -> None:
    """Refresh the open-obligation gauge after a ledger change"""
    counts = {kind: 0 for kind in ObligationKind}
    for obligation in obligations:
        if not obligation.completed:
            counts[obligation.kind] += 1

    for kind, count in counts.items():
        open_obligations_gauge.labels(kind=kind.value).set(count)
