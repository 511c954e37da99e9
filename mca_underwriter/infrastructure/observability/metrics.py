"""Prometheus metrics for grade mix, decision outcomes and transition health"""

from typing import Optional

from prometheus_client import Counter, Histogram

# Analysis metrics
analysis_counter = Counter(
    "mca_analysis_total",
    "Deal analyses run",
    ["grade"],  # A | B | C | D
)

offer_holdback_histogram = Histogram(
    "mca_offer_holdback_percentage",
    "Holdback percentage of standard offers",
    buckets=[5, 10, 15, 20, 25, 30, 40, 50, 75, 100],
)

# Decision metrics
decision_counter = Counter(
    "mca_decision_total",
    "Underwriting decisions applied",
    ["decision"],  # APPROVE | DECLINE | COUNTER
)

stage_transition_counter = Counter(
    "mca_stage_transition_total",
    "Deal stage transitions applied",
    ["to_stage"],
)

transition_conflict_counter = Counter(
    "mca_transition_conflicts_total",
    "Transitions rejected because the deal changed concurrently",
)

# Service health
request_duration_histogram = Histogram(
    "http_request_duration_seconds",
    "HTTP request latency",
    ["method", "endpoint", "status"],
)


def record_analysis(grade: str, holdback_percentage=None) -> None:
    """Record grade distribution and, when an offer was priced, its holdback"""
    analysis_counter.labels(grade=grade).inc()
    if holdback_percentage is not None:
        offer_holdback_histogram.observe(float(holdback_percentage))


def record_transition(to_stage: str, decision: Optional[str] = None) -> None:
    stage_transition_counter.labels(to_stage=to_stage).inc()
    if decision is not None:
        decision_counter.labels(decision=decision).inc()
