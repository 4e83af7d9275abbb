"""Prometheus metrics for stream assertions.

This module provides metrics collection for monitoring how stream
assertions behave across a test run.

Metrics Categories:
- Check metrics (evaluated checks, reported failures)
- Subscription metrics (terminal outcomes, active subscriptions)
- Expectation metrics (wait duration, timeouts)

Example:
    >>> from vertector_rxtest.metrics import checks_total
    >>> from vertector_rxtest.metrics import get_metrics
    >>>
    >>> # Increment counter
    >>> checks_total.labels(assertion="assert_equal", outcome="pass").inc()
    >>>
    >>> # Export metrics
    >>> metrics, content_type = get_metrics()
"""

from typing import Tuple

from prometheus_client import Counter, Gauge, Histogram
from prometheus_client import generate_latest, CONTENT_TYPE_LATEST

# ============================================================================
# CHECK METRICS
# ============================================================================

checks_total = Counter(
    "rxtest_checks_total",
    "Total number of value or error checks evaluated",
    ["assertion", "outcome"],  # outcome: pass|fail
)

failures_total = Counter(
    "rxtest_failures_total",
    "Total number of reported assertion failures by kind",
    ["kind"],
)

# ============================================================================
# SUBSCRIPTION METRICS
# ============================================================================

stream_terminations_total = Counter(
    "rxtest_stream_terminations_total",
    "Total number of terminal outcomes received by assertion subscribers",
    ["mode", "outcome"],  # mode: value|failure, outcome: finished|failed
)

active_subscriptions = Gauge(
    "rxtest_active_subscriptions",
    "Number of assertion subscribers neither terminated nor cancelled",
)

# ============================================================================
# EXPECTATION METRICS
# ============================================================================

expectation_wait_seconds = Histogram(
    "rxtest_expectation_wait_seconds",
    "Time spent waiting for expectations to be fulfilled",
    buckets=(0.001, 0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0),
)

expectation_timeouts_total = Counter(
    "rxtest_expectation_timeouts_total",
    "Total number of expectation waits that timed out",
)

# ============================================================================
# HELPER FUNCTIONS
# ============================================================================


def get_metrics() -> Tuple[bytes, str]:
    """Get Prometheus metrics in exposition format.

    Returns:
        Tuple of (metrics_data, content_type)
    """
    return generate_latest(), CONTENT_TYPE_LATEST


def reset_metrics() -> None:
    """Reset all metrics to zero.

    Warning:
        This should only be used in testing.

    Example:
        >>> @pytest.fixture(autouse=True)
        ... def reset_prometheus_metrics():
        ...     yield
        ...     reset_metrics()
    """
    # Reset labelled collectors
    for collector in [
        checks_total,
        failures_total,
        stream_terminations_total,
    ]:
        collector._metrics.clear()

    # Unlabelled collectors hold a single child
    active_subscriptions.set(0)
    expectation_timeouts_total._value.set(0)

    # Histograms cannot be cleared without labels, so reset the samples
    expectation_wait_seconds._sum.set(0)
    for bucket in expectation_wait_seconds._buckets:
        bucket.set(0)


def get_metric_names() -> dict[str, list[str]]:
    """Get all registered metric names by category.

    Returns:
        Dictionary mapping category to list of metric names
    """
    return {
        "checks": [
            "rxtest_checks_total",
            "rxtest_failures_total",
        ],
        "subscriptions": [
            "rxtest_stream_terminations_total",
            "rxtest_active_subscriptions",
        ],
        "expectations": [
            "rxtest_expectation_wait_seconds",
            "rxtest_expectation_timeouts_total",
        ],
    }
