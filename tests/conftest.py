"""Pytest configuration and shared fixtures for stream assertion tests.

This module provides reusable fixtures for testing vertector-rxtest including:
- Failure capture through a local RecordingReporter
- Subjects and sample error types
- Configuration objects
"""

from dataclasses import dataclass
from typing import Iterator

import pytest
from reactivex.subject import Subject

from vertector_rxtest.config import RxTestConfig, get_config
from vertector_rxtest.metrics import reset_metrics
from vertector_rxtest.reporting import RecordingReporter, use_reporter

pytest_plugins = ["pytester"]


# ============================================================================
# PYTEST CONFIGURATION
# ============================================================================


@pytest.fixture(autouse=True)
def reset_prometheus_metrics():
    """Reset Prometheus metrics after each test.

    This prevents metric pollution between tests.
    """
    yield
    reset_metrics()


@pytest.fixture(autouse=True)
def clear_config_cache():
    """Drop the cached configuration so env changes in a test do not leak."""
    get_config.cache_clear()
    yield
    get_config.cache_clear()


# ============================================================================
# CONFIGURATION FIXTURES
# ============================================================================


@pytest.fixture
def rxtest_config() -> RxTestConfig:
    """Create test configuration.

    Returns:
        RxTestConfig with short timeouts
    """
    return RxTestConfig(
        default_timeout_seconds=0.5,
        poll_interval_seconds=0.005,
        max_repr_length=64,
    )


# ============================================================================
# REPORTING FIXTURES
# ============================================================================


@pytest.fixture
def captured() -> Iterator[RecordingReporter]:
    """Capture failures locally instead of failing the test.

    Assertions created while this fixture is active report here, so tests can
    check exactly which failures a stream produced.

    Yields:
        Active RecordingReporter
    """
    reporter = RecordingReporter(log_failures=False)
    with use_reporter(reporter):
        yield reporter


# ============================================================================
# STREAM FIXTURES
# ============================================================================


@pytest.fixture
def subject() -> Subject:
    """Create a hot subject driven by the test."""
    return Subject()


class NetworkError(Exception):
    """Sample error family used across tests."""


class NetworkTimeoutError(NetworkError):
    pass


@dataclass
class ApiError(Exception):
    """Error with value equality."""

    code: int
    reason: str = ""


@pytest.fixture
def network_error() -> NetworkError:
    return NetworkError("connection reset")


# ============================================================================
# PYTEST MARKERS
# ============================================================================


def pytest_configure(config):
    """Configure custom pytest markers.

    Args:
        config: Pytest config object
    """
    config.addinivalue_line(
        "markers",
        "integration: mark test as integration test (threads, event loops, pytester)"
    )
    config.addinivalue_line(
        "markers",
        "unit: mark test as unit test (no external dependencies)"
    )
    config.addinivalue_line(
        "markers",
        "slow: mark test as slow running"
    )
