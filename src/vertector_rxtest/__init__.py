"""Vertector RxTest - One-line assertions for reactivex streams in tests."""

from vertector_rxtest.assertions import (
    StreamAssert,
    assert_compare,
    assert_equal,
    assert_fails,
    assert_fails_with_equal,
    assert_fails_with_type,
    assert_false,
    assert_greater_than,
    assert_greater_than_or_equal,
    assert_less_than,
    assert_less_than_or_equal,
    assert_nil,
    assert_no_failure,
    assert_not_equal,
    assert_not_nil,
    assert_predicate,
    assert_stream,
    assert_that,
    assert_true,
)
from vertector_rxtest.checks import Comparison
from vertector_rxtest.config import RxTestConfig, get_config, load_config_from_env
from vertector_rxtest.expectation import (
    Expectation,
    ExpectationError,
    wait_for_expectations,
    wait_for_expectations_async,
)
from vertector_rxtest.reporting import (
    AssertionFailure,
    FailureKind,
    FailureReporter,
    RecordingReporter,
    ReporterError,
    RxTestError,
    SourceLocation,
    current_reporter,
    use_reporter,
)
from vertector_rxtest.subscriber import (
    UNLIMITED,
    AssertionSubscriber,
    DisposableSubscription,
    Failed,
    Finished,
    OnFailure,
    OnValue,
)

__version__ = "0.1.0"

__all__ = [
    # Configuration
    "RxTestConfig",
    "get_config",
    "load_config_from_env",
    # Subscriber
    "AssertionSubscriber",
    "DisposableSubscription",
    "OnValue",
    "OnFailure",
    "Finished",
    "Failed",
    "UNLIMITED",
    # Entry points - generic
    "assert_stream",
    "assert_compare",
    "Comparison",
    # Entry points - values
    "assert_equal",
    "assert_not_equal",
    "assert_greater_than",
    "assert_greater_than_or_equal",
    "assert_less_than",
    "assert_less_than_or_equal",
    "assert_nil",
    "assert_not_nil",
    "assert_predicate",
    "assert_true",
    "assert_false",
    "assert_no_failure",
    # Entry points - failures
    "assert_fails",
    "assert_fails_with_type",
    "assert_fails_with_equal",
    # Fluent
    "StreamAssert",
    "assert_that",
    # Expectations
    "Expectation",
    "ExpectationError",
    "wait_for_expectations",
    "wait_for_expectations_async",
    # Reporting
    "AssertionFailure",
    "FailureKind",
    "FailureReporter",
    "RecordingReporter",
    "SourceLocation",
    "current_reporter",
    "use_reporter",
    # Errors
    "RxTestError",
    "ReporterError",
]
