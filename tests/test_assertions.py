"""Unit tests for the fluent assertion entry points.

Tests cover:
- Equality and ordering assertions
- None / not-None assertions
- Predicate assertions
- Failure assertions (any, by type, by equality)
- Expectation and completion hooks
- Fluent wrapper
- Cancellable handles
"""

from unittest.mock import MagicMock

import pytest
import reactivex
from reactivex.disposable import CompositeDisposable

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
from vertector_rxtest.expectation import Expectation
from vertector_rxtest.reporting import FailureKind, RecordingReporter, SourceLocation
from vertector_rxtest.subscriber import AssertionSubscriber, OnValue
from tests.conftest import ApiError, NetworkError, NetworkTimeoutError


# ============================================================================
# EQUALITY TESTS
# ============================================================================


@pytest.mark.unit
class TestAssertEqual:
    """Test assert_equal."""

    def test_equal_values_pass(self, captured, subject):
        """Test equal values report nothing."""
        assert_equal(subject, 1)

        subject.on_next(1)
        subject.on_next(1)
        subject.on_completed()

        assert captured.failures == []

    def test_each_mismatch_reported_and_checking_continues(self, captured, subject):
        """Test every non-matching value is one failure and later values are still checked."""
        assert_equal(subject, 1)

        subject.on_next(2)
        subject.on_next(1)
        subject.on_next(3)

        assert len(captured.failures) == 2
        assert all(f.kind == FailureKind.VALUE_MISMATCH for f in captured.failures)
        assert captured.failures[0].message == "assert_equal failed: (2) is not equal to (1)"
        assert captured.failures[1].message == "assert_equal failed: (3) is not equal to (1)"

    def test_message_appended(self, captured, subject):
        """Test a custom message is appended to the failure."""
        assert_equal(subject, "a", message="wrong letter")

        subject.on_next("b")

        assert captured.failures[0].message.endswith(" - wrong letter")

    def test_not_equal(self, captured, subject):
        """Test assert_not_equal flags equal values."""
        assert_not_equal(subject, 0)

        subject.on_next(1)
        subject.on_next(0)

        assert len(captured.failures) == 1
        assert captured.failures[0].message == "assert_not_equal failed: (0) is equal to (0)"

    def test_cold_observable(self, captured):
        """Test synchronous cold observables are checked during subscribe."""
        assert_equal(reactivex.of(1, 1, 1), 1)

        assert captured.failures == []

    def test_failed_stream_is_unexpected_failure(self, captured, network_error):
        """Test a value assertion on a failing stream reports the error."""
        assert_equal(reactivex.throw(network_error), 1)

        assert len(captured.failures) == 1
        assert captured.failures[0].kind == FailureKind.UNEXPECTED_FAILURE


# ============================================================================
# ORDERING TESTS
# ============================================================================


@pytest.mark.unit
class TestOrdering:
    """Test ordering assertions."""

    def test_greater_than_passes(self, captured):
        """Test 1, 2, Finished asserted > 0 reports nothing."""
        assert_greater_than(reactivex.of(1, 2), 0)

        assert captured.failures == []

    def test_greater_than_fails_once(self, captured):
        """Test 1, 2, Finished asserted > 1 reports exactly one failure for 1."""
        assert_greater_than(reactivex.of(1, 2), 1)

        assert len(captured.failures) == 1
        assert captured.failures[0].message == (
            "assert_greater_than failed: (1) is not greater than (1)"
        )

    def test_greater_than_or_equal(self, captured, subject):
        """Test >= accepts the boundary."""
        assert_greater_than_or_equal(subject, 5)

        subject.on_next(5)
        subject.on_next(6)
        subject.on_next(4)

        assert len(captured.failures) == 1
        assert "(4) is not greater than or equal to (5)" in captured.failures[0].message

    def test_less_than(self, captured, subject):
        """Test < rejects the boundary."""
        assert_less_than(subject, 6)

        subject.on_next(5)
        subject.on_next(6)

        assert len(captured.failures) == 1

    def test_less_than_or_equal(self, captured, subject):
        """Test <= accepts the boundary."""
        assert_less_than_or_equal(subject, 5)

        subject.on_next(5)
        subject.on_next(4)

        assert captured.failures == []

    @pytest.mark.parametrize(
        "comparison, values, failures",
        [
            (Comparison.EQUAL, [1, 2], 1),
            (Comparison.GREATER_THAN, [2, 3], 0),
            (Comparison.LESS_THAN, [0, 1, 2], 2),
        ],
    )
    def test_assert_compare_by_kind(self, captured, comparison, values, failures):
        """Test assert_compare applies the requested comparison."""
        assert_compare(reactivex.from_iterable(values), comparison, 1)

        assert len(captured.failures) == failures

    def test_uncomparable_value_reported(self, captured, subject):
        """Test values that cannot be ordered are reported, not raised."""
        assert_greater_than(subject, 0)

        subject.on_next(None)

        assert len(captured.failures) == 1
        assert "TypeError" in captured.failures[0].message


# ============================================================================
# NONE TESTS
# ============================================================================


@pytest.mark.unit
class TestNil:
    """Test None assertions."""

    def test_nil_passes_for_none(self, captured, subject):
        assert_nil(subject)

        subject.on_next(None)
        subject.on_completed()

        assert captured.failures == []

    def test_nil_fails_for_value(self, captured, subject):
        assert_nil(subject)

        subject.on_next(0)

        assert captured.failures[0].message == "assert_nil failed: (0) is not None"

    def test_not_nil_fails_once_for_none(self, captured):
        """Test None then Finished asserted not-None reports exactly one failure."""
        assert_not_nil(reactivex.of(None))

        assert len(captured.failures) == 1
        assert captured.failures[0].message == "assert_not_nil failed: value is None"

    def test_not_nil_accepts_falsy_values(self, captured):
        """Test falsy values that are not None pass."""
        assert_not_nil(reactivex.of(0, "", [], False))

        assert captured.failures == []


# ============================================================================
# PREDICATE TESTS
# ============================================================================


@pytest.mark.unit
class TestPredicates:
    """Test predicate assertions."""

    def test_predicate(self, captured):
        assert_predicate(reactivex.of(2, 4, 5), lambda v: v % 2 == 0)

        assert len(captured.failures) == 1
        assert "predicate is not true for (5)" in captured.failures[0].message

    def test_true(self, captured):
        assert_true(reactivex.of("a", "b"), str.islower)

        assert captured.failures == []

    def test_false(self, captured):
        assert_false(reactivex.of("a", "B"), str.islower)

        assert len(captured.failures) == 1
        assert captured.failures[0].assertion == "assert_false"
        assert "predicate is not false for ('a')" in captured.failures[0].message

    def test_raising_predicate_reported(self, captured):
        """Test a predicate raising is a failure and later values are checked."""
        assert_true(reactivex.of(1, 0, 2), lambda v: 1 / v > 0)

        assert len(captured.failures) == 1
        assert "ZeroDivisionError" in captured.failures[0].message


# ============================================================================
# NO FAILURE TESTS
# ============================================================================


@pytest.mark.unit
class TestNoFailure:
    """Test assert_no_failure."""

    def test_values_then_finished_pass(self, captured):
        assert_no_failure(reactivex.of(1, None, "x"))

        assert captured.failures == []

    def test_error_reported(self, captured, network_error):
        assert_no_failure(reactivex.throw(network_error))

        assert len(captured.failures) == 1
        assert captured.failures[0].kind == FailureKind.UNEXPECTED_FAILURE


# ============================================================================
# FAILURE ASSERTION TESTS
# ============================================================================


@pytest.mark.unit
class TestAssertFails:
    """Test assert_fails."""

    def test_finished_reports_missing_failure_once(self, captured):
        """Test a clean finish is exactly one missing-failure."""
        assert_fails(reactivex.of(1, 2))

        assert len(captured.failures) == 1
        assert captured.failures[0].kind == FailureKind.MISSING_FAILURE

    @pytest.mark.parametrize(
        "error", [NetworkError("x"), ValueError(), ApiError(500), KeyError("k")]
    )
    def test_any_error_passes(self, captured, error):
        """Test any error satisfies assert_fails."""
        assert_fails(reactivex.throw(error))

        assert captured.failures == []

    def test_values_before_error_ignored(self, captured, subject, network_error):
        """Test values before the failure are not an error."""
        assert_fails(subject)

        subject.on_next(1)
        subject.on_error(network_error)

        assert captured.failures == []


@pytest.mark.unit
class TestAssertFailsWithType:
    """Test assert_fails_with_type."""

    def test_matching_type_passes_and_completes(self, captured, network_error):
        """Test NetworkError asserted as NetworkError passes and completes once."""
        on_complete = MagicMock()

        assert_fails_with_type(
            reactivex.throw(network_error), NetworkError, on_complete=on_complete
        )

        assert captured.failures == []
        on_complete.assert_called_once()

    def test_subtype_passes(self, captured):
        assert_fails_with_type(reactivex.throw(NetworkTimeoutError()), NetworkError)

        assert captured.failures == []

    def test_tuple_of_types(self, captured):
        assert_fails_with_type(reactivex.throw(KeyError("k")), (ValueError, KeyError))

        assert captured.failures == []

    @pytest.mark.parametrize("error", [ValueError("v"), ApiError(404), RuntimeError()])
    def test_mismatch_reported_once_with_type_names(self, captured, error):
        """Test any other error type is exactly one type mismatch naming both types."""
        assert_fails_with_type(reactivex.throw(error), NetworkError)

        assert len(captured.failures) == 1
        failure = captured.failures[0]
        assert failure.kind == FailureKind.TYPE_MISMATCH
        assert type(error).__qualname__ in failure.message
        assert "is unable to be cast as NetworkError" in failure.message

    def test_finished_reports_missing_failure(self, captured):
        assert_fails_with_type(reactivex.empty(), NetworkError)

        assert len(captured.failures) == 1
        assert captured.failures[0].kind == FailureKind.MISSING_FAILURE


@pytest.mark.unit
class TestAssertFailsWithEqual:
    """Test assert_fails_with_equal."""

    def test_equal_dataclass_error_passes(self, captured):
        assert_fails_with_equal(reactivex.throw(ApiError(500, "down")), ApiError(500, "down"))

        assert captured.failures == []

    def test_equal_plain_error_passes(self, captured):
        """Test plain exceptions compare by class and args."""
        assert_fails_with_equal(reactivex.throw(ValueError("bad")), ValueError("bad"))

        assert captured.failures == []

    def test_different_value_reports_equality_mismatch(self, captured):
        """Test same-type errors that differ render both values."""
        assert_fails_with_equal(reactivex.throw(ApiError(500)), ApiError(503))

        assert len(captured.failures) == 1
        failure = captured.failures[0]
        assert failure.kind == FailureKind.EQUALITY_MISMATCH
        assert "actual error ApiError(code=500, reason='')" in failure.message
        assert "expected error ApiError(code=503, reason='')" in failure.message

    def test_plain_error_args_differ(self, captured):
        assert_fails_with_equal(reactivex.throw(ValueError("a")), ValueError("b"))

        assert captured.failures[0].kind == FailureKind.EQUALITY_MISMATCH

    def test_other_type_reports_type_mismatch(self, captured):
        assert_fails_with_equal(reactivex.throw(KeyError("bad")), ValueError("bad"))

        assert len(captured.failures) == 1
        assert captured.failures[0].kind == FailureKind.TYPE_MISMATCH
        assert "is unable to be cast as ValueError" in captured.failures[0].message

    def test_finished_reports_missing_failure(self, captured, subject):
        assert_fails_with_equal(subject, ApiError(1))

        subject.on_next("ignored")
        subject.on_completed()

        assert len(captured.failures) == 1
        assert captured.failures[0].kind == FailureKind.MISSING_FAILURE


# ============================================================================
# HOOK TESTS
# ============================================================================


@pytest.mark.unit
class TestHooks:
    """Test expectation, completion, reporter and location hooks."""

    def test_expectation_fulfilled_on_completion(self, captured, subject):
        done = Expectation("finished")
        assert_equal(subject, 1, expectation=done)

        subject.on_next(1)
        assert done.is_fulfilled is False

        subject.on_completed()
        assert done.is_fulfilled is True

    def test_expectation_and_callback_both_fire(self, captured, network_error):
        done = Expectation("failed")
        on_complete = MagicMock()

        assert_fails(reactivex.throw(network_error), expectation=done, on_complete=on_complete)

        assert done.fulfillment_count == 1
        on_complete.assert_called_once()

    def test_explicit_reporter(self, captured):
        """Test an explicit reporter receives failures instead of the active one."""
        reporter = RecordingReporter(log_failures=False)

        assert_equal(reactivex.of(2), 1, reporter=reporter)

        assert len(reporter.failures) == 1
        assert captured.failures == []

    def test_explicit_location(self, captured):
        location = SourceLocation(file="streams.py", line=7)

        assert_fails(reactivex.empty(), location=location)

        assert captured.failures[0].location == location

    def test_location_is_call_site(self, captured):
        """Test failures point at the test line that made the assertion."""
        assert_equal(reactivex.of(2), 1)

        location = captured.failures[0].location
        assert location.file.endswith("test_assertions.py")

    def test_assert_stream_with_custom_mode(self, captured, subject):
        received = []
        handle = assert_stream(subject, OnValue(received.append), name="collect")

        subject.on_next(1)
        subject.on_next(2)

        assert received == [1, 2]
        assert isinstance(handle, AssertionSubscriber)
        assert handle.name == "collect"


# ============================================================================
# HANDLE TESTS
# ============================================================================


@pytest.mark.unit
class TestHandles:
    """Test the returned cancellable handles."""

    def test_cancel_stops_checking(self, captured, subject):
        handle = assert_equal(subject, 1)

        subject.on_next(2)
        handle.cancel()
        subject.on_next(3)

        assert len(captured.failures) == 1
        assert handle.is_cancelled is True

    def test_cancel_does_not_report_missing_failure(self, captured, subject):
        handle = assert_fails(subject)

        handle.cancel()
        subject.on_completed()

        assert captured.failures == []

    def test_dispose_bag(self, captured, subject):
        bag = CompositeDisposable()
        assert_equal(subject, 1).disposed_by(bag)
        assert_fails(subject).disposed_by(bag)

        bag.dispose()
        subject.on_next(2)
        subject.on_completed()

        assert captured.failures == []

    def test_cancel_after_completion_is_harmless(self, captured):
        handle = assert_equal(reactivex.of(1), 1)

        handle.cancel()
        handle.cancel()

        assert handle.is_terminated is True
        assert captured.failures == []


# ============================================================================
# FLUENT WRAPPER TESTS
# ============================================================================


@pytest.mark.unit
class TestFluent:
    """Test assert_that / StreamAssert."""

    def test_assert_that_returns_stream_assert(self, subject):
        assert isinstance(assert_that(subject), StreamAssert)

    @pytest.mark.parametrize(
        "build, failures",
        [
            (lambda a: a.equals(1), 1),
            (lambda a: a.not_equals(1), 1),
            (lambda a: a.greater_than(1), 1),
            (lambda a: a.greater_than_or_equal(1), 0),
            (lambda a: a.less_than(2), 1),
            (lambda a: a.less_than_or_equal(2), 0),
            (lambda a: a.compares(Comparison.EQUAL, 2), 1),
            (lambda a: a.is_nil(), 2),
            (lambda a: a.is_not_nil(), 0),
            (lambda a: a.satisfies(lambda v: v > 0), 0),
            (lambda a: a.is_true(lambda v: v == 1), 1),
            (lambda a: a.is_false(lambda v: v == 1), 1),
            (lambda a: a.no_failure(), 0),
            (lambda a: a.fails(), 1),
            (lambda a: a.fails_with_type(NetworkError), 1),
            (lambda a: a.fails_with_equal(NetworkError()), 1),
        ],
    )
    def test_fluent_methods_on_values(self, captured, build, failures):
        """Test each fluent method against the stream 1, 2, Finished."""
        handle = build(assert_that(reactivex.of(1, 2)))

        assert isinstance(handle, AssertionSubscriber)
        assert len(captured.failures) == failures

    def test_fluent_failure(self, captured, network_error):
        assert_that(reactivex.throw(network_error)).fails_with_type(NetworkError)

        assert captured.failures == []

    def test_fluent_location_is_call_site(self, captured):
        assert_that(reactivex.of(2)).equals(1)

        assert captured.failures[0].location.file.endswith("test_assertions.py")

    def test_fluent_matches(self, captured, subject):
        received = []
        assert_that(subject).matches(OnValue(received.append))

        subject.on_next("x")

        assert received == ["x"]
