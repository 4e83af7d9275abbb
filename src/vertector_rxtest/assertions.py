"""Fluent assertion entry points for reactivex streams.

Each entry point builds an assertion mode for one kind of check, subscribes
an AssertionSubscriber to the source and returns it as the cancellable
handle. The caller keeps the handle and disposes it, typically through a
dispose bag.

Example:
    >>> subject = Subject()
    >>> assert_greater_than(subject, 0).disposed_by(dispose_bag)
    >>> subject.on_next(1)
    >>> subject.on_completed()
"""

import logging
from dataclasses import dataclass
from typing import Any, Callable, Optional, Type, Union

from reactivex import Observable

from vertector_rxtest.checks import (
    Comparison,
    check_compare,
    check_false,
    check_nil,
    check_not_nil,
    check_true,
    errors_equal,
    render,
    type_names,
)
from vertector_rxtest.expectation import Expectation
from vertector_rxtest.metrics import checks_total
from vertector_rxtest.reporting import (
    FailureKind,
    FailureReporter,
    SourceLocation,
    caller_location,
    current_reporter,
    report_failure,
)
from vertector_rxtest.subscriber import (
    AssertionMode,
    AssertionSubscriber,
    DisposableSubscription,
    OnFailure,
    OnValue,
)

logger = logging.getLogger(__name__)

ErrorType = Union[Type[BaseException], tuple[Type[BaseException], ...]]

_COMPARISON_NAMES = {
    Comparison.EQUAL: "assert_equal",
    Comparison.NOT_EQUAL: "assert_not_equal",
    Comparison.GREATER_THAN: "assert_greater_than",
    Comparison.GREATER_THAN_OR_EQUAL: "assert_greater_than_or_equal",
    Comparison.LESS_THAN: "assert_less_than",
    Comparison.LESS_THAN_OR_EQUAL: "assert_less_than_or_equal",
}


@dataclass(frozen=True)
class _CheckContext:
    """Where and how a check reports its verdicts."""

    name: str
    location: SourceLocation
    reporter: FailureReporter
    message: Optional[str] = None

    def verify(self, detail: Optional[str], kind: FailureKind = FailureKind.VALUE_MISMATCH) -> None:
        if detail is None:
            checks_total.labels(assertion=self.name, outcome="pass").inc()
            return

        checks_total.labels(assertion=self.name, outcome="fail").inc()
        text = f"{self.name} failed: {detail}"
        if self.message:
            text = f"{text} - {self.message}"

        report_failure(
            kind=kind,
            message=text,
            location=self.location,
            assertion=self.name,
            reporter=self.reporter,
        )


def _context(
    name: str,
    message: Optional[str],
    reporter: Optional[FailureReporter],
    location: Optional[SourceLocation],
) -> _CheckContext:
    return _CheckContext(
        name=name,
        location=location or caller_location(),
        reporter=reporter if reporter is not None else current_reporter(),
        message=message,
    )


def _completion(
    expectation: Optional[Expectation],
    on_complete: Optional[Callable[[], None]],
) -> Optional[Callable[[], None]]:
    if expectation is None and on_complete is None:
        return None

    def complete() -> None:
        if expectation is not None:
            expectation.fulfill()
        if on_complete is not None:
            on_complete()

    return complete


def _subscribe(
    source: Observable,
    mode: AssertionMode,
    ctx: _CheckContext,
    expectation: Optional[Expectation],
    on_complete: Optional[Callable[[], None]],
) -> AssertionSubscriber:
    subscriber: AssertionSubscriber = AssertionSubscriber(
        mode,
        on_complete=_completion(expectation, on_complete),
        location=ctx.location,
        reporter=ctx.reporter,
        name=ctx.name,
    )

    logger.debug(
        f"Subscribing {ctx.name}",
        extra={"assertion": ctx.name, "location": str(ctx.location)},
    )

    disposable = source.subscribe(subscriber)
    subscriber.on_subscribe(DisposableSubscription(disposable))

    return subscriber


# ============================================================================
# GENERIC ENTRY POINT
# ============================================================================


def assert_stream(
    source: Observable,
    mode: AssertionMode,
    *,
    expectation: Optional[Expectation] = None,
    on_complete: Optional[Callable[[], None]] = None,
    reporter: Optional[FailureReporter] = None,
    location: Optional[SourceLocation] = None,
    name: str = "assert_stream",
) -> AssertionSubscriber:
    """Subscribe an assertion with a caller-built mode.

    Args:
        source: Stream to check
        mode: OnValue or OnFailure check
        expectation: Fulfilled once the stream terminates
        on_complete: Called once the stream terminates
        reporter: Failure reporter (defaults to the active one)
        location: Call site failures point at (defaults to the caller)
        name: Assertion name used in failures and metrics

    Returns:
        The subscriber, which is also the cancellable handle

    Example:
        >>> assert_stream(subject, OnValue(lambda v: print(v)))
    """
    ctx = _context(name, None, reporter, location)
    return _subscribe(source, mode, ctx, expectation, on_complete)


# ============================================================================
# VALUE ENTRY POINTS
# ============================================================================


def assert_compare(
    source: Observable,
    comparison: Comparison,
    value: Any,
    *,
    message: Optional[str] = None,
    expectation: Optional[Expectation] = None,
    on_complete: Optional[Callable[[], None]] = None,
    reporter: Optional[FailureReporter] = None,
    location: Optional[SourceLocation] = None,
) -> AssertionSubscriber:
    """Assert every published value compares against `value`.

    Args:
        source: Stream to check
        comparison: Equality or ordering to apply as `received <op> value`
        value: Value to compare received values against
        message: Appended to failure messages
        expectation: Fulfilled once the stream terminates; required for
            asynchronous streams, otherwise the test may pass before any
            value was checked
        on_complete: Called once the stream terminates
        reporter: Failure reporter (defaults to the active one)
        location: Call site failures point at (defaults to the caller)

    Returns:
        Cancellable assertion handle
    """
    ctx = _context(_COMPARISON_NAMES[comparison], message, reporter, location)

    def check(received: Any) -> None:
        ctx.verify(check_compare(received, comparison, value))

    return _subscribe(source, OnValue(check), ctx, expectation, on_complete)


def assert_equal(source: Observable, value: Any, **kwargs: Any) -> AssertionSubscriber:
    """Assert that published values are equal to an expected value."""
    return assert_compare(source, Comparison.EQUAL, value, **kwargs)


def assert_not_equal(source: Observable, value: Any, **kwargs: Any) -> AssertionSubscriber:
    return assert_compare(source, Comparison.NOT_EQUAL, value, **kwargs)


def assert_greater_than(source: Observable, value: Any, **kwargs: Any) -> AssertionSubscriber:
    """Assert that published values are greater than the specified value."""
    return assert_compare(source, Comparison.GREATER_THAN, value, **kwargs)


def assert_greater_than_or_equal(
    source: Observable, value: Any, **kwargs: Any
) -> AssertionSubscriber:
    return assert_compare(source, Comparison.GREATER_THAN_OR_EQUAL, value, **kwargs)


def assert_less_than(source: Observable, value: Any, **kwargs: Any) -> AssertionSubscriber:
    """Assert that published values are less than the specified value."""
    return assert_compare(source, Comparison.LESS_THAN, value, **kwargs)


def assert_less_than_or_equal(
    source: Observable, value: Any, **kwargs: Any
) -> AssertionSubscriber:
    return assert_compare(source, Comparison.LESS_THAN_OR_EQUAL, value, **kwargs)


def assert_nil(
    source: Observable,
    *,
    message: Optional[str] = None,
    expectation: Optional[Expectation] = None,
    on_complete: Optional[Callable[[], None]] = None,
    reporter: Optional[FailureReporter] = None,
    location: Optional[SourceLocation] = None,
) -> AssertionSubscriber:
    """Assert published values are None."""
    ctx = _context("assert_nil", message, reporter, location)

    def check(received: Any) -> None:
        ctx.verify(check_nil(received))

    return _subscribe(source, OnValue(check), ctx, expectation, on_complete)


def assert_not_nil(
    source: Observable,
    *,
    message: Optional[str] = None,
    expectation: Optional[Expectation] = None,
    on_complete: Optional[Callable[[], None]] = None,
    reporter: Optional[FailureReporter] = None,
    location: Optional[SourceLocation] = None,
) -> AssertionSubscriber:
    """Assert published values are not None."""
    ctx = _context("assert_not_nil", message, reporter, location)

    def check(received: Any) -> None:
        ctx.verify(check_not_nil(received))

    return _subscribe(source, OnValue(check), ctx, expectation, on_complete)


def _assert_predicate(
    name: str,
    expect_true: bool,
    source: Observable,
    predicate: Callable[[Any], Any],
    message: Optional[str],
    expectation: Optional[Expectation],
    on_complete: Optional[Callable[[], None]],
    reporter: Optional[FailureReporter],
    location: Optional[SourceLocation],
) -> AssertionSubscriber:
    ctx = _context(name, message, reporter, location)
    verdict = check_true if expect_true else check_false

    def check(received: Any) -> None:
        # A raising predicate surfaces through the subscriber as a failed check
        ctx.verify(verdict(predicate(received), received))

    return _subscribe(source, OnValue(check), ctx, expectation, on_complete)


def assert_predicate(
    source: Observable,
    predicate: Callable[[Any], Any],
    *,
    message: Optional[str] = None,
    expectation: Optional[Expectation] = None,
    on_complete: Optional[Callable[[], None]] = None,
    reporter: Optional[FailureReporter] = None,
    location: Optional[SourceLocation] = None,
) -> AssertionSubscriber:
    """Assert a predicate holds for every published value.

    Args:
        source: Stream to check
        predicate: Evaluated for each published value
        message: Appended to failure messages
        expectation: Fulfilled once the stream terminates
        on_complete: Called once the stream terminates
        reporter: Failure reporter (defaults to the active one)
        location: Call site failures point at (defaults to the caller)

    Returns:
        Cancellable assertion handle
    """
    return _assert_predicate(
        "assert_predicate", True, source, predicate,
        message, expectation, on_complete, reporter, location,
    )


def assert_true(
    source: Observable,
    predicate: Callable[[Any], Any],
    *,
    message: Optional[str] = None,
    expectation: Optional[Expectation] = None,
    on_complete: Optional[Callable[[], None]] = None,
    reporter: Optional[FailureReporter] = None,
    location: Optional[SourceLocation] = None,
) -> AssertionSubscriber:
    """Assert that an expression is true for every published value."""
    return _assert_predicate(
        "assert_true", True, source, predicate,
        message, expectation, on_complete, reporter, location,
    )


def assert_false(
    source: Observable,
    predicate: Callable[[Any], Any],
    *,
    message: Optional[str] = None,
    expectation: Optional[Expectation] = None,
    on_complete: Optional[Callable[[], None]] = None,
    reporter: Optional[FailureReporter] = None,
    location: Optional[SourceLocation] = None,
) -> AssertionSubscriber:
    """Assert that an expression is false for every published value."""
    return _assert_predicate(
        "assert_false", False, source, predicate,
        message, expectation, on_complete, reporter, location,
    )


def assert_no_failure(
    source: Observable,
    *,
    expectation: Optional[Expectation] = None,
    on_complete: Optional[Callable[[], None]] = None,
    reporter: Optional[FailureReporter] = None,
    location: Optional[SourceLocation] = None,
) -> AssertionSubscriber:
    """Assert a stream terminates without an error; values are not checked."""
    ctx = _context("assert_no_failure", None, reporter, location)

    def check(received: Any) -> None:
        ctx.verify(None)

    return _subscribe(source, OnValue(check), ctx, expectation, on_complete)


# ============================================================================
# FAILURE ENTRY POINTS
# ============================================================================


def assert_fails(
    source: Observable,
    *,
    expectation: Optional[Expectation] = None,
    on_complete: Optional[Callable[[], None]] = None,
    reporter: Optional[FailureReporter] = None,
    location: Optional[SourceLocation] = None,
) -> AssertionSubscriber:
    """Assert that a stream fails with any error."""
    ctx = _context("assert_fails", None, reporter, location)

    def check(error: BaseException) -> None:
        ctx.verify(None)

    return _subscribe(source, OnFailure(check), ctx, expectation, on_complete)


def assert_fails_with_type(
    source: Observable,
    error_type: ErrorType,
    *,
    message: Optional[str] = None,
    expectation: Optional[Expectation] = None,
    on_complete: Optional[Callable[[], None]] = None,
    reporter: Optional[FailureReporter] = None,
    location: Optional[SourceLocation] = None,
) -> AssertionSubscriber:
    """Assert that a stream fails with an error of a given type.

    Subclasses of `error_type` pass; a tuple of types accepts any of them.

    Args:
        source: Stream to check
        error_type: Expected error type or tuple of types
        message: Appended to failure messages
        expectation: Fulfilled once the stream terminates
        on_complete: Called once the stream terminates
        reporter: Failure reporter (defaults to the active one)
        location: Call site failures point at (defaults to the caller)

    Returns:
        Cancellable assertion handle
    """
    ctx = _context("assert_fails_with_type", message, reporter, location)

    def check(error: BaseException) -> None:
        if isinstance(error, error_type):
            ctx.verify(None)
            return
        ctx.verify(
            f"{render(error)} of type {type_names(type(error))} "
            f"is unable to be cast as {type_names(error_type)}",
            FailureKind.TYPE_MISMATCH,
        )

    return _subscribe(source, OnFailure(check), ctx, expectation, on_complete)


def assert_fails_with_equal(
    source: Observable,
    expected: BaseException,
    *,
    message: Optional[str] = None,
    expectation: Optional[Expectation] = None,
    on_complete: Optional[Callable[[], None]] = None,
    reporter: Optional[FailureReporter] = None,
    location: Optional[SourceLocation] = None,
) -> AssertionSubscriber:
    """Assert that a stream fails with an error equal to `expected`.

    The error must be an instance of type(expected) and equal to it by value.

    Args:
        source: Stream to check
        expected: The expected error
        message: Appended to failure messages
        expectation: Fulfilled once the stream terminates
        on_complete: Called once the stream terminates
        reporter: Failure reporter (defaults to the active one)
        location: Call site failures point at (defaults to the caller)

    Returns:
        Cancellable assertion handle
    """
    ctx = _context("assert_fails_with_equal", message, reporter, location)
    expected_type = type(expected)

    def check(error: BaseException) -> None:
        if not isinstance(error, expected_type):
            ctx.verify(
                f"{render(error)} of type {type_names(type(error))} "
                f"is unable to be cast as {type_names(expected_type)}",
                FailureKind.TYPE_MISMATCH,
            )
        elif not errors_equal(error, expected):
            ctx.verify(
                f"actual error {render(error)} is not equal to expected error {render(expected)}",
                FailureKind.EQUALITY_MISMATCH,
            )
        else:
            ctx.verify(None)

    return _subscribe(source, OnFailure(check), ctx, expectation, on_complete)


# ============================================================================
# FLUENT WRAPPER
# ============================================================================


class StreamAssert:
    """Fluent access to the entry points for a single source.

    Example:
        >>> assert_that(subject).greater_than(0).disposed_by(dispose_bag)
        >>> assert_that(failing).fails_with_type(ConnectionError)
    """

    def __init__(self, source: Observable) -> None:
        self.source = source

    def matches(self, mode: AssertionMode, **kwargs: Any) -> AssertionSubscriber:
        return assert_stream(self.source, mode, **kwargs)

    def compares(self, comparison: Comparison, value: Any, **kwargs: Any) -> AssertionSubscriber:
        return assert_compare(self.source, comparison, value, **kwargs)

    def equals(self, value: Any, **kwargs: Any) -> AssertionSubscriber:
        return assert_equal(self.source, value, **kwargs)

    def not_equals(self, value: Any, **kwargs: Any) -> AssertionSubscriber:
        return assert_not_equal(self.source, value, **kwargs)

    def greater_than(self, value: Any, **kwargs: Any) -> AssertionSubscriber:
        return assert_greater_than(self.source, value, **kwargs)

    def greater_than_or_equal(self, value: Any, **kwargs: Any) -> AssertionSubscriber:
        return assert_greater_than_or_equal(self.source, value, **kwargs)

    def less_than(self, value: Any, **kwargs: Any) -> AssertionSubscriber:
        return assert_less_than(self.source, value, **kwargs)

    def less_than_or_equal(self, value: Any, **kwargs: Any) -> AssertionSubscriber:
        return assert_less_than_or_equal(self.source, value, **kwargs)

    def is_nil(self, **kwargs: Any) -> AssertionSubscriber:
        return assert_nil(self.source, **kwargs)

    def is_not_nil(self, **kwargs: Any) -> AssertionSubscriber:
        return assert_not_nil(self.source, **kwargs)

    def satisfies(self, predicate: Callable[[Any], Any], **kwargs: Any) -> AssertionSubscriber:
        return assert_predicate(self.source, predicate, **kwargs)

    def is_true(self, predicate: Callable[[Any], Any], **kwargs: Any) -> AssertionSubscriber:
        return assert_true(self.source, predicate, **kwargs)

    def is_false(self, predicate: Callable[[Any], Any], **kwargs: Any) -> AssertionSubscriber:
        return assert_false(self.source, predicate, **kwargs)

    def no_failure(self, **kwargs: Any) -> AssertionSubscriber:
        return assert_no_failure(self.source, **kwargs)

    def fails(self, **kwargs: Any) -> AssertionSubscriber:
        return assert_fails(self.source, **kwargs)

    def fails_with_type(self, error_type: ErrorType, **kwargs: Any) -> AssertionSubscriber:
        return assert_fails_with_type(self.source, error_type, **kwargs)

    def fails_with_equal(self, expected: BaseException, **kwargs: Any) -> AssertionSubscriber:
        return assert_fails_with_equal(self.source, expected, **kwargs)


def assert_that(source: Observable) -> StreamAssert:
    """Start a fluent assertion on a stream."""
    return StreamAssert(source)
