"""Assertion subscriber for reactivex streams.

Bridges one stream's emissions into reported pass/fail results:
- Requests unlimited demand on subscribe
- Checks values or the terminal error depending on its mode
- Reports unexpected errors and missing errors
- Fulfils an optional completion callback on termination
- Forwards cancellation upstream
"""

import logging
import sys
from dataclasses import dataclass
from typing import Any, Callable, Generic, Optional, Protocol, TypeVar, Union

from reactivex.abc import DisposableBase, ObserverBase
from reactivex.disposable import CompositeDisposable

from vertector_rxtest.checks import render
from vertector_rxtest.metrics import (
    active_subscriptions,
    checks_total,
    stream_terminations_total,
)
from vertector_rxtest.reporting import (
    FailureKind,
    FailureReporter,
    SourceLocation,
    caller_location,
    current_reporter,
    report_failure,
)

logger = logging.getLogger(__name__)

ValueT = TypeVar("ValueT")
ErrorT = TypeVar("ErrorT", bound=BaseException)

# Unbounded demand; assertion subscribers never apply backpressure
UNLIMITED = sys.maxsize


# ============================================================================
# ASSERTION MODES AND OUTCOMES
# ============================================================================


@dataclass(frozen=True)
class OnValue(Generic[ValueT]):
    """Check every received value."""

    check: Callable[[ValueT], None]


@dataclass(frozen=True)
class OnFailure(Generic[ErrorT]):
    """Check the terminal error; values are ignored."""

    check: Callable[[ErrorT], None]


AssertionMode = Union[OnValue, OnFailure]


@dataclass(frozen=True)
class Finished:
    """The stream completed without an error."""


@dataclass(frozen=True)
class Failed(Generic[ErrorT]):
    """The stream terminated with an error."""

    error: ErrorT


Outcome = Union[Finished, Failed]


# ============================================================================
# SUBSCRIPTIONS
# ============================================================================


class Subscription(Protocol):
    """Upstream handle an assertion subscriber receives on subscribe."""

    def request(self, n: int) -> None: ...

    def cancel(self) -> None: ...


class DisposableSubscription:
    """Subscription over a reactivex disposable.

    reactivex pushes without demand, so request() only records the amount.
    """

    def __init__(self, disposable: DisposableBase) -> None:
        self.disposable = disposable
        self.requested = 0

    def request(self, n: int) -> None:
        self.requested = n

    def cancel(self) -> None:
        self.disposable.dispose()


# ============================================================================
# ASSERTION SUBSCRIBER
# ============================================================================


class AssertionSubscriber(ObserverBase[ValueT], DisposableBase, Generic[ValueT, ErrorT]):
    """Observer that checks a stream and reports failures.

    Example:
        >>> subject = Subject()
        >>> subscriber = AssertionSubscriber(OnValue(lambda v: print(v)))
        >>> subscriber.on_subscribe(DisposableSubscription(subject.subscribe(subscriber)))
        >>> subject.on_next(1)
        1
    """

    def __init__(
        self,
        mode: AssertionMode,
        on_complete: Optional[Callable[[], None]] = None,
        location: Optional[SourceLocation] = None,
        reporter: Optional[FailureReporter] = None,
        name: str = "assert_stream",
    ) -> None:
        """Initialize assertion subscriber.

        Args:
            mode: OnValue or OnFailure check
            on_complete: Called once after the terminal outcome was evaluated
            location: Call site failures point at (defaults to the caller)
            reporter: Failure reporter (defaults to the one active now)
            name: Assertion name used in failures and metrics
        """
        self._mode = mode
        self._on_complete = on_complete
        self._location = location or caller_location()
        self._reporter = reporter if reporter is not None else current_reporter()
        self._name = name

        self._subscription: Optional[Subscription] = None
        self._cancelled = False
        self._terminated = False
        self._active = False

    # Properties

    @property
    def mode(self) -> AssertionMode:
        return self._mode

    @property
    def name(self) -> str:
        return self._name

    @property
    def location(self) -> SourceLocation:
        return self._location

    @property
    def is_cancelled(self) -> bool:
        return self._cancelled

    @property
    def is_terminated(self) -> bool:
        return self._terminated

    @property
    def _mode_label(self) -> str:
        return "value" if isinstance(self._mode, OnValue) else "failure"

    # Subscriber protocol

    def on_subscribe(self, subscription: Subscription) -> None:
        """Store the upstream handle and request unlimited demand.

        Args:
            subscription: Upstream subscription handle
        """
        if self._cancelled:
            logger.debug(f"{self._name} already cancelled, cancelling late subscription")
            subscription.cancel()
            return

        self._subscription = subscription
        subscription.request(UNLIMITED)

        # Synchronous sources may already have terminated inside subscribe()
        if not self._terminated:
            self._active = True
            active_subscriptions.inc()

        logger.debug(
            f"{self._name} subscribed",
            extra={"assertion": self._name, "location": str(self._location)},
        )

    def on_next(self, value: ValueT) -> int:
        """Check a value in OnValue mode; ignore it in OnFailure mode.

        Returns:
            UNLIMITED, demand is never reduced
        """
        if isinstance(self._mode, OnValue):
            self._run_check(self._mode.check, value)
        return UNLIMITED

    def on_error(self, error: Exception) -> None:
        self.receive_completion(Failed(error))

    def on_completed(self) -> None:
        self.receive_completion(Finished())

    def receive_completion(self, outcome: Outcome) -> None:
        """Evaluate the terminal outcome, then run the completion callback.

        Args:
            outcome: Finished or Failed(error)
        """
        self._terminated = True
        self._release()

        try:
            if isinstance(outcome, Failed):
                stream_terminations_total.labels(mode=self._mode_label, outcome="failed").inc()

                if isinstance(self._mode, OnValue):
                    self._report(
                        FailureKind.UNEXPECTED_FAILURE,
                        f"Stream failed with {render(outcome.error)} when only values were expected",
                    )
                else:
                    self._run_check(self._mode.check, outcome.error)

            else:
                stream_terminations_total.labels(mode=self._mode_label, outcome="finished").inc()

                if isinstance(self._mode, OnFailure):
                    self._report(
                        FailureKind.MISSING_FAILURE,
                        "Stream completed without producing the expected error",
                    )
        finally:
            if self._on_complete is not None:
                self._run_callback(self._on_complete)

    # Cancellation

    def cancel(self) -> None:
        """Cancel the upstream subscription. Idempotent."""
        if self._cancelled:
            return

        self._cancelled = True
        self._release()

        if self._subscription is not None:
            self._subscription.cancel()
            logger.debug(f"{self._name} cancelled", extra={"assertion": self._name})

    def dispose(self) -> None:
        self.cancel()

    def disposed_by(self, bag: CompositeDisposable) -> "AssertionSubscriber[ValueT, ErrorT]":
        """Add this subscriber to a dispose bag.

        Args:
            bag: CompositeDisposable disposed at test teardown

        Returns:
            self, for chaining
        """
        bag.add(self)
        return self

    # Internals

    def _release(self) -> None:
        # Leaves the active gauge exactly once, on terminal outcome or cancel
        if self._active:
            self._active = False
            active_subscriptions.dec()

    def _run_check(self, check: Callable[[Any], None], argument: Any) -> None:
        try:
            check(argument)
        except Exception as e:
            logger.debug(f"{self._name} check raised {type(e).__name__}", exc_info=True)
            checks_total.labels(assertion=self._name, outcome="fail").inc()
            self._report(
                FailureKind.CHECK_ERROR,
                f"{self._mode_label} check raised {type(e).__name__}: {e}",
            )

    def _run_callback(self, callback: Callable[[], None]) -> None:
        # Raising here would stop a Subject from notifying its other observers
        try:
            callback()
        except Exception as e:
            logger.debug(f"{self._name} completion callback raised", exc_info=True)
            self._report(
                FailureKind.CHECK_ERROR,
                f"completion callback raised {type(e).__name__}: {e}",
            )

    def _report(self, kind: FailureKind, message: str) -> None:
        report_failure(
            kind=kind,
            message=message,
            location=self._location,
            assertion=self._name,
            reporter=self._reporter,
        )
