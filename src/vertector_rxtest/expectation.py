"""Expectations for asynchronous stream tests.

An Expectation is fulfilled by an assertion subscriber when its stream
terminates. Tests wait on it, either blocking (streams driven by reactivex
scheduler threads) or awaiting (streams driven by an asyncio loop).
"""

import asyncio
import logging
import threading
import time
from typing import Iterable, Optional

from vertector_rxtest.config import get_config
from vertector_rxtest.metrics import expectation_timeouts_total, expectation_wait_seconds
from vertector_rxtest.reporting import (
    FailureKind,
    FailureReporter,
    RxTestError,
    SourceLocation,
    caller_location,
    report_failure,
)

logger = logging.getLogger(__name__)


class ExpectationError(RxTestError):
    """Raised when an expectation is fulfilled more often than allowed."""

    pass


class Expectation:
    """A single fulfil/wait synchronisation point.

    Example:
        >>> done = Expectation("stream finished")
        >>> assert_equal(reactivex.timer(0.01), 0, expectation=done)
        >>> done.wait(timeout=1.0)
        True
    """

    def __init__(
        self,
        description: str = "",
        expected_fulfillment_count: int = 1,
        assert_for_over_fulfill: bool = True,
    ) -> None:
        """Initialize expectation.

        Args:
            description: Name used in timeout failures
            expected_fulfillment_count: Number of fulfil() calls required
            assert_for_over_fulfill: Raise ExpectationError on extra fulfil() calls
        """
        if expected_fulfillment_count < 1:
            raise ValueError("expected_fulfillment_count must be at least 1")

        self.description = description
        self.expected_fulfillment_count = expected_fulfillment_count
        self.assert_for_over_fulfill = assert_for_over_fulfill

        self._count = 0
        self._lock = threading.Lock()
        self._event = threading.Event()

    def __repr__(self) -> str:
        return (
            f"Expectation({self.description!r}, "
            f"{self._count}/{self.expected_fulfillment_count})"
        )

    def fulfill(self) -> None:
        """Record one fulfilment.

        Raises:
            ExpectationError: If over-fulfilled and assert_for_over_fulfill is set
        """
        with self._lock:
            self._count += 1
            count = self._count

        if count == self.expected_fulfillment_count:
            self._event.set()
            logger.debug(f"Expectation fulfilled: {self.description!r}")
        elif count > self.expected_fulfillment_count and self.assert_for_over_fulfill:
            raise ExpectationError(
                f"Expectation {self.description!r} fulfilled {count} times, "
                f"expected {self.expected_fulfillment_count}"
            )

    @property
    def fulfillment_count(self) -> int:
        with self._lock:
            return self._count

    @property
    def is_fulfilled(self) -> bool:
        return self._event.is_set()

    def wait(self, timeout: Optional[float] = None) -> bool:
        """Block until fulfilled.

        Args:
            timeout: Seconds to wait (defaults to config default_timeout_seconds)

        Returns:
            True if fulfilled before the timeout
        """
        if timeout is None:
            timeout = get_config().default_timeout_seconds
        return self._event.wait(timeout)

    async def wait_async(self, timeout: Optional[float] = None) -> bool:
        """Await fulfilment without blocking the event loop.

        Args:
            timeout: Seconds to wait (defaults to config default_timeout_seconds)

        Returns:
            True if fulfilled before the timeout
        """
        config = get_config()
        if timeout is None:
            timeout = config.default_timeout_seconds

        deadline = time.monotonic() + timeout
        while not self._event.is_set():
            if time.monotonic() >= deadline:
                return False
            await asyncio.sleep(config.poll_interval_seconds)
        return True


def _report_timeout(
    unfulfilled: list[Expectation],
    timeout: float,
    location: SourceLocation,
    reporter: Optional[FailureReporter],
) -> None:
    expectation_timeouts_total.inc()
    descriptions = ", ".join(repr(e.description) for e in unfulfilled)

    logger.warning(
        f"Expectation wait timed out after {timeout}s",
        extra={"unfulfilled": [e.description for e in unfulfilled], "timeout": timeout},
    )

    report_failure(
        kind=FailureKind.TIMEOUT,
        message=(
            f"Asynchronous wait failed: exceeded timeout of {timeout} seconds, "
            f"with unfulfilled expectations: {descriptions}"
        ),
        location=location,
        assertion="wait_for_expectations",
        reporter=reporter,
    )


def wait_for_expectations(
    expectations: Iterable[Expectation],
    timeout: Optional[float] = None,
    reporter: Optional[FailureReporter] = None,
    location: Optional[SourceLocation] = None,
) -> bool:
    """Block until every expectation is fulfilled or the timeout elapses.

    A timeout is reported as a single failure naming the unfulfilled
    expectations.

    Args:
        expectations: Expectations to wait on
        timeout: Total seconds to wait (defaults to config default_timeout_seconds)
        reporter: Failure reporter (defaults to the active one)
        location: Call site for the timeout failure (defaults to the caller)

    Returns:
        True if all expectations were fulfilled in time
    """
    expectations = list(expectations)
    location = location or caller_location()
    if timeout is None:
        timeout = get_config().default_timeout_seconds

    with expectation_wait_seconds.time():
        deadline = time.monotonic() + timeout
        for expectation in expectations:
            expectation.wait(max(deadline - time.monotonic(), 0.0))

    unfulfilled = [e for e in expectations if not e.is_fulfilled]
    if unfulfilled:
        _report_timeout(unfulfilled, timeout, location, reporter)
        return False
    return True


async def wait_for_expectations_async(
    expectations: Iterable[Expectation],
    timeout: Optional[float] = None,
    reporter: Optional[FailureReporter] = None,
    location: Optional[SourceLocation] = None,
) -> bool:
    """Await every expectation, reporting a timeout failure if any is left.

    Args:
        expectations: Expectations to wait on
        timeout: Total seconds to wait (defaults to config default_timeout_seconds)
        reporter: Failure reporter (defaults to the active one)
        location: Call site for the timeout failure (defaults to the caller)

    Returns:
        True if all expectations were fulfilled in time
    """
    expectations = list(expectations)
    location = location or caller_location()
    if timeout is None:
        timeout = get_config().default_timeout_seconds

    with expectation_wait_seconds.time():
        deadline = time.monotonic() + timeout
        for expectation in expectations:
            await expectation.wait_async(max(deadline - time.monotonic(), 0.0))

    unfulfilled = [e for e in expectations if not e.is_fulfilled]
    if unfulfilled:
        _report_timeout(unfulfilled, timeout, location, reporter)
        return False
    return True
