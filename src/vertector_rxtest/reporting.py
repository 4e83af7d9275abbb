"""Failure reporting for stream assertions.

Assertion subscribers never raise into the stream runtime. Every mismatch
is turned into an AssertionFailure and handed to a FailureReporter, which
the pytest plugin installs per test and inspects once the test body has run.
"""

import contextlib
import inspect
import logging
import threading
from contextvars import ContextVar, Token
from datetime import datetime, timezone
from enum import Enum
from typing import Iterator, Optional, Protocol, runtime_checkable
from uuid import UUID, uuid4

from pydantic import BaseModel, ConfigDict, Field

from vertector_rxtest.config import get_config
from vertector_rxtest.metrics import failures_total

logger = logging.getLogger(__name__)

_PACKAGE = __name__.partition(".")[0]


class RxTestError(Exception):
    """Base class for errors raised by vertector-rxtest collaborators."""

    pass


class ReporterError(RxTestError):
    """Raised when no reporter is available where one is required."""

    pass


# ============================================================================
# FAILURE MODELS
# ============================================================================


class FailureKind(str, Enum):
    """Kinds of assertion failures."""

    VALUE_MISMATCH = "value_mismatch"
    UNEXPECTED_FAILURE = "unexpected_failure"
    MISSING_FAILURE = "missing_failure"
    TYPE_MISMATCH = "type_mismatch"
    EQUALITY_MISMATCH = "equality_mismatch"
    TIMEOUT = "timeout"
    # A check or completion callback raised instead of returning
    CHECK_ERROR = "check_error"


class SourceLocation(BaseModel):
    """File and line a failure is attributed to."""

    model_config = ConfigDict(frozen=True)

    file: str = Field(..., description="Path of the calling source file")
    line: int = Field(..., description="Line number in the calling source file", ge=0)

    def __str__(self) -> str:
        return f"{self.file}:{self.line}"


class AssertionFailure(BaseModel):
    """A single reported assertion failure."""

    model_config = ConfigDict(frozen=True)

    failure_id: UUID = Field(default_factory=uuid4, description="Unique failure identifier")
    kind: FailureKind = Field(..., description="Failure category")
    assertion: str = Field(..., description="Name of the assertion that failed")
    message: str = Field(..., description="Human-readable failure detail")
    location: SourceLocation = Field(..., description="Call site the failure points at")
    timestamp: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        description="When the failure was reported (UTC)",
    )

    def render(self) -> str:
        return f"{self.location}: [{self.kind.value}] {self.message}"


def caller_location() -> SourceLocation:
    """Locate the first stack frame outside this package.

    Returns:
        SourceLocation of the test code that called into vertector_rxtest
    """
    frame = inspect.currentframe()
    try:
        while frame is not None:
            module = frame.f_globals.get("__name__", "")
            if module != _PACKAGE and not module.startswith(f"{_PACKAGE}."):
                return SourceLocation(file=frame.f_code.co_filename, line=frame.f_lineno)
            frame = frame.f_back
    finally:
        del frame

    return SourceLocation(file="<unknown>", line=0)


# ============================================================================
# REPORTERS
# ============================================================================


@runtime_checkable
class FailureReporter(Protocol):
    """Anything that can receive assertion failures."""

    def report(self, failure: AssertionFailure) -> None: ...


class RecordingReporter:
    """Collects failures in memory.

    Safe to report into from reactivex scheduler threads.

    Example:
        >>> reporter = RecordingReporter()
        >>> with use_reporter(reporter):
        ...     assert_equal(reactivex.of(2), 1)
        >>> len(reporter.failures)
        1
    """

    def __init__(self, log_failures: Optional[bool] = None) -> None:
        """Initialize reporter.

        Args:
            log_failures: Log each failure at ERROR level (defaults to config)
        """
        if log_failures is None:
            log_failures = get_config().log_failures

        self.log_failures = log_failures
        self._failures: list[AssertionFailure] = []
        self._lock = threading.Lock()

    def report(self, failure: AssertionFailure) -> None:
        with self._lock:
            self._failures.append(failure)

        if self.log_failures:
            logger.error(
                f"Stream assertion failed: {failure.render()}",
                extra={
                    "assertion": failure.assertion,
                    "kind": failure.kind.value,
                    "file": failure.location.file,
                    "line": failure.location.line,
                },
            )

    @property
    def failures(self) -> list[AssertionFailure]:
        """Snapshot of failures recorded so far."""
        with self._lock:
            return list(self._failures)

    @property
    def has_failures(self) -> bool:
        with self._lock:
            return bool(self._failures)

    def clear(self) -> None:
        with self._lock:
            self._failures.clear()

    def summary(self) -> str:
        """Render all recorded failures, one per line."""
        return summarize(self.failures)


_default_reporter = RecordingReporter()

_current_reporter: ContextVar[Optional[FailureReporter]] = ContextVar(
    "vertector_rxtest_reporter", default=None
)


def summarize(failures: list[AssertionFailure]) -> str:
    """Render failures under a count header, one per line."""
    lines = [f"{len(failures)} stream assertion failure(s):"]
    lines.extend(f"  {failure.render()}" for failure in failures)
    return "\n".join(lines)


def current_reporter() -> FailureReporter:
    """Get the reporter active in the current context.

    Falls back to a process-wide RecordingReporter when none is active.
    """
    reporter = _current_reporter.get()
    return reporter if reporter is not None else _default_reporter


def default_reporter() -> RecordingReporter:
    """Get the process-wide fallback reporter."""
    return _default_reporter


def activate_reporter(reporter: FailureReporter) -> Token:
    """Make a reporter current until the returned token is deactivated."""
    return _current_reporter.set(reporter)


def deactivate_reporter(token: Token) -> None:
    _current_reporter.reset(token)


@contextlib.contextmanager
def use_reporter(reporter: FailureReporter) -> Iterator[FailureReporter]:
    """Activate a reporter for the duration of a block.

    Args:
        reporter: Reporter receiving failures from assertions created in the block

    Yields:
        The activated reporter
    """
    token = activate_reporter(reporter)
    try:
        yield reporter
    finally:
        deactivate_reporter(token)


def report_failure(
    kind: FailureKind,
    message: str,
    location: SourceLocation,
    assertion: str,
    reporter: Optional[FailureReporter] = None,
) -> AssertionFailure:
    """Build a failure and hand it to a reporter.

    Args:
        kind: Failure category
        message: Failure detail
        location: Call site the failure points at
        assertion: Name of the failing assertion
        reporter: Target reporter (defaults to current_reporter())

    Returns:
        The reported AssertionFailure
    """
    failure = AssertionFailure(
        kind=kind,
        assertion=assertion,
        message=message,
        location=location,
    )

    failures_total.labels(kind=kind.value).inc()
    if reporter is None:
        reporter = current_reporter()
    reporter.report(failure)

    return failure
