"""Pytest plugin wiring stream assertions into test results.

Registered through the ``pytest11`` entry point. For every test it:
- Activates a fresh RecordingReporter before fixtures are set up
- Fails the test after its body ran if any stream assertion failed
- Fails teardown for failures recorded after the body, e.g. in fixture finalizers
- Deactivates the reporter after teardown

Fixtures:
- ``stream_reporter``: the reporter collecting the current test's failures
- ``dispose_bag``: a CompositeDisposable disposed at teardown
- ``expectation_factory``: builds Expectation objects
"""

import logging
from contextvars import Token
from typing import Callable, Iterator

import pytest
from reactivex.disposable import CompositeDisposable

from vertector_rxtest.config import get_config
from vertector_rxtest.expectation import Expectation
from vertector_rxtest.reporting import (
    AssertionFailure,
    RecordingReporter,
    ReporterError,
    activate_reporter,
    deactivate_reporter,
    summarize,
)

logger = logging.getLogger(__name__)

REPORTER_KEY = pytest.StashKey[RecordingReporter]()
_TOKEN_KEY = pytest.StashKey[Token]()
_CHECKED_KEY = pytest.StashKey[int]()


# ============================================================================
# HOOKS
# ============================================================================


@pytest.hookimpl(tryfirst=True)
def pytest_runtest_setup(item: pytest.Item) -> None:
    reporter = RecordingReporter()
    item.stash[REPORTER_KEY] = reporter
    item.stash[_TOKEN_KEY] = activate_reporter(reporter)


def _take_unchecked(item: pytest.Item) -> list[AssertionFailure]:
    """Get failures no earlier phase has checked, marking them checked."""
    reporter = item.stash.get(REPORTER_KEY, None)
    if reporter is None:
        return []

    failures = reporter.failures
    start = item.stash.get(_CHECKED_KEY, 0)
    item.stash[_CHECKED_KEY] = len(failures)
    return failures[start:]


def _check_failures(item: pytest.Item, failures: list[AssertionFailure], phase: str) -> None:
    if not failures:
        return

    if get_config().fail_on_failures:
        pytest.fail(summarize(failures), pytrace=False)
    logger.warning(
        f"{item.nodeid} recorded {len(failures)} stream assertion failure(s) during {phase}",
        extra={"nodeid": item.nodeid, "phase": phase},
    )


@pytest.hookimpl(wrapper=True)
def pytest_runtest_call(item: pytest.Item):  # type: ignore
    try:
        result = yield
    finally:
        # A body that already failed keeps its own error
        failures = _take_unchecked(item)

    _check_failures(item, failures, "call")
    return result


@pytest.hookimpl(wrapper=True)
def pytest_runtest_teardown(item: pytest.Item, nextitem):  # type: ignore
    try:
        result = yield
        # Fixture finalizers and late worker-thread deliveries land here
        _check_failures(item, _take_unchecked(item), "teardown")
        return result
    finally:
        token = item.stash.get(_TOKEN_KEY, None)
        if token is not None:
            del item.stash[_TOKEN_KEY]
            deactivate_reporter(token)


# ============================================================================
# FIXTURES
# ============================================================================


@pytest.fixture
def stream_reporter(request: pytest.FixtureRequest) -> RecordingReporter:
    """Get the reporter collecting this test's stream assertion failures.

    Raises:
        ReporterError: If the plugin did not set up a reporter for the test
    """
    try:
        return request.node.stash[REPORTER_KEY]
    except KeyError as e:
        raise ReporterError(f"No stream reporter set up for {request.node.nodeid}") from e


@pytest.fixture
def dispose_bag() -> Iterator[CompositeDisposable]:
    """Collect assertion handles and dispose them at teardown.

    Example:
        >>> def test_values(dispose_bag):
        ...     assert_equal(subject, 1).disposed_by(dispose_bag)
    """
    bag = CompositeDisposable()
    yield bag
    bag.dispose()


@pytest.fixture
def expectation_factory() -> Callable[..., Expectation]:
    """Build expectations for asynchronous stream tests.

    Example:
        >>> def test_timer(expectation_factory):
        ...     done = expectation_factory("timer fired")
    """

    def make(description: str = "", **kwargs) -> Expectation:  # type: ignore
        return Expectation(description, **kwargs)

    return make
