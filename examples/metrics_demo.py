"""Demo: Running stream assertions outside pytest and viewing metrics.

This demo records failures in a local reporter instead of failing a test,
then prints the failure summary and the metrics collected along the way.
"""

import asyncio

import reactivex
from reactivex import operators as ops
from reactivex.scheduler.eventloop import AsyncIOScheduler

from vertector_rxtest import (
    Expectation,
    RecordingReporter,
    assert_equal,
    assert_fails_with_type,
    assert_that,
    use_reporter,
    wait_for_expectations_async,
)
from vertector_rxtest.metrics import get_metrics


class SensorOffline(Exception):
    pass


async def main() -> None:
    """Run a few passing and failing stream assertions."""

    print("\n" + "=" * 70)
    print("STREAM ASSERTION METRICS DEMO")
    print("=" * 70)

    scheduler = AsyncIOScheduler(asyncio.get_running_loop())

    with use_reporter(RecordingReporter(log_failures=False)) as reporter:
        print("\n1. Synchronous streams...")
        print("-" * 70)

        assert_that(reactivex.of(3, 4, 5)).greater_than(2)
        assert_equal(reactivex.of("ok", "ok", "degraded"), "ok")
        assert_fails_with_type(reactivex.throw(SensorOffline("probe 7")), SensorOffline)
        assert_fails_with_type(reactivex.empty(), SensorOffline)
        print(f"   Recorded {len(reporter.failures)} failure(s) so far")

        print("\n2. Asynchronous streams...")
        print("-" * 70)

        readings = Expectation("sensor readings")
        late = Expectation("never emits")

        assert_that(
            reactivex.interval(0.01, scheduler=scheduler).pipe(ops.take(5))
        ).less_than(10, expectation=readings)
        assert_equal(reactivex.never(), 0, expectation=late)

        fulfilled = await wait_for_expectations_async([readings, late], timeout=0.2)
        print(f"   All expectations fulfilled: {fulfilled}")

        print("\n3. Failure summary:")
        print("-" * 70)
        print(reporter.summary())

    print("\n4. Metrics collected:")
    print("-" * 70)

    metrics_data, content_type = get_metrics()
    for line in metrics_data.decode("utf-8").split("\n"):
        if line.startswith("rxtest_") and "_bucket" not in line:
            print(f"   {line}")

    print(f"\n   Content-Type: {content_type}")

    print("\n" + "=" * 70)
    print("Demo complete!")
    print("=" * 70 + "\n")


if __name__ == "__main__":
    asyncio.run(main())
