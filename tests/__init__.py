"""Test suite for vertector-rxtest.

Test Structure:
- test_subscriber.py - AssertionSubscriber state machine tests
- test_assertions.py - Fluent entry point tests
- test_checks.py - Comparison and rendering primitive tests
- test_reporting.py - Failure models and reporter tests
- test_expectation.py - Expectation and asynchronous stream tests
- test_config.py - Configuration loading and validation tests
- test_metrics.py - Prometheus metrics tests
- test_plugin.py - Pytest plugin tests (pytester)
- conftest.py - Shared fixtures and test configuration

Running Tests:
    # Run all tests
    pytest

    # Run only unit tests
    pytest -m unit

    # Run only integration tests
    pytest -m integration
"""
