"""Pytest configuration and shared fixtures for all tests."""

import os

import pytest


@pytest.fixture(autouse=True)
def disable_sentry_for_tests(monkeypatch):
    """Disable Sentry telemetry for all tests.

    This fixture runs automatically for every test to prevent Sentry events
    from being sent during test runs. Tests that specifically need to test
    Sentry functionality (like test_sentry_filtering.py) set TELEMETRY=true
    themselves.
    """
    monkeypatch.setenv("TELEMETRY", "false")
    monkeypatch.delenv("SENTRY_DSN", raising=False)


@pytest.fixture(autouse=True)
def clear_agent_env(monkeypatch):
    """Keep WSS_* variables from the developer's shell out of config tests."""
    for name in list(os.environ):
        if name.startswith("WSS_"):
            monkeypatch.delenv(name, raising=False)
