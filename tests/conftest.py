"""Shared fixtures for the chat aggregator tests."""

import logging

import pytest

from chat_aggregator.browser import SessionConfig, SessionStore
from chat_aggregator.config import AggregatorConfig

from fakes import FakeClock


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def config():
    """Small budgets so fake-clock runs stay readable."""
    return AggregatorConfig(
        page_load_timeout_ms=1000,
        selector_timeout_ms=300,
        response_timeout_ms=1000,
        max_retries=3,
        retry_delay_ms=100,
        backoff_factor=2,
        max_retry_delay_ms=1000,
        log_buffer_size=100,
    )


@pytest.fixture
def session_store(tmp_path):
    return SessionStore(SessionConfig(sessions_dir=tmp_path / "sessions"))


@pytest.fixture
def root_at_warning():
    """Root logger as a host that never configured logging leaves it."""
    root = logging.getLogger()
    saved = root.level
    root.setLevel(logging.WARNING)
    yield root
    root.setLevel(saved)
