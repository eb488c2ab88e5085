"""
Pytest fixtures for the settlement engine test suite.

Provides:
- Structured logging configured once per session, LogContext cleared per test
- ``captured_logs`` for asserting on emitted JSON log lines
- In-memory SQLite engine, session factory and a flush-only session
- Deterministic clock (record builders live in tests/builders.py)

Uses in-memory SQLite with a StaticPool (no database server required).
"""

import json
import logging
from datetime import datetime, timezone
from io import StringIO

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

import settlement_kernel.models  # noqa: F401  registers every table
from settlement_kernel.db.base import Base
from settlement_kernel.domain.clock import DeterministicClock
from settlement_kernel.logging_config import (
    LogContext,
    StructuredFormatter,
    configure_logging,
    reset_logging,
)


# =============================================================================
# Logging fixtures
# =============================================================================


@pytest.fixture(autouse=True, scope="session")
def _configure_test_logging():
    """Configure structured logging for the test suite."""
    reset_logging()
    configure_logging(level=logging.DEBUG)
    yield
    reset_logging()


@pytest.fixture(autouse=True)
def _clear_log_context():
    """Clear LogContext between tests to prevent cross-test contamination."""
    LogContext.clear()
    yield
    LogContext.clear()


@pytest.fixture
def captured_logs():
    """
    Capture settlement_kernel logs as parsed JSON dicts.

    Usage::

        def test_something(captured_logs):
            compute_fees(...)
            assert any(r["message"] == "fees_computed" for r in captured_logs())
    """
    stream = StringIO()
    handler = logging.StreamHandler(stream)
    handler.setFormatter(StructuredFormatter())
    root = logging.getLogger("settlement_kernel")
    root.addHandler(handler)

    def _get_records() -> list[dict]:
        lines = stream.getvalue().strip().split("\n")
        return [json.loads(line) for line in lines if line]

    yield _get_records

    root.removeHandler(handler)


# =============================================================================
# Database fixtures
# =============================================================================


@pytest.fixture
def db_engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    yield engine
    Base.metadata.drop_all(engine)
    engine.dispose()


@pytest.fixture
def session_factory(db_engine):
    return sessionmaker(bind=db_engine, expire_on_commit=False)


@pytest.fixture
def session(session_factory):
    """Session for flush-only services; rolled back after the test."""
    s = session_factory()
    yield s
    s.rollback()
    s.close()


@pytest.fixture
def clock():
    return DeterministicClock(datetime(2025, 1, 13, 9, 0, 0, tzinfo=timezone.utc))

