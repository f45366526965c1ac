# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Pytest configuration and shared fixtures.

This module provides fixtures used across all test types:
- Unit tests
- Integration tests
"""

import os
from typing import Any

import pytest

# Background task modules set up the broker at import time
os.environ.setdefault("DRAMATIQ_TEST_MODE", "true")


# =============================================================================
# Environment Fixtures
# =============================================================================


@pytest.fixture(scope="session")
def test_environment() -> dict[str, str]:
    """Provide test environment variables.

    Returns:
        Dictionary of environment variables for testing.
    """
    return {
        "ENVIRONMENT": "development",
        "DEBUG": "true",
        "LOG_LEVEL": "DEBUG",
        "DB_HOST": "localhost",
        "DB_PORT": "34001",
        "REDIS_HOST": "localhost",
        "REDIS_PORT": "34002",
        "JWT_SECRET_KEY": "test-secret-key-for-testing-only",
        "JWT_ALGORITHM": "HS256",
        "STATS_TIMEZONE": "UTC",
    }


# =============================================================================
# Marker Configuration
# =============================================================================


def pytest_configure(config: pytest.Config) -> None:
    """Configure custom pytest markers."""
    config.addinivalue_line(
        "markers", "unit: mark test as a unit test"
    )
    config.addinivalue_line(
        "markers", "integration: mark test as an integration test (requires services)"
    )
    config.addinivalue_line(
        "markers", "slow: mark test as slow running"
    )


# =============================================================================
# Helper Fixtures
# =============================================================================


@pytest.fixture
def sample_employee_id() -> str:
    """Provide a sample employee ID for testing."""
    return "550e8400-e29b-41d4-a716-446655440001"


@pytest.fixture
def sample_team_id() -> str:
    """Provide a sample team ID for testing."""
    return "550e8400-e29b-41d4-a716-446655440010"


@pytest.fixture
def sample_learning_data() -> dict[str, Any]:
    """Provide sample learning event data for testing."""
    return {
        "title": "Intro to asyncio",
        "activity_type": "course",
        "occurred_on": "2024-01-01",
        "duration_minutes": 30,
        "tags": ["python", "async"],
    }
