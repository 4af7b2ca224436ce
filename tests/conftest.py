"""
Pytest configuration and fixtures for Tasy tests.
"""

import os
import pytest
from unittest.mock import MagicMock

# Set test environment before importing tasy modules
os.environ["TASY_ENV"] = "development"
os.environ.setdefault("SUPABASE_URL", "https://test-project.supabase.co")
os.environ.setdefault("SUPABASE_ANON_KEY", "test-anon-key-not-real")
os.environ.setdefault("SUPABASE_SERVICE_ROLE_KEY", "test-service-key-not-real")

from onboarding import (
    InMemoryHistory,
    MemoryStorage,
    OnboardingFlowController,
    PersistedOnboardingStore,
)


@pytest.fixture
def mock_supabase():
    """Mock Supabase client for unit tests."""
    mock_client = MagicMock()

    # Mock table operations
    mock_table = MagicMock()
    mock_table.select.return_value = mock_table
    mock_table.insert.return_value = mock_table
    mock_table.update.return_value = mock_table
    mock_table.delete.return_value = mock_table
    mock_table.eq.return_value = mock_table
    mock_table.like.return_value = mock_table
    mock_table.limit.return_value = mock_table
    mock_table.execute.return_value = MagicMock(data=[])

    mock_client.table.return_value = mock_table

    return mock_client


@pytest.fixture
def history():
    """Fresh single-tab browser history."""
    return InMemoryHistory()


@pytest.fixture
def session_storage():
    return MemoryStorage()


@pytest.fixture
def local_storage():
    return MemoryStorage()


@pytest.fixture
def store(session_storage, local_storage):
    """Store with a primary and a fallback channel."""
    return PersistedOnboardingStore(primary=session_storage, fallback=local_storage)


@pytest.fixture
def controller(history, store):
    """Initialized controller at step 1."""
    ctrl = OnboardingFlowController(store=store, history=history)
    ctrl.initialize()
    return ctrl


@pytest.fixture
def sample_generated_images():
    return [
        "https://cdn.example.com/generated/1.png",
        "https://cdn.example.com/generated/2.png",
        "https://cdn.example.com/generated/3.png",
        "https://cdn.example.com/generated/4.png",
    ]
