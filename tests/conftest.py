"""Shared test fixtures for settings, a mocked REST client and the acting user."""

from unittest.mock import AsyncMock

import pytest

from poll_results.core.config import Settings
from poll_results.lib.rest import RestClient
from poll_results.schemas.poll import Identity


@pytest.fixture
def settings() -> Settings:
    """Test application settings."""
    return Settings(
        _env_file=None,  # type: ignore[call-arg]
        supabase_url="https://test-project.supabase.co",
        supabase_anon_key="test-anon-key",
    )


@pytest.fixture
def mock_client() -> AsyncMock:
    """A RestClient double whose async methods are AsyncMocks."""
    return AsyncMock(spec=RestClient)


@pytest.fixture
def identity() -> Identity:
    """The acting user."""
    return Identity(user_id="user-1")
