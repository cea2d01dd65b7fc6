"""
Pytest configuration and fixtures for TRVL tests.
"""

import os
import pytest
from unittest.mock import MagicMock

# Set test environment before importing trvl modules
os.environ["TRVL_ENV"] = "development"
os.environ["ONBOARDING_PROGRESS_BACKEND"] = "memory"
os.environ.setdefault("SUPABASE_URL", "https://test.supabase.co")
os.environ.setdefault("SUPABASE_SERVICE_ROLE_KEY", "test-service-key-not-real")


@pytest.fixture
def mock_supabase():
    """Mock Supabase client for unit tests."""
    mock_client = MagicMock()

    # Mock table operations (chainable query builder)
    mock_table = MagicMock()
    mock_table.select.return_value = mock_table
    mock_table.insert.return_value = mock_table
    mock_table.update.return_value = mock_table
    mock_table.upsert.return_value = mock_table
    mock_table.delete.return_value = mock_table
    mock_table.eq.return_value = mock_table
    mock_table.limit.return_value = mock_table
    mock_table.maybe_single.return_value = mock_table
    mock_table.execute.return_value = MagicMock(data=[])

    mock_client.table.return_value = mock_table

    return mock_client


@pytest.fixture
def adventurer_answers():
    """Four answers maxing out adventure and risk."""
    return [
        {"question_id": i, "trait_scores": {"adventureStyle": 5, "riskTolerance": 5}}
        for i in range(1, 5)
    ]
