"""
Pytest Configuration and Shared Fixtures

Provides common test fixtures and configuration for the entire test suite.
"""

import tempfile
from pathlib import Path

import pytest

from fundflow.core.datastore import InMemoryDocumentStore
from fundflow.core.models import Fund, Split, Transaction, User


@pytest.fixture
def temp_dir():
    """Create a temporary directory for test files."""
    with tempfile.TemporaryDirectory() as temp_path:
        yield Path(temp_path)


@pytest.fixture
def members() -> list[User]:
    """Three fund members with Vietnamese display names."""
    return [
        User(id="A", display_name="Hưng", email="hung@example.com"),
        User(id="B", display_name="Linh", email="linh@example.com"),
        User(id="C", display_name="Minh", email="minh@example.com"),
    ]


@pytest.fixture
def fund(members) -> Fund:
    """Fund containing the three members, created by A."""
    return Fund(
        id="fund-1",
        name="Tam Đảo",
        description="Chuyến đi Tam Đảo",
        members=[m.id for m in members],
        created_by="A",
        created_at=1_700_000_000_000,
    )


@pytest.fixture
def sample_transactions() -> list[Transaction]:
    """Two balanced transactions in fund-1 and one in another fund."""
    return [
        Transaction(
            id="t1",
            fund_id="fund-1",
            description="Ăn trưa",
            amount=300000,
            paid_by="A",
            splits=[Split("A", 200000), Split("B", -100000), Split("C", -100000)],
            created_at=1_700_000_000_000,
        ),
        Transaction(
            id="t2",
            fund_id="fund-1",
            description="Taxi",
            amount=90000,
            paid_by="B",
            splits=[Split("B", 60000), Split("A", -30000), Split("C", -30000)],
            created_at=1_700_086_400_000,
        ),
        Transaction(
            id="t3",
            fund_id="fund-2",
            description="Cà phê",
            amount=50000,
            paid_by="C",
            splits=[Split("C", 25000), Split("A", -25000)],
            created_at=1_700_000_000_000,
        ),
    ]


@pytest.fixture
def store(members, fund, sample_transactions) -> InMemoryDocumentStore:
    """In-memory store seeded with the members, fund and transactions."""
    return InMemoryDocumentStore(
        {
            "users": [m.to_dict() for m in members],
            "funds": [fund.to_dict()],
            "transactions": [t.to_dict() for t in sample_transactions],
        }
    )


@pytest.fixture(autouse=True)
def setup_test_environment(monkeypatch, tmp_path):
    """Set up test environment variables."""
    # Ensure tests don't use production data
    monkeypatch.setenv("FUNDFLOW_ENV", "test")
    monkeypatch.setenv("FUNDFLOW_DATA_DIR", str(tmp_path / "fundflow_data"))

    # Keep real provider keys out of tests
    monkeypatch.delenv("GOOGLE_API_KEY", raising=False)
    monkeypatch.delenv("GROQ_API_KEY", raising=False)

    # Drop the cached global configuration between tests
    import fundflow.core.config as config_module

    monkeypatch.setattr(config_module, "_config", None)


# Test markers for categorizing tests
def pytest_configure(config):
    """Configure custom pytest markers."""
    config.addinivalue_line("markers", "unit: Unit tests for individual components")
    config.addinivalue_line("markers", "currency: Tests for amount parsing and formatting")
    config.addinivalue_line("markers", "splits: Tests for split calculation")
    config.addinivalue_line("markers", "balances: Tests for balance aggregation")
    config.addinivalue_line("markers", "validation: Tests for proposal and form validation")
    config.addinivalue_line("markers", "ai: Tests for the LLM parser and reconciler")
    config.addinivalue_line("markers", "services: Tests for store-backed services and orchestration")
    config.addinivalue_line("markers", "cli: Tests for the command-line interface")
    config.addinivalue_line("markers", "integration: End-to-end tests through the CLI")
