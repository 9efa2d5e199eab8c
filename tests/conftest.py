"""
Pytest configuration and shared fixtures.

This file registers custom pytest markers and command-line options.
"""

import os
import tempfile

import pytest

from src.core.config import settings
from src.services.storage import SQLiteInvoiceStore


def pytest_addoption(parser):
    """Add custom command-line options"""
    parser.addoption(
        "--run-integration",
        action="store_true",
        default=False,
        help="Run integration tests against the real Replicate API"
    )


def pytest_configure(config):
    """Register custom markers"""
    config.addinivalue_line(
        "markers",
        "integration: mark test as integration test requiring a real Replicate token"
    )


def pytest_collection_modifyitems(config, items):
    """Skip integration tests unless --run-integration is specified"""
    if config.getoption("--run-integration"):
        return

    skip_integration = pytest.mark.skip(reason="need --run-integration option to run")
    for item in items:
        if "integration" in item.keywords:
            item.add_marker(skip_integration)


@pytest.fixture
def db_path():
    """Create a temporary database file for testing"""
    fd, path = tempfile.mkstemp(suffix=".db")
    os.close(fd)
    yield path
    # Cleanup
    if os.path.exists(path):
        os.remove(path)


@pytest.fixture
def store(db_path):
    """Create a fresh SQLiteInvoiceStore for each test"""
    return SQLiteInvoiceStore(db_path)


@pytest.fixture
def offline(monkeypatch):
    """Disable Replicate so the gateway falls back to mock output"""
    monkeypatch.setattr(settings, "replicate_api_token", None)


@pytest.fixture
def replicate_token(monkeypatch):
    """Configure a fake Replicate token; HTTP calls must be mocked with respx"""
    monkeypatch.setattr(settings, "replicate_api_token", "r8_test_token")
    monkeypatch.setattr(settings, "replicate_base_url", "https://api.replicate.com/v1")
    monkeypatch.setattr(settings, "replicate_model", "google/gemini-2.5-flash")
    monkeypatch.setattr(settings, "replicate_poll_interval", 0.0)
