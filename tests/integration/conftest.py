"""
Pytest configuration for integration tests.

These tests run against real services and require:
- Network connectivity to Solana mainnet
- RUN_LIVE_TESTS=1 in the environment
"""
import os

import pytest


def pytest_configure(config):
    """Configure pytest for integration tests."""
    config.addinivalue_line(
        "markers", "integration: mark test as integration test (runs against real services)"
    )


def pytest_collection_modifyitems(config, items):
    """Add integration marker to all tests in this directory, skipped unless enabled."""
    skip_live = pytest.mark.skip(reason="set RUN_LIVE_TESTS=1 to run live tests")
    for item in items:
        if "integration" in str(item.fspath):
            item.add_marker(pytest.mark.integration)
            if not os.getenv("RUN_LIVE_TESTS"):
                item.add_marker(skip_live)
