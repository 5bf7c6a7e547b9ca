"""Pytest configuration for HRDesk backend tests.

Sets the test environment before any test imports the app, so settings are
loaded with test defaults.
"""

import os


def pytest_configure(config):
    """Configure test environment before any tests run.

    Key test settings:
    - ENVIRONMENT=test
    - PROVIDER_MODE=mock so no test ever reaches a real model endpoint
    - CORS_ORIGINS includes localhost:3000 for test requests
    """
    config.addinivalue_line("markers", "security: Security-related tests (required gate)")
    config.addinivalue_line("markers", "slow: Slow-running tests (excluded from fast)")

    os.environ.setdefault("ENVIRONMENT", "test")
    os.environ.setdefault("PROVIDER_MODE", "mock")
    os.environ.setdefault("CHAT_FINALIZE_RETRY_DELAY_SECONDS", "0")

    cors_origins = os.environ.get("CORS_ORIGINS", "")
    if "localhost:3000" not in cors_origins:
        cors_origins = f"{cors_origins},http://localhost:3000" if cors_origins else "http://localhost:3000"
        os.environ["CORS_ORIGINS"] = cors_origins
