"""
Shared test configuration.

Keeps API tests from reading a developer's ``.env`` session limit or log level.
"""

import os

import pytest


@pytest.fixture(autouse=True, scope="session")
def _isolate_env():
    """Pin API environment variables for the whole test session."""
    saved = {k: os.environ.get(k) for k in ("TACTICA_MAX_SESSIONS", "TACTICA_LOG_LEVEL")}
    os.environ["TACTICA_MAX_SESSIONS"] = "1000"
    os.environ["TACTICA_LOG_LEVEL"] = "WARNING"
    yield
    for k, v in saved.items():
        if v is None:
            os.environ.pop(k, None)
        else:
            os.environ[k] = v
