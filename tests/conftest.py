"""
Pytest configuration and shared fixtures.
"""
import json
import os
from unittest.mock import MagicMock

import pytest
import requests

# Settings read these; a developer's shell must not leak into unit tests.
_ENV_PREFIXES = ("DATABASE_", "SUPABASE_", "FEDERATION_", "DEV_", "CLEANUP_")
_ENV_NAMES = ("ENVIRONMENT", "OPS_TEST_MODE", "LOG_LEVEL", "LOG_FORMAT", "MIGRATION_FILE", "MIGRATION_PLAN")


@pytest.fixture(autouse=True)
def _isolated_env(monkeypatch, tmp_path):
    """Strip ops-related env vars and run each test from an empty directory (no stray .env files)."""
    for name in list(os.environ):
        if name.startswith(_ENV_PREFIXES) or name in _ENV_NAMES:
            monkeypatch.delenv(name, raising=False)
    monkeypatch.chdir(tmp_path)
    yield


def build_response(status_code: int = 200, body=None, text: str = None) -> requests.Response:
    """A real requests.Response carrying *body* as JSON (or raw *text*)."""
    response = requests.Response()
    response.status_code = status_code
    response.reason = "OK" if status_code < 400 else "Error"
    if text is not None:
        response._content = text.encode("utf-8")
    elif body is not None:
        response._content = json.dumps(body).encode("utf-8")
        response.headers["Content-Type"] = "application/json"
    else:
        response._content = b""
    return response


@pytest.fixture
def make_response():
    return build_response


@pytest.fixture
def http_session():
    """requests.Session stand-in; set ``http_session.request.return_value`` / ``side_effect``."""
    session = MagicMock(spec=requests.Session)
    session.headers = {}
    return session


@pytest.fixture
def mock_db():
    """Database stand-in for code that only needs execute_script / table_exists / ping."""
    db = MagicMock()
    db.masked_url = "postgresql://***@localhost:5432/unit_test"
    db.table_exists.return_value = True
    db.ping.return_value = True
    return db
