"""
Tests for settings loading and the explicit dotenv loader.
"""
import os
import subprocess
import sys
import textwrap
from pathlib import Path

import pytest

from backend_ops.config.config import OpsSettings, load_settings
from backend_ops.config.dotenv_loader import load_dotenv_files
from backend_ops.exceptions import ConfigurationError


def test_defaults():
    settings = load_settings()

    assert settings.environment == "development"
    assert not settings.is_production
    assert settings.database.url is None
    assert settings.migration_file.endswith("001_privacy_first_schema.sql")
    assert settings.startup_delay_seconds == 3.0


@pytest.mark.parametrize("value", ["prod", "production", "Production "])
def test_production_names(monkeypatch, value):
    monkeypatch.setenv("ENVIRONMENT", value)
    assert OpsSettings().is_production


def test_test_mode_removes_startup_delay(monkeypatch):
    monkeypatch.setenv("OPS_TEST_MODE", "1")
    assert load_settings().startup_delay_seconds == 0.0


def test_invalid_database_url(monkeypatch):
    monkeypatch.setenv("DATABASE_URL", "mysql://user:pw@localhost/db")

    with pytest.raises(ConfigurationError, match="postgresql"):
        load_settings()


def test_blank_database_url_is_unset(monkeypatch):
    monkeypatch.setenv("DATABASE_URL", "  ")
    assert load_settings().database.url is None


def test_invalid_log_format(monkeypatch):
    monkeypatch.setenv("LOG_FORMAT", "xml")

    with pytest.raises(ConfigurationError):
        load_settings()


def test_list_settings_from_env(monkeypatch):
    monkeypatch.setenv("CLEANUP_FIXTURE_TABLES", '["fixture_a"]')
    assert load_settings().cleanup.fixture_tables == ["fixture_a"]


def test_resolve_path(tmp_path):
    settings = OpsSettings()
    assert settings.resolve_path("migrations/x.sql", root=tmp_path) == tmp_path / "migrations" / "x.sql"
    absolute = tmp_path / "abs.sql"
    assert settings.resolve_path(str(absolute)) == absolute


class TestDotenvLoader:

    def test_local_overrides_env(self, tmp_path, monkeypatch):
        monkeypatch.delenv("OPS_DOTENV_PROBE", raising=False)
        (tmp_path / ".env").write_text("OPS_DOTENV_PROBE=base\n")
        (tmp_path / ".env.local").write_text("OPS_DOTENV_PROBE=local\n")

        loaded = load_dotenv_files(repo_root=tmp_path)

        assert [p.name for p in loaded] == [".env", ".env.local"]
        assert os.environ["OPS_DOTENV_PROBE"] == "local"
        monkeypatch.delenv("OPS_DOTENV_PROBE")

    def test_env_does_not_override_shell(self, tmp_path, monkeypatch):
        monkeypatch.setenv("OPS_DOTENV_PROBE", "shell")
        (tmp_path / ".env").write_text("OPS_DOTENV_PROBE=base\n")

        load_dotenv_files(repo_root=tmp_path)

        assert os.environ["OPS_DOTENV_PROBE"] == "shell"

    def test_skipped_in_production(self, tmp_path, monkeypatch):
        monkeypatch.setenv("ENVIRONMENT", "production")
        (tmp_path / ".env").write_text("OPS_DOTENV_PROBE=base\n")

        assert load_dotenv_files(repo_root=tmp_path) == []

    def test_no_files(self, tmp_path):
        assert load_dotenv_files(repo_root=tmp_path) == []


def test_importing_cli_does_not_load_dotenv():
    """dotenv files are loaded by the CLI callback only, never at import time."""
    repo_root = Path(__file__).resolve().parent.parent.parent

    code = textwrap.dedent(
        """
        import dotenv

        def load_dotenv(*args, **kwargs):
            raise SystemExit("DOTENV_CALLED")

        dotenv.load_dotenv = load_dotenv

        import backend_ops.config.config
        import backend_ops.cli
        print("OK")
        """
    ).strip()

    env = dict(os.environ)
    env["PYTHONPATH"] = str(repo_root)

    res = subprocess.run(
        [sys.executable, "-c", code],
        cwd=str(repo_root),
        env=env,
        capture_output=True,
        text=True,
    )

    assert res.returncode == 0, f"stdout={res.stdout}\nstderr={res.stderr}"
    assert "OK" in (res.stdout or "")
