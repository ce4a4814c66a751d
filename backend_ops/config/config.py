"""
Settings for the operational scripts.

Uses pydantic-settings so every value can come from the environment (or a
dotenv file loaded beforehand by ``dotenv_loader``). Importing this module
must not read dotenv files.
"""
from pathlib import Path
from typing import List, Optional

from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

PRODUCTION_ENVIRONMENTS = ("prod", "production")

DEFAULT_MIGRATION_FILE = "migrations/sql/001_privacy_first_schema.sql"
DEFAULT_MIGRATION_PLAN = "migrations/plan.yaml"


class DatabaseSettings(BaseSettings):
    """PostgreSQL connection (DATABASE_URL, DATABASE_SSL, DATABASE_SSL_CA)."""
    model_config = SettingsConfigDict(env_prefix="DATABASE_", extra="ignore")

    url: Optional[str] = None
    ssl: bool = False
    # Path to the CA bundle used to verify the server certificate
    ssl_ca: Optional[str] = None
    connect_timeout_seconds: int = Field(default=10, ge=1, le=120)

    @field_validator("url")
    @classmethod
    def _blank_url_is_unset(cls, v: Optional[str]) -> Optional[str]:
        if v is not None and not v.strip():
            return None
        return v

    @field_validator("url")
    @classmethod
    def _postgres_only(cls, v: Optional[str]) -> Optional[str]:
        if v is not None and not v.startswith(("postgresql://", "postgresql+psycopg2://", "postgres://")):
            raise ValueError("DATABASE_URL must be a postgresql:// connection string")
        return v


class SupabaseSettings(BaseSettings):
    """Backend REST client and vault RPC endpoint."""
    model_config = SettingsConfigDict(env_prefix="SUPABASE_", extra="ignore")

    url: Optional[str] = None
    anon_key: Optional[str] = None
    service_role_key: Optional[str] = None
    request_timeout_seconds: float = Field(default=15.0, gt=0, le=120)

    @property
    def configured(self) -> bool:
        return bool(self.url and (self.anon_key or self.service_role_key))


class FederationSettings(BaseSettings):
    """Federation manager endpoint and the defaults for generated federations."""
    model_config = SettingsConfigDict(env_prefix="FEDERATION_", extra="ignore")

    manager_url: Optional[str] = None
    manager_token: Optional[str] = None
    request_timeout_seconds: float = Field(default=30.0, gt=0, le=300)

    name: str = "Family Federation"
    description: str = "Family custody federation"
    guardian_endpoints: List[str] = Field(
        default_factory=lambda: [
            "http://127.0.0.1:18174",
            "http://127.0.0.1:18184",
            "http://127.0.0.1:18194",
            "http://127.0.0.1:18204",
        ]
    )
    threshold: int = Field(default=3, ge=1)

    # Amounts in sats
    min_ecash_amount: int = Field(default=1, ge=1)
    max_ecash_amount: int = Field(default=100_000, ge=1)
    daily_limit: int = Field(default=1_000_000, ge=1)

    # Smoke test amounts
    smoke_ecash_amount: int = Field(default=1_000, ge=1)
    smoke_invoice_amount: int = Field(default=1_000, ge=1)

    @model_validator(mode="after")
    def _threshold_within_guardians(self) -> "FederationSettings":
        if self.threshold > len(self.guardian_endpoints):
            raise ValueError(
                f"threshold {self.threshold} exceeds guardian count {len(self.guardian_endpoints)}"
            )
        if self.min_ecash_amount > self.max_ecash_amount:
            raise ValueError("min_ecash_amount must not exceed max_ecash_amount")
        return self


class DevSettings(BaseSettings):
    """Local development servers started by ``backend-ops dev``."""
    model_config = SettingsConfigDict(env_prefix="DEV_", extra="ignore")

    dependency_marker: str = "node_modules"
    install_command: str = "npm install"
    backend_command: List[str] = Field(default_factory=lambda: ["npm", "run", "dev:backend"])
    frontend_command: List[str] = Field(default_factory=lambda: ["npm", "run", "dev"])
    startup_delay_seconds: float = Field(default=3.0, ge=0)
    shutdown_timeout_seconds: float = Field(default=5.0, gt=0)


class CleanupSettings(BaseSettings):
    """Test artifacts and fixture tables cleared by ``backend-ops cleanup``."""
    model_config = SettingsConfigDict(env_prefix="CLEANUP_", extra="ignore")

    report_paths: List[str] = Field(default_factory=lambda: ["test-reports", "coverage", ".coverage"])
    fixture_tables: List[str] = Field(default_factory=lambda: ["test_fixture_sessions", "test_fixture_users"])


class OpsSettings(BaseSettings):
    """Top-level settings for one script invocation."""
    model_config = SettingsConfigDict(extra="ignore")

    environment: str = "development"
    # OPS_TEST_MODE=1 removes startup delays in tests
    ops_test_mode: bool = False

    log_level: str = "INFO"
    log_format: str = "console"

    migration_file: str = DEFAULT_MIGRATION_FILE
    migration_plan: str = DEFAULT_MIGRATION_PLAN

    database: DatabaseSettings = Field(default_factory=DatabaseSettings)
    supabase: SupabaseSettings = Field(default_factory=SupabaseSettings)
    federation: FederationSettings = Field(default_factory=FederationSettings)
    dev: DevSettings = Field(default_factory=DevSettings)
    cleanup: CleanupSettings = Field(default_factory=CleanupSettings)

    @field_validator("log_format")
    @classmethod
    def _known_format(cls, v: str) -> str:
        v = v.strip().lower()
        if v not in ("json", "console"):
            raise ValueError("LOG_FORMAT must be 'json' or 'console'")
        return v

    @property
    def is_production(self) -> bool:
        return self.environment.strip().lower() in PRODUCTION_ENVIRONMENTS

    @property
    def startup_delay_seconds(self) -> float:
        return 0.0 if self.ops_test_mode else self.dev.startup_delay_seconds

    def resolve_path(self, path: str, root: Optional[Path] = None) -> Path:
        """Resolve a repo-relative path against *root* (cwd by default)."""
        p = Path(path)
        if p.is_absolute():
            return p
        return (root or Path.cwd()) / p


def load_settings() -> OpsSettings:
    """
    Build settings from the current environment.

    Raises:
        ConfigurationError: when a value fails validation
    """
    from pydantic import ValidationError

    from backend_ops.exceptions import ConfigurationError

    try:
        return OpsSettings()
    except ValidationError as e:
        raise ConfigurationError(f"Invalid configuration: {e}") from e
