"""
Secrets/configuration vault client.

The vault lives behind the backend's RPC surface: functions
``initialize_production_config`` and ``vault_create_secret``, plus the
``vault.decrypted_secrets`` view for reads. Requires the service role key.
"""
import os
from dataclasses import dataclass
from typing import Any, Dict, Optional

from backend_ops.exceptions import ConfigurationError, VaultError
from backend_ops.monitoring.logger import get_logger
from backend_ops.services.http import ServiceClient

logger = get_logger(__name__)


@dataclass(frozen=True)
class VaultSecret:
    name: str
    description: str
    required: bool
    fallback_env_var: Optional[str] = None
    rotation_required: bool = False
    guardian_approval_required: bool = False


SECRET_CATALOG: Dict[str, VaultSecret] = {
    s.name: s
    for s in (
        VaultSecret("jwt_secret", "JWT signing secret for authentication tokens", True, "JWT_SECRET", True, True),
        VaultSecret("privacy_master_key", "Master encryption key for privacy features", True, "PRIVACY_MASTER_KEY", True, True),
        VaultSecret("csrf_secret", "CSRF protection secret", True, "CSRF_SECRET", True),
        VaultSecret("master_encryption_key", "Master encryption key for sensitive data", True, "MASTER_ENCRYPTION_KEY", True, True),
        VaultSecret("phoenixd_host", "Lightning node host URL", True, "PHOENIXD_HOST"),
        VaultSecret("phoenixd_api_token", "Lightning node API token", True, "PHOENIXD_API_TOKEN", True, True),
        VaultSecret("fedimint_guardian_private_key", "Guardian private key for federation operations", False, "FEDIMINT_GUARDIAN_PRIVATE_KEY", True, True),
        VaultSecret("fedimint_federation_config", "Federation configuration data", False, "FEDIMINT_FEDERATION_CONFIG", True, True),
        VaultSecret("fedimint_gateway_url", "Federation gateway URL", False, "FEDIMINT_GATEWAY_URL"),
    )
}


class VaultClient(ServiceClient):
    error_class = VaultError
    service_name = "vault"

    def __init__(self, url: str, service_role_key: str, *, timeout: float = 15.0, session=None):
        super().__init__(
            url,
            headers={"apikey": service_role_key, "Authorization": f"Bearer {service_role_key}"},
            timeout=timeout,
            session=session,
        )

    @classmethod
    def from_settings(cls, settings) -> "VaultClient":
        if not settings.url or not settings.service_role_key:
            raise ConfigurationError("Vault access needs SUPABASE_URL and SUPABASE_SERVICE_ROLE_KEY")
        return cls(settings.url, settings.service_role_key, timeout=settings.request_timeout_seconds)

    def initialize_production_config(self) -> Any:
        """Run the vault's production bootstrap. Returns whatever the RPC returns."""
        result = self._request("POST", "/rest/v1/rpc/initialize_production_config", json={})
        logger.info("VAULT_PRODUCTION_CONFIG_INITIALIZED")
        return result

    def store_secret(self, name: str, value: str) -> None:
        secret = _catalog_entry(name)
        self._request(
            "POST",
            "/rest/v1/rpc/vault_create_secret",
            json={
                "secret_value": value,
                "secret_name": secret.name,
                "secret_description": secret.description,
            },
        )
        logger.info("VAULT_SECRET_STORED", vault_entry=name)

    def get_secret(self, name: str) -> Optional[str]:
        _catalog_entry(name)
        rows = self._request(
            "GET",
            "/rest/v1/decrypted_secrets",
            params={"select": "decrypted_secret", "name": f"eq.{name}", "limit": 1},
            headers={"Accept-Profile": "vault"},
        )
        if rows and not (isinstance(rows, list) and isinstance(rows[0], dict)):
            raise VaultError(f"Vault returned an unexpected body for secret {name}")
        if rows:
            return rows[0].get("decrypted_secret")
        return None

    def resolve_secret(self, name: str) -> tuple:
        """
        (value, source) where source is "vault", "env" or None.

        Vault errors fall through to the environment fallback, the way the
        application itself resolves secrets.
        """
        secret = _catalog_entry(name)
        try:
            value = self.get_secret(name)
        except VaultError as e:
            logger.warning("VAULT_READ_FAILED", vault_entry=name, error=str(e))
            value = None
        if value:
            return value, "vault"
        if secret.fallback_env_var and os.getenv(secret.fallback_env_var):
            return os.environ[secret.fallback_env_var], "env"
        return None, None


def _catalog_entry(name: str) -> VaultSecret:
    try:
        return SECRET_CATALOG[name]
    except KeyError:
        raise VaultError(f"Unknown secret: {name}") from None
