"""
Federation manager client and federation config generation.

The federation manager is an HTTP service owning federations, guardians and
mints. This module only passes identifiers and amounts across that boundary.
"""
import secrets
import time
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Sequence, Set

from backend_ops.exceptions import ConfigurationError, FederationError, InviteCreationError
from backend_ops.monitoring.logger import get_logger
from backend_ops.services.http import ServiceClient

logger = get_logger(__name__)

FEDERATION_ID_PREFIX = "family_fed"
MINT_ID_PREFIX = "family_mint"
RANDOM_SUFFIX_BYTES = 8


def generate_identifier(prefix: str, *, now_ms: Optional[int] = None, random_bytes: Optional[bytes] = None) -> str:
    """
    ``<prefix>_<epoch-ms>_<lowercase hex>``; the suffix comes from ``secrets``.

    >>> generate_identifier("family_fed", now_ms=1700000000000, random_bytes=b"\\xab\\x01")
    'family_fed_1700000000000_ab01'
    """
    if now_ms is None:
        now_ms = int(time.time() * 1000)
    if random_bytes is None:
        random_bytes = secrets.token_bytes(RANDOM_SUFFIX_BYTES)
    return f"{prefix}_{now_ms}_{random_bytes.hex()}"


@dataclass(frozen=True)
class FederationIdentity:
    federation_id: str
    mint_id: str
    created_at_ms: int

    @classmethod
    def generate(cls, now_ms: Optional[int] = None) -> "FederationIdentity":
        now_ms = now_ms if now_ms is not None else int(time.time() * 1000)
        return cls(
            federation_id=generate_identifier(FEDERATION_ID_PREFIX, now_ms=now_ms),
            mint_id=generate_identifier(MINT_ID_PREFIX, now_ms=now_ms),
            created_at_ms=now_ms,
        )

    @property
    def created_at(self) -> datetime:
        return datetime.fromtimestamp(self.created_at_ms / 1000, tz=timezone.utc)


class FederationClient:
    """Operations on one connected federation."""

    def __init__(self, manager: "FederationManager", federation_id: str):
        self.manager = manager
        self.federation_id = federation_id

    def get_balance(self) -> int:
        body = self.manager._request_object("GET", f"/federations/{self.federation_id}/balance")
        try:
            return int(body.get("balance", 0))
        except (TypeError, ValueError):
            raise FederationError(f"Federation manager returned a non-numeric balance: {body.get('balance')!r}") from None

    def issue_ecash(self, amount: int) -> List[str]:
        if amount <= 0:
            raise FederationError(f"E-cash amount must be positive, got {amount}")
        body = self.manager._request_object("POST", f"/federations/{self.federation_id}/ecash", json={"amount": amount})
        notes = body.get("notes")
        if notes is None:
            raise FederationError("Federation manager returned no e-cash notes")
        return list(notes) if isinstance(notes, (list, tuple)) else [notes]

    def create_lightning_invoice(self, amount: int, memo: str) -> str:
        body = self.manager._request_object(
            "POST",
            f"/federations/{self.federation_id}/ln/invoice",
            json={"amount": amount, "memo": memo},
        )
        invoice = body.get("invoice")
        if not invoice:
            raise FederationError("Federation manager returned no invoice")
        return invoice


class FederationManager(ServiceClient):
    error_class = FederationError
    service_name = "federation manager"

    def __init__(self, url: str, token: Optional[str] = None, *, timeout: float = 30.0, session=None):
        headers = {"Authorization": f"Bearer {token}"} if token else None
        super().__init__(url, headers=headers, timeout=timeout, session=session)
        self._connected: Set[str] = set()

    @classmethod
    def from_settings(cls, settings) -> "FederationManager":
        if not settings.manager_url:
            raise ConfigurationError("FEDERATION_MANAGER_URL is not set")
        return cls(settings.manager_url, settings.manager_token, timeout=settings.request_timeout_seconds)

    def create_federation(self, name: str, description: str, guardian_endpoints: Sequence[str], threshold: int) -> str:
        """Create a federation and return the manager's federation id."""
        if not 1 <= threshold <= len(guardian_endpoints):
            raise FederationError(
                f"Threshold {threshold} is not between 1 and the guardian count {len(guardian_endpoints)}"
            )
        body = self._request_object(
            "POST",
            "/federations",
            json={
                "name": name,
                "description": description,
                "guardian_endpoints": list(guardian_endpoints),
                "threshold": threshold,
            },
        )
        federation_id = body.get("federation_id")
        if not federation_id:
            raise FederationError("Federation manager returned no federation_id")
        logger.info("FEDERATION_CREATED", federation_id=federation_id, guardians=len(guardian_endpoints), threshold=threshold)
        return federation_id

    def create_invite(self, federation_id: str) -> str:
        """
        Create an invite code for an existing federation.

        Raises:
            InviteCreationError: the federation exists but no invite came back
        """
        try:
            body = self._request_object("POST", f"/federations/{federation_id}/invites")
        except FederationError as e:
            raise InviteCreationError(str(e), federation_id, status_code=e.status_code, code=e.code) from e
        invite = body.get("invite_code")
        if not invite:
            raise InviteCreationError("Federation manager returned no invite_code", federation_id)
        return invite

    def connect_to_federation(self, federation_id: str) -> None:
        self._request("POST", f"/federations/{federation_id}/connect")
        self._connected.add(federation_id)
        logger.info("FEDERATION_CONNECTED", federation_id=federation_id)

    def get_client(self, federation_id: str) -> FederationClient:
        if federation_id not in self._connected:
            raise FederationError(f"Not connected to federation {federation_id}; call connect_to_federation first")
        return FederationClient(self, federation_id)


# ---------------------------------------------------------------------------
# Config block
# ---------------------------------------------------------------------------

def build_config_entries(
    identity: FederationIdentity,
    manager_federation_id: str,
    invite_code: str,
    settings,
) -> Dict[str, Any]:
    """Ordered KEY -> value mapping for the generated .env block."""
    return {
        "FAMILY_FEDERATION_ID": identity.federation_id,
        "FAMILY_MINT_ID": identity.mint_id,
        "FEDIMINT_FEDERATION_ID": manager_federation_id,
        "FEDIMINT_INVITE_CODE": invite_code,
        "FEDIMINT_FEDERATION_NAME": settings.name,
        "FEDIMINT_GUARDIAN_ENDPOINTS": ",".join(settings.guardian_endpoints),
        "FEDIMINT_GUARDIAN_COUNT": len(settings.guardian_endpoints),
        "FEDIMINT_CONSENSUS_THRESHOLD": settings.threshold,
        "FEDIMINT_MIN_ECASH_AMOUNT": settings.min_ecash_amount,
        "FEDIMINT_MAX_ECASH_AMOUNT": settings.max_ecash_amount,
        "FEDIMINT_DAILY_LIMIT": settings.daily_limit,
        "FEDIMINT_FEDERATION_CREATED_AT": identity.created_at.isoformat(),
    }


def render_config_block(entries: Dict[str, Any]) -> str:
    lines = ["# Family federation configuration (copy into .env.local)"]
    lines.extend(f"{key}={value}" for key, value in entries.items())
    return "\n".join(lines) + "\n"


def generate_federation_config(manager: FederationManager, settings, identity: Optional[FederationIdentity] = None) -> str:
    """
    Create a real federation plus invite and return the rendered config block.

    No cleanup on failure: a federation whose invite failed stays in place and
    InviteCreationError carries its id.
    """
    identity = identity or FederationIdentity.generate()
    logger.info("FEDERATION_IDENTITY_GENERATED", family_federation_id=identity.federation_id, mint_id=identity.mint_id)

    federation_id = manager.create_federation(
        settings.name,
        settings.description,
        settings.guardian_endpoints,
        settings.threshold,
    )
    invite_code = manager.create_invite(federation_id)
    return render_config_block(build_config_entries(identity, federation_id, invite_code, settings))
