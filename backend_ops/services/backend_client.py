"""
Backend data-access client (Supabase-style REST: PostgREST + GoTrue).

Only what the connectivity checks need: read rows from a table and read the
auth session.
"""
from typing import Any, Dict, List, Optional

from backend_ops.exceptions import BackendQueryError, ConfigurationError
from backend_ops.services.http import ServiceClient

# PostgREST / Postgres codes meaning "the table is not there yet"
RELATION_MISSING_CODES = frozenset({"42P01", "PGRST205", "PGRST116"})


def is_relation_missing(error: Exception) -> bool:
    """True when *error* says the queried relation does not exist (schema not migrated)."""
    code = getattr(error, "code", None)
    if code in RELATION_MISSING_CODES:
        return True
    message = str(error).lower()
    return "relation" in message and "does not exist" in message


class BackendClient(ServiceClient):
    error_class = BackendQueryError
    service_name = "backend"

    def __init__(self, url: str, api_key: str, *, timeout: float = 15.0, session=None):
        super().__init__(
            url,
            headers={"apikey": api_key, "Authorization": f"Bearer {api_key}"},
            timeout=timeout,
            session=session,
        )

    @classmethod
    def from_settings(cls, settings) -> "BackendClient":
        """Build from ``SupabaseSettings``; the anon key is preferred for read checks."""
        if not settings.url:
            raise ConfigurationError("SUPABASE_URL is not set")
        key = settings.anon_key or settings.service_role_key
        if not key:
            raise ConfigurationError("Set SUPABASE_ANON_KEY or SUPABASE_SERVICE_ROLE_KEY")
        return cls(settings.url, key, timeout=settings.request_timeout_seconds)

    def query_table(self, table: str, *, select: str = "*", limit: int = 1) -> List[Dict[str, Any]]:
        """GET /rest/v1/<table>; raises BackendQueryError with the PostgREST code on failure."""
        rows = self._request("GET", f"/rest/v1/{table}", params={"select": select, "limit": limit})
        return rows or []

    def get_auth_session(self, access_token: Optional[str] = None) -> Optional[Dict[str, Any]]:
        """
        Resolve the user behind *access_token* (the API key when omitted).

        Returns None when the auth service answers but there is no signed-in
        user (401/403), which is the normal state for a script.
        """
        headers = {"Authorization": f"Bearer {access_token}"} if access_token else None
        try:
            return self._request_object("GET", "/auth/v1/user", headers=headers) or None
        except BackendQueryError as e:
            if e.status_code in (401, 403):
                return None
            raise
