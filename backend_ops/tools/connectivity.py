"""
Backend connectivity smoke test.

Two checks: read one row from a known table, read the auth session. A
"relation does not exist" error means the backend is reachable but the schema
is not migrated yet, which counts as an expected outcome.
"""
from dataclasses import dataclass
from typing import List

from backend_ops.exceptions import BackendQueryError
from backend_ops.monitoring.logger import get_logger
from backend_ops.services.backend_client import BackendClient, is_relation_missing

logger = get_logger(__name__)

STATUS_OK = "ok"
STATUS_EXPECTED = "expected"
STATUS_ERROR = "error"

DEFAULT_TABLE = "profiles"


@dataclass
class ConnectivityResult:
    check: str
    status: str
    detail: str

    @property
    def passed(self) -> bool:
        return self.status != STATUS_ERROR


def classify_query_error(error: Exception) -> str:
    return STATUS_EXPECTED if is_relation_missing(error) else STATUS_ERROR


def check_table_query(client: BackendClient, table: str = DEFAULT_TABLE) -> ConnectivityResult:
    check = f"query {table}"
    try:
        rows = client.query_table(table, limit=1)
    except BackendQueryError as e:
        status = classify_query_error(e)
        if status == STATUS_EXPECTED:
            detail = f"table '{table}' does not exist yet (schema not migrated)"
        else:
            detail = str(e)
        logger.info("CONNECTIVITY_CHECK", check=check, status=status, code=e.code)
        return ConnectivityResult(check, status, detail)
    logger.info("CONNECTIVITY_CHECK", check=check, status=STATUS_OK, rows=len(rows))
    return ConnectivityResult(check, STATUS_OK, f"{len(rows)} row(s) returned")


def check_auth_session(client: BackendClient) -> ConnectivityResult:
    check = "auth session"
    try:
        session = client.get_auth_session()
    except BackendQueryError as e:
        logger.info("CONNECTIVITY_CHECK", check=check, status=STATUS_ERROR, code=e.code)
        return ConnectivityResult(check, STATUS_ERROR, str(e))
    detail = "no active session" if session is None else f"session for user {session.get('id', 'unknown')}"
    logger.info("CONNECTIVITY_CHECK", check=check, status=STATUS_OK, has_session=session is not None)
    return ConnectivityResult(check, STATUS_OK, detail)


def run_connectivity_checks(client: BackendClient, table: str = DEFAULT_TABLE) -> List[ConnectivityResult]:
    return [check_table_query(client, table), check_auth_session(client)]
