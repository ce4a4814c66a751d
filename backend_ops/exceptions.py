"""
Custom exception hierarchy for the backend operational scripts.

Hierarchy:

    OpsError (base)
    ├── ConfigurationError      missing or invalid settings, fail before any I/O
    ├── OperationalError        an external collaborator failed
    │   ├── DatabaseError
    │   │   └── MigrationError
    │   └── ServiceError        HTTP collaborators (vault, backend REST, federation manager)
    │       ├── VaultError
    │       ├── BackendQueryError
    │       └── FederationError
    │           └── InviteCreationError
    └── DataError               bad local input (files, plans)
        ├── MigrationFileError
        └── MigrationPlanError

Rules:
    - Nothing is retried. Every OpsError is terminal for the invocation.
    - The entrypoint error boundary maps OpsError to exit code 1 with a
      readable message. Anything else is reported with its traceback.
"""
from typing import Optional


class OpsError(Exception):
    """Base exception for all operational script errors."""
    pass


class ConfigurationError(OpsError):
    """Required setting is missing or malformed."""
    pass


# ============ OPERATIONAL (external collaborators) ============

class OperationalError(OpsError):
    """An external service (database, vault, REST backend) failed."""
    pass


class DatabaseError(OperationalError):
    """Connection or statement failure against the relational database."""
    pass


class MigrationError(DatabaseError):
    """A migration batch failed and its transaction was rolled back."""

    def __init__(self, message: str, step: Optional[str] = None):
        super().__init__(message)
        self.step = step


class ServiceError(OperationalError):
    """HTTP collaborator returned an error or could not be reached.

    ``code`` carries the service-level error code when the response has one
    (e.g. a PostgREST ``42P01``), ``status_code`` the HTTP status.
    """

    def __init__(self, message: str, status_code: Optional[int] = None, code: Optional[str] = None):
        super().__init__(message)
        self.status_code = status_code
        self.code = code


class VaultError(ServiceError):
    pass


class BackendQueryError(ServiceError):
    pass


class FederationError(ServiceError):
    """Federation manager rejected or failed an operation."""
    pass


class InviteCreationError(FederationError):
    """Federation exists but its invite code could not be created.

    The federation is not rolled back; ``federation_id`` lets the operator
    generate a new invite for it by hand.
    """

    def __init__(self, message: str, federation_id: str, status_code: Optional[int] = None, code: Optional[str] = None):
        super().__init__(message, status_code=status_code, code=code)
        self.federation_id = federation_id


# ============ DATA (bad local input) ============

class DataError(OpsError):
    """Local input is unusable (missing file, malformed plan)."""
    pass


class MigrationFileError(DataError):
    """Migration SQL file is missing or unreadable."""
    pass


class MigrationPlanError(DataError):
    """Migration plan has a cycle, a duplicate or an unknown prerequisite."""
    pass
