"""
Fixture database helper used by test runs and by ``backend-ops cleanup``.

Integration tests write throwaway rows into dedicated fixture tables; cleanup
empties them. Never allowed against production.
"""
import re
from typing import List, Sequence

from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from backend_ops.exceptions import ConfigurationError, DatabaseError
from backend_ops.monitoring.logger import get_logger
from backend_ops.storage.db import Database

logger = get_logger(__name__)

_IDENTIFIER = re.compile(r"^[a-z_][a-z0-9_]*$")


class FixtureDatabase:
    """Connectivity check and cleanup for the fixture tables."""

    def __init__(self, db: Database, tables: Sequence[str], *, production: bool = False):
        for table in tables:
            if not _IDENTIFIER.match(table):
                raise ConfigurationError(f"Invalid fixture table name: {table!r}")
        self.db = db
        self.tables = list(tables)
        self.production = production

    def is_connected(self) -> bool:
        return self.db.ping()

    def cleanup(self) -> List[str]:
        """
        Delete all rows from the fixture tables that exist, in one transaction.

        Returns the tables that were emptied.
        """
        if self.production:
            raise ConfigurationError("Refusing to clean fixture tables in a production environment")

        present = [t for t in self.tables if self.db.table_exists(t)]
        if not present:
            logger.info("FIXTURE_TABLES_ABSENT", tables=self.tables)
            return []

        try:
            with self.db.transaction() as conn:
                for table in present:
                    deleted = conn.execute(text(f'DELETE FROM "{table}"')).rowcount
                    logger.info("FIXTURE_TABLE_CLEARED", table=table, rows=deleted)
        except SQLAlchemyError as e:
            raise DatabaseError(f"Fixture cleanup failed and was rolled back: {e}") from e
        return present
