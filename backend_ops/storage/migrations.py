"""
SQL migration runner.

A migration is a plain .sql file applied as one batch in one transaction.
Several files are ordered by a migration plan: named steps with declared
prerequisites, loaded from YAML and run in dependency order.
"""
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Sequence

import yaml

from backend_ops.exceptions import DatabaseError, MigrationError, MigrationFileError, MigrationPlanError
from backend_ops.monitoring.logger import get_logger
from backend_ops.storage.db import Database

logger = get_logger(__name__)

BEGIN_BANNER = "===== BEGIN MIGRATION SQL: {path} ====="
END_BANNER = "===== END MIGRATION SQL ====="


def read_migration_sql(path: Path) -> str:
    """
    Read a migration file.

    Raises:
        MigrationFileError: file is missing, unreadable or empty
    """
    path = Path(path)
    try:
        sql = path.read_text(encoding="utf-8")
    except FileNotFoundError as e:
        raise MigrationFileError(f"Migration file not found: {path}") from e
    except OSError as e:
        raise MigrationFileError(f"Could not read migration file {path}: {e}") from e
    if not sql.strip():
        raise MigrationFileError(f"Migration file is empty: {path}")
    return sql


def format_sql_listing(path: Path, sql: str) -> str:
    """The SQL text between the two banner lines, for copy/paste into a SQL console."""
    body = sql if sql.endswith("\n") else sql + "\n"
    return f"{BEGIN_BANNER.format(path=path)}\n{body}{END_BANNER}"


@dataclass
class MigrationResult:
    """Outcome of one applied migration file."""
    name: str
    path: Path
    statements_bytes: int
    verified_tables: List[str] = field(default_factory=list)


def run_migration_file(
    db: Database,
    path: Path,
    *,
    verify_tables: Sequence[str] = (),
    name: Optional[str] = None,
) -> MigrationResult:
    """
    Apply one SQL file inside a single transaction, then check expected tables.

    Raises:
        MigrationFileError: file missing or empty (no database I/O happens)
        MigrationError: the batch failed and was rolled back, or a table is missing afterwards
    """
    path = Path(path)
    name = name or path.stem
    sql = read_migration_sql(path)

    logger.info("MIGRATION_STARTED", step=name, file=str(path), database=db.masked_url)
    try:
        db.execute_script(sql)
    except DatabaseError as e:
        logger.error("MIGRATION_ROLLED_BACK", step=name, error=str(e))
        raise MigrationError(f"Migration '{name}' failed and was rolled back: {e}", step=name) from e
    logger.info("MIGRATION_COMMITTED", step=name)

    verified = []
    for table in verify_tables:
        if not db.table_exists(table):
            raise MigrationError(f"Migration '{name}' committed but table '{table}' is missing", step=name)
        verified.append(table)
        logger.info("MIGRATION_TABLE_VERIFIED", step=name, table=table)

    return MigrationResult(name=name, path=path, statements_bytes=len(sql.encode("utf-8")), verified_tables=verified)


# ---------------------------------------------------------------------------
# Migration plan
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class MigrationStep:
    name: str
    sql_path: Path
    requires: tuple = ()
    tables: tuple = ()


class MigrationPlan:
    """Named migration steps forming a DAG over their ``requires`` edges."""

    def __init__(self, steps: Iterable[MigrationStep]):
        self.steps: Dict[str, MigrationStep] = {}
        for step in steps:
            if step.name in self.steps:
                raise MigrationPlanError(f"Duplicate migration step: {step.name}")
            self.steps[step.name] = step

        for step in self.steps.values():
            for dep in step.requires:
                if dep not in self.steps:
                    raise MigrationPlanError(f"Step '{step.name}' requires unknown step '{dep}'")
                if dep == step.name:
                    raise MigrationPlanError(f"Step '{step.name}' requires itself")

    @classmethod
    def from_yaml(cls, path: Path) -> "MigrationPlan":
        """
        Load a plan file. SQL paths are relative to the plan's directory.

            steps:
              - name: identity_core
                file: sql/001_privacy_first_schema.sql
                tables: [profiles]
              - name: family_federation
                file: sql/002_family_federation.sql
                requires: [identity_core]
        """
        path = Path(path)
        try:
            raw = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
        except FileNotFoundError as e:
            raise MigrationFileError(f"Migration plan not found: {path}") from e
        except yaml.YAMLError as e:
            raise MigrationPlanError(f"Malformed migration plan {path}: {e}") from e

        entries = raw.get("steps") if isinstance(raw, dict) else None
        if not isinstance(entries, list) or not entries:
            raise MigrationPlanError(f"Migration plan {path} has no steps")

        steps = []
        for entry in entries:
            if not isinstance(entry, dict) or not entry.get("name") or not entry.get("file"):
                raise MigrationPlanError(f"Each step needs 'name' and 'file': {entry!r}")
            steps.append(
                MigrationStep(
                    name=str(entry["name"]),
                    sql_path=path.parent / str(entry["file"]),
                    requires=tuple(entry.get("requires") or ()),
                    tables=tuple(entry.get("tables") or ()),
                )
            )
        return cls(steps)

    def ordered(self) -> List[MigrationStep]:
        """
        Topological order (Kahn). Ties keep declaration order so runs are reproducible.

        Raises:
            MigrationPlanError: the prerequisites contain a cycle
        """
        remaining = {name: set(step.requires) for name, step in self.steps.items()}
        order: List[MigrationStep] = []

        while remaining:
            ready = [name for name in self.steps if name in remaining and not remaining[name]]
            if not ready:
                raise MigrationPlanError(
                    f"Migration plan has a dependency cycle among: {', '.join(sorted(remaining))}"
                )
            for name in ready:
                order.append(self.steps[name])
                del remaining[name]
            for deps in remaining.values():
                deps.difference_update(ready)

        return order


def run_migration_plan(db: Database, plan: MigrationPlan) -> List[MigrationResult]:
    """
    Apply every step in dependency order, one transaction per step.

    Stops at the first failure; earlier steps stay committed.
    """
    results = []
    for step in plan.ordered():
        results.append(
            run_migration_file(db, step.sql_path, verify_tables=step.tables, name=step.name)
        )
    return results
