"""
Test-data cleanup.

Empties the fixture tables when the fixture database is reachable, then
removes test report and coverage artifacts. Absent artifacts and an
unconfigured or unreachable database are informational, not failures.
Artifacts are removed even when emptying the fixture tables fails; the
error is kept on the report.
"""
import shutil
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional, Sequence

from backend_ops.exceptions import OpsError
from backend_ops.monitoring.logger import get_logger
from backend_ops.storage.fixtures import FixtureDatabase

logger = get_logger(__name__)


@dataclass
class CleanupReport:
    removed: List[str] = field(default_factory=list)
    missing: List[str] = field(default_factory=list)
    cleaned_tables: List[str] = field(default_factory=list)
    db_connected: bool = False
    database_error: Optional[OpsError] = None

    @property
    def ok(self) -> bool:
        return self.database_error is None


def remove_artifact(path: Path) -> bool:
    """Delete a file or directory tree. False when it was not there."""
    if path.is_dir() and not path.is_symlink():
        shutil.rmtree(path)
        return True
    try:
        path.unlink()
    except FileNotFoundError:
        return False
    return True


def run_cleanup(
    root: Path,
    report_paths: Sequence[str],
    fixtures: Optional[FixtureDatabase] = None,
) -> CleanupReport:
    report = CleanupReport()

    if fixtures is None:
        logger.info("CLEANUP_DATABASE_SKIPPED", reason="DATABASE_URL not configured")
    elif fixtures.is_connected():
        report.db_connected = True
        try:
            report.cleaned_tables = fixtures.cleanup()
        except OpsError as e:
            logger.error("CLEANUP_DATABASE_FAILED", error_type=type(e).__name__, error=str(e))
            report.database_error = e
    else:
        logger.info("CLEANUP_DATABASE_SKIPPED", reason="fixture database unreachable")

    for rel in report_paths:
        target = root / rel
        if remove_artifact(target):
            report.removed.append(rel)
            logger.info("CLEANUP_REMOVED", path=rel)
        else:
            report.missing.append(rel)
            logger.info("CLEANUP_NOTHING_TO_REMOVE", path=rel)

    logger.info(
        "CLEANUP_COMPLETE",
        removed=len(report.removed),
        missing=len(report.missing),
        tables=len(report.cleaned_tables),
        database_failed=not report.ok,
    )
    return report
