"""
CLI entrypoint for the backend operational scripts.

Every command is a short, independent run: read input, call one or two
external services, print status, exit 0 on success and 1 on a handled failure.
"""
import os
from pathlib import Path
from typing import List, Optional

import typer

from backend_ops.cli_output import print_header, print_status
from backend_ops.config.config import load_settings
from backend_ops.config.dotenv_loader import load_dotenv_files
from backend_ops.entrypoint import run_entrypoint
from backend_ops.exceptions import InviteCreationError
from backend_ops.monitoring.logger import get_logger, setup_logging

app = typer.Typer(
    name="backend-ops",
    help="Operational scripts for the web backend: migrations, config generators, dev helpers, smoke tests.",
    add_completion=False,
    no_args_is_help=True,
)

logger = get_logger(__name__)


def _finish(command: str, body) -> None:
    raise typer.Exit(code=run_entrypoint(command, body))


@app.callback()
def main(
    log_level: Optional[str] = typer.Option(None, "--log-level", help="DEBUG/INFO/WARNING/ERROR"),
    log_format: Optional[str] = typer.Option(None, "--log-format", help="console or json"),
):
    """Load .env files (never in production) and configure logging."""
    load_dotenv_files()
    setup_logging(
        log_level or os.getenv("LOG_LEVEL", "INFO"),
        (log_format or os.getenv("LOG_FORMAT", "console")).lower(),
    )


# ---------------------------------------------------------------------------
# Migrations
# ---------------------------------------------------------------------------

@app.command()
def migrate(
    file: Optional[Path] = typer.Option(None, "--file", "-f", help="SQL file (default: MIGRATION_FILE)"),
    verify: List[str] = typer.Option([], "--verify", help="Table that must exist afterwards (repeatable)"),
    plan: bool = typer.Option(False, "--plan", help="Run every step of the migration plan in dependency order"),
    plan_file: Optional[Path] = typer.Option(None, "--plan-file", help="Plan YAML (default: MIGRATION_PLAN)"),
):
    """
    Apply a SQL migration inside one transaction (commit, or roll back and exit 1).

    Example:
        backend-ops migrate --verify profiles
    """
    from backend_ops.storage.db import Database
    from backend_ops.storage.migrations import MigrationPlan, run_migration_file, run_migration_plan

    def body():
        settings = load_settings()
        with Database.from_settings(settings.database) as db:
            typer.echo(f"Target database: {db.masked_url}")
            if plan:
                migration_plan = MigrationPlan.from_yaml(settings.resolve_path(str(plan_file or settings.migration_plan)))
                results = run_migration_plan(db, migration_plan)
            else:
                path = settings.resolve_path(str(file or settings.migration_file))
                results = [run_migration_file(db, path, verify_tables=verify)]

        for result in results:
            tables = f", verified {', '.join(result.verified_tables)}" if result.verified_tables else ""
            print_status(result.name, f"committed{tables}")
        typer.echo("✅ Migration completed successfully")

    _finish("migrate", body)


@app.command("print-sql")
def print_sql(
    file: Optional[Path] = typer.Option(None, "--file", "-f", help="SQL file (default: MIGRATION_FILE)"),
):
    """Print the migration SQL between banners for manual execution. No database access."""
    from backend_ops.storage.migrations import format_sql_listing, read_migration_sql

    def body():
        settings = load_settings()
        path = settings.resolve_path(str(file or settings.migration_file))
        typer.echo(format_sql_listing(path, read_migration_sql(path)))

    _finish("print-sql", body)


@app.command("plan")
def show_plan(
    plan_file: Optional[Path] = typer.Option(None, "--plan-file", help="Plan YAML (default: MIGRATION_PLAN)"),
):
    """Show the migration plan in the order `migrate --plan` would apply it."""
    from backend_ops.storage.migrations import MigrationPlan

    def body():
        settings = load_settings()
        migration_plan = MigrationPlan.from_yaml(settings.resolve_path(str(plan_file or settings.migration_plan)))
        print_header("MIGRATION PLAN")
        for i, step in enumerate(migration_plan.ordered(), 1):
            after = f"  (after {', '.join(step.requires)})" if step.requires else ""
            typer.echo(f"{i:>2}. {step.name:<30} {step.sql_path}{after}")

    _finish("plan", body)


# ---------------------------------------------------------------------------
# Configuration generators
# ---------------------------------------------------------------------------

@app.command("federation-config")
def federation_config(
    output: Optional[Path] = typer.Option(None, "--output", "-o", help="Also write the block to this file"),
):
    """Create a federation plus invite code and print the KEY=VALUE block for .env."""
    from backend_ops.services.federation import FederationManager, generate_federation_config

    def body():
        settings = load_settings()
        with FederationManager.from_settings(settings.federation) as manager:
            try:
                block = generate_federation_config(manager, settings.federation)
            except InviteCreationError as e:
                typer.echo(
                    f"⚠️  Federation {e.federation_id} was created but its invite code was not.\n"
                    f"   Generate a new invite for {e.federation_id} before sharing it.",
                    err=True,
                )
                raise

        print_header("FEDERATION CONFIGURATION")
        typer.echo(block)
        if output:
            output.write_text(block, encoding="utf-8")
            typer.echo(f"Written to {output}")
        typer.echo("Copy these values into .env.local (never commit them).")

    _finish("federation-config", body)


@app.command("vault-init")
def vault_init(
    check: bool = typer.Option(False, "--check", help="Only report which secrets resolve; write nothing"),
):
    """Initialize the production configuration in the vault."""
    from backend_ops.services.vault import SECRET_CATALOG, VaultClient

    def body():
        settings = load_settings()
        with VaultClient.from_settings(settings.supabase) as vault:
            if check:
                missing = 0
                for name, secret in SECRET_CATALOG.items():
                    _, source = vault.resolve_secret(name)
                    if source is None and secret.required:
                        missing += 1
                    print_status(name, source or ("MISSING" if secret.required else "not set"), ok=source is not None or not secret.required)
                return 1 if missing else 0

            logger.info("VAULT_INIT_STARTED", environment=settings.environment)
            vault.initialize_production_config()

        typer.echo("✅ Production configuration initialized in the vault")
        typer.echo("Next steps:")
        typer.echo("  1. Store each required secret (backend-ops vault-init --check lists them)")
        typer.echo("  2. Remove the matching values from .env files on shared machines")

    _finish("vault-init", body)


# ---------------------------------------------------------------------------
# Developer environment
# ---------------------------------------------------------------------------

@app.command()
def dev(
    auto: bool = typer.Option(False, "--auto", help="Start and supervise backend and frontend"),
):
    """Check dependencies and start the development servers."""
    from backend_ops.tools.dev_server import DevSupervisor, dependencies_installed, usage_lines

    def body():
        settings = load_settings()
        root = Path.cwd()
        if not dependencies_installed(root, settings.dev.dependency_marker):
            typer.echo(f"❌ Dependencies not installed ({settings.dev.dependency_marker} missing).", err=True)
            typer.echo(f"   Run: {settings.dev.install_command}", err=True)
            return 1

        for line in usage_lines(settings.dev.backend_command, settings.dev.frontend_command):
            typer.echo(line)
        if not auto:
            return 0

        supervisor = DevSupervisor(
            settings.dev.backend_command,
            settings.dev.frontend_command,
            startup_delay=settings.startup_delay_seconds,
            shutdown_timeout=settings.dev.shutdown_timeout_seconds,
            cwd=root,
        )
        return supervisor.run()

    _finish("dev", body)


@app.command()
def cleanup():
    """Empty fixture tables and delete test report / coverage artifacts."""
    from backend_ops.storage.db import Database
    from backend_ops.storage.fixtures import FixtureDatabase
    from backend_ops.tools.cleanup import run_cleanup

    def body():
        settings = load_settings()
        db = Database.from_settings(settings.database) if settings.database.url else None
        try:
            fixtures = (
                FixtureDatabase(db, settings.cleanup.fixture_tables, production=settings.is_production)
                if db is not None
                else None
            )
            report = run_cleanup(Path.cwd(), settings.cleanup.report_paths, fixtures)
        finally:
            if db is not None:
                db.dispose()

        for table in report.cleaned_tables:
            print_status(f"table {table}", "emptied")
        for path in report.removed:
            print_status(path, "removed")
        for path in report.missing:
            print_status(path, "not present")
        if not report.ok:
            print_status("fixture tables", str(report.database_error), ok=False)
            return 1
        typer.echo("✅ Test data cleanup complete")

    _finish("cleanup", body)


# ---------------------------------------------------------------------------
# Smoke tests
# ---------------------------------------------------------------------------

@app.command("fedimint-smoke")
def fedimint_smoke():
    """Exercise create / connect / balance / e-cash / invoice against the federation manager."""
    from backend_ops.services.federation import FederationManager
    from backend_ops.tools.fedimint_smoke import run_fedimint_smoke

    def body():
        settings = load_settings()
        with FederationManager.from_settings(settings.federation) as manager:
            result = run_fedimint_smoke(manager, settings.federation)

        for step in result.completed:
            print_status(step, "passed")
        if not result.ok:
            print_status(result.failed_step, result.error or "failed", ok=False)
            return 1
        typer.echo("✅ Federation integration smoke test passed")
        return 0

    _finish("fedimint-smoke", body)


@app.command()
def patterns():
    """Check the wildcard route patterns against sample paths."""
    from backend_ops.tools.route_patterns import run_self_test

    def body():
        for line in run_self_test():
            typer.echo(line)

    _finish("patterns", body)


@app.command()
def connectivity(
    table: str = typer.Option("profiles", "--table", help="Table used for the read check"),
):
    """Read a table and the auth session; a missing table counts as 'not migrated yet'."""
    from backend_ops.services.backend_client import BackendClient
    from backend_ops.tools.connectivity import STATUS_EXPECTED, run_connectivity_checks

    def body():
        settings = load_settings()
        with BackendClient.from_settings(settings.supabase) as client:
            results = run_connectivity_checks(client, table)

        for result in results:
            label = "expected" if result.status == STATUS_EXPECTED else result.status
            print_status(result.check, f"{label}: {result.detail}", ok=result.passed)
        return 0 if all(r.passed for r in results) else 1

    _finish("connectivity", body)


if __name__ == "__main__":
    app()
