"""
Shared CLI output helpers: banners, status lines, fatal error reporting.
"""
from __future__ import annotations

import sys
import traceback

import typer

RULE = "=" * 80


def print_header(title: str) -> None:
    typer.echo(f"\n{RULE}")
    typer.echo(title.center(80))
    typer.echo(RULE)


def print_status(label: str, status: str, ok: bool = True) -> None:
    mark = "✅" if ok else "❌"
    typer.echo(f"{mark} {label:.<50} {status}")


def print_failure(title: str, error: Exception) -> None:
    """Handled failure: message only, no traceback."""
    typer.echo(f"❌ {title} failed: {error}", err=True)


def print_critical_error(title: str, error: BaseException, *, include_type: bool = True) -> None:
    print(RULE, file=sys.stderr)
    print(f"CRITICAL ERROR - {title}", file=sys.stderr)
    print(RULE, file=sys.stderr)
    print(f"Error: {error}", file=sys.stderr)
    if include_type:
        print(f"Type: {type(error).__name__}", file=sys.stderr)
    traceback.print_exc(file=sys.stderr)
    print(RULE, file=sys.stderr)
