#!/usr/bin/env python3
"""
Apply the schema migration before app startup.

Same as `backend-ops migrate`; kept at the repo root because deploy hooks call
it by path. Extra arguments are passed through, e.g.:

    python migrate_schema.py --verify profiles
    python migrate_schema.py --plan
"""
import os
import sys

sys.path.append(os.path.dirname(os.path.abspath(__file__)))

from backend_ops.cli import app


def migrate(argv=None):
    """Run the migrate command; exits with its status code."""
    args = sys.argv[1:] if argv is None else list(argv)
    app(["migrate", *args])


if __name__ == "__main__":
    migrate()
