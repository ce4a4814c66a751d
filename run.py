#!/usr/bin/env python3
"""
Entry point for the backend operational scripts.
Wraps backend_ops/cli.py so a checkout works without `pip install -e .`.
"""
import os
import sys

# Ensure project root is in python path
sys.path.append(os.path.dirname(os.path.abspath(__file__)))

from backend_ops.cli import app

if __name__ == "__main__":
    app()
