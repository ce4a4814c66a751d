"""Operational scripts for the web backend."""

__version__ = "0.1.0"
