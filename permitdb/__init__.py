"""Permit records, processing states and payments kept in LMDB and served over HTTP."""

__version__ = "0.1.0"