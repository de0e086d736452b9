"""db_schema package.

This package contains SQLite DDL + migrations for the lottery store.

Public API:
- apply_schema(...)
"""

from .init import apply_schema  # noqa: F401

__all__ = ["apply_schema"]
