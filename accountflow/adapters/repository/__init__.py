"""Repository adapters - Account storage implementations."""

from .memory import InMemoryAccountStorage
from .postgres import PostgresAccountStorage, run_migrations

__all__ = ["InMemoryAccountStorage", "PostgresAccountStorage", "run_migrations"]
