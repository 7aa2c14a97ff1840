"""Repository adapters - User and event persistence."""

from .memory import InMemoryUserRepository
from .postgres import PostgresDocumentStore, run_migrations

__all__ = ["InMemoryUserRepository", "PostgresDocumentStore", "run_migrations"]
