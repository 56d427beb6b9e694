"""PostgreSQL connection and schema management for ownvault."""

from ownvault.db.connection import close_pool, transaction

__all__ = ["close_pool", "transaction"]
