"""JSON-backed package database."""

from bundlestats.db.store import DatabaseError, PackageDatabase, PersistError

__all__ = ["DatabaseError", "PackageDatabase", "PersistError"]
