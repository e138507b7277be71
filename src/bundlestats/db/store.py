"""Flat-file database of collected package sizes."""

import json
import logging
import os
import stat
import tempfile
from pathlib import Path
from typing import Any, Iterator, Optional, Union

logger = logging.getLogger(__name__)

DATABASE_PATH = os.getenv("BUNDLESTATS_DATABASE", "bundlephobia-database.json")


def _file_mode(path: Path) -> int:
    """Permissions for a saved database: keep the existing file's, else 0644."""
    if path.exists():
        return stat.S_IMODE(path.stat().st_mode)
    return 0o644


class DatabaseError(Exception):
    """The database file could not be read or decoded."""


class PersistError(DatabaseError):
    """The database could not be written back to disk."""


class PackageDatabase:
    """In-memory view of the package database file.

    Top-level keys are package names. Each entry maps version strings to
    record dicts, plus a ``latest`` alias and a ``lastScraped`` marker.
    """

    def __init__(self, entries: Optional[dict[str, dict[str, Any]]] = None):
        self.entries: dict[str, dict[str, Any]] = entries if entries is not None else {}

    @classmethod
    def load(cls, path: Union[str, Path]) -> "PackageDatabase":
        """Load the database, or start empty if the file does not exist yet."""
        path = Path(path)
        if not path.exists():
            logger.info(f"No database at {path}, starting empty")
            return cls()

        try:
            with open(path, encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            raise DatabaseError(f"Failed to read database {path}: {e}") from e

        if not isinstance(data, dict):
            raise DatabaseError(
                f"Invalid database {path}: expected a JSON object, got {type(data).__name__}"
            )

        for name, entry in data.items():
            if not isinstance(entry, dict):
                raise DatabaseError(
                    f"Invalid database {path}: entry {name!r} is {type(entry).__name__}, expected a JSON object"
                )

        logger.info(f"Loaded {len(data)} packages from {path}")
        return cls(data)

    def save(self, path: Union[str, Path]) -> Path:
        """Write the whole database to ``path`` with 2-space indentation.

        The file is replaced atomically so an interrupted write never leaves
        a truncated database behind.
        """
        path = Path(path)
        tmp_name = None
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(
                dir=path.parent, prefix=f".{path.name}.", suffix=".tmp"
            )
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(self.entries, f, indent=2, ensure_ascii=False)
                f.write("\n")
            os.chmod(tmp_name, _file_mode(path))
            os.replace(tmp_name, path)
        except OSError as e:
            if tmp_name and os.path.exists(tmp_name):
                os.unlink(tmp_name)
            raise PersistError(f"Failed to save database {path}: {e}") from e

        logger.info(f"Saved {len(self.entries)} packages to {path}")
        return path

    def get(self, name: str) -> Optional[dict[str, Any]]:
        return self.entries.get(name)

    def entry(self, name: str) -> dict[str, Any]:
        """Get the entry for a package, creating an empty one if needed."""
        return self.entries.setdefault(name, {})

    def __contains__(self, name: object) -> bool:
        return name in self.entries

    def __len__(self) -> int:
        return len(self.entries)

    def __iter__(self) -> Iterator[str]:
        return iter(self.entries)

    def to_dict(self) -> dict[str, dict[str, Any]]:
        return self.entries
