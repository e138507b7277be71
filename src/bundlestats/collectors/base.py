"""Base collector interface."""

from abc import ABC, abstractmethod
from typing import Optional


class CollectorError(Exception):
    """Raised when a collector cannot produce data for a package."""


class ExternalToolError(CollectorError):
    """The external tool could not be spawned or exited abnormally."""

    def __init__(self, package: str, detail: str, returncode: Optional[int] = None):
        self.package = package
        self.detail = detail
        self.returncode = returncode
        status = f"exit status {returncode}" if returncode is not None else "spawn failed"
        super().__init__(f"{package}: {status}: {detail}")


class BaseCollector(ABC):
    """Abstract base class for data collectors."""

    @abstractmethod
    async def collect(self, identifier: str) -> str:
        """
        Collect raw output for the given identifier.

        Args:
            identifier: Package name

        Returns:
            Raw newline-delimited JSON emitted by the source
        """
        pass

    @abstractmethod
    def is_available(self) -> bool:
        """Check if this collector is available (tool installed, etc.)."""
        pass
