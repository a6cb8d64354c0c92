"""BaseTarget ABC: the storage service a stress run calls.

Targets are the external collaborators of the resilience core. They
perform one operation against one region and either return a result or
raise; StorageError (with a status code) is the error vocabulary the
classifiers understand.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any


class BaseTarget(ABC):
    """Abstract base class for all stress targets.

    Subclasses must implement execute(), which performs a named operation,
    optionally pinned to a failover region, and returns its result.
    """

    @abstractmethod
    async def execute(self, operation: str, region: str | None = None) -> Any:
        """Perform ``operation`` and return its result.

        Args:
            operation: Operation name (for example "read" or "query").
            region: Failover region to target, or None for the primary.

        Returns:
            Whatever the operation produces.
        """
        ...

    def target_name(self) -> str:
        """Return the name used in reports.

        Default implementation returns the class name.
        Subclasses may override for custom naming.
        """
        return type(self).__name__
