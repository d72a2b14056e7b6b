"""Abstract object backend interface."""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Dict, Optional


@dataclass(frozen=True)
class StoredObject:
    """A finalized upload payload."""

    key: str
    data: bytes
    metadata: Dict[str, Any] = field(default_factory=dict)


class ObjectBackend(ABC):
    """Abstract base class for finalized object storage.

    Objects are addressed by key. A put under an existing key replaces the
    previous object wholesale.
    """

    @abstractmethod
    async def put(self, key: str, data: bytes, metadata: Optional[Dict[str, Any]]) -> None:
        """Store an object, overwriting any object under the same key.

        Args:
            key: Object key
            data: Complete payload
            metadata: Caller-supplied metadata snapshot
        """
        pass

    @abstractmethod
    async def get(self, key: str) -> Optional[StoredObject]:
        """Fetch an object.

        Args:
            key: Object key

        Returns:
            The stored object, or None if nothing is stored under the key
        """
        pass

    @abstractmethod
    async def exists(self, key: str) -> bool:
        """Return True if an object is stored under the key."""
        pass

    @abstractmethod
    def get_backend_name(self) -> str:
        """Return backend identifier."""
        pass
