"""In-memory object backend."""

import copy
from typing import Any, Dict, Optional

from stagestore.storage.base import ObjectBackend, StoredObject


class MemoryObjectBackend(ObjectBackend):
    """Keeps finalized objects in process memory."""

    def __init__(self):
        self._objects: Dict[str, StoredObject] = {}

    async def put(self, key: str, data: bytes, metadata: Optional[Dict[str, Any]]) -> None:
        self._objects[key] = StoredObject(
            key=key,
            data=bytes(data),
            metadata=copy.deepcopy(metadata) if metadata else {},
        )

    async def get(self, key: str) -> Optional[StoredObject]:
        return self._objects.get(key)

    async def exists(self, key: str) -> bool:
        return key in self._objects

    def get_backend_name(self) -> str:
        return "memory"
