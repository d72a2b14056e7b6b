"""Local filesystem object backend."""

import hashlib
import json
import logging
import os
from pathlib import Path
from typing import Any, Dict, Optional

from stagestore.exceptions import StorageError
from stagestore.storage.base import ObjectBackend, StoredObject

logger = logging.getLogger(__name__)

DATA_FILE = "data"
METADATA_FILE = "metadata.json"


class LocalObjectBackend(ObjectBackend):
    """Local filesystem object backend.

    Each key gets its own directory, named by the SHA-256 of the key so that
    arbitrary keys map to safe, collision-free paths:

        base_path/<sha256(key)>/data
        base_path/<sha256(key)>/metadata.json
    """

    def __init__(self, base_path: str | Path = "data/objects"):
        self.base_path = Path(base_path)

    def get_target_path(self, key: str) -> Path:
        """Directory holding the object stored under key."""
        digest = hashlib.sha256(key.encode("utf-8")).hexdigest()
        return self.base_path / digest

    async def put(self, key: str, data: bytes, metadata: Optional[Dict[str, Any]]) -> None:
        """Write payload and metadata, replacing each file atomically."""
        target_dir = self.get_target_path(key)
        try:
            document = json.dumps({"key": key, "metadata": metadata or {}}, ensure_ascii=False)
        except (TypeError, ValueError) as e:
            raise StorageError(f"Metadata for {key} is not JSON serializable: {e}") from e

        try:
            target_dir.mkdir(parents=True, exist_ok=True)
            self._write_atomic(target_dir / METADATA_FILE, document.encode("utf-8"))
            self._write_atomic(target_dir / DATA_FILE, data)
        except OSError as e:
            logger.error(f"Failed to store object: key={key}, path={target_dir}", exc_info=True)
            raise StorageError(f"Failed to store object {key}: {e}") from e

        logger.debug(f"Stored object: key={key}, path={target_dir}, size={len(data)}")

    async def get(self, key: str) -> Optional[StoredObject]:
        target_dir = self.get_target_path(key)
        data_path = target_dir / DATA_FILE
        if not data_path.exists():
            return None

        try:
            data = data_path.read_bytes()
            metadata_path = target_dir / METADATA_FILE
            metadata: Dict[str, Any] = {}
            if metadata_path.exists():
                document = json.loads(metadata_path.read_text(encoding="utf-8"))
                metadata = document.get("metadata") or {}
        except (OSError, ValueError) as e:
            raise StorageError(f"Failed to read object {key}: {e}") from e

        return StoredObject(key=key, data=data, metadata=metadata)

    async def exists(self, key: str) -> bool:
        return (self.get_target_path(key) / DATA_FILE).exists()

    def get_backend_name(self) -> str:
        return "local"

    @staticmethod
    def _write_atomic(path: Path, content: bytes) -> None:
        """Write to a sibling temp file, then rename over the target."""
        tmp_path = path.with_name(f".{path.name}.tmp")
        with open(tmp_path, "wb") as f:
            f.write(content)
        os.replace(tmp_path, path)
