"""Upload session and object storage."""

from stagestore.storage.base import ObjectBackend, StoredObject
from stagestore.storage.factory import create_upload_store, get_storage_backend
from stagestore.storage.gcs import GCSObjectBackend
from stagestore.storage.local import LocalObjectBackend
from stagestore.storage.memory import MemoryObjectBackend
from stagestore.storage.upload_store import UploadSession, UploadStore

__all__ = [
    "ObjectBackend",
    "StoredObject",
    "MemoryObjectBackend",
    "LocalObjectBackend",
    "GCSObjectBackend",
    "UploadSession",
    "UploadStore",
    "get_storage_backend",
    "create_upload_store",
]
