"""
Staging store for resumable, chunked uploads.

Clients append sequential byte ranges to an upload session; once the
declared length is reached the bytes are promoted into key-addressed
object storage.
"""

from stagestore.exceptions import (
    KeyNotFound,
    OffsetMismatch,
    StorageError,
    UploadLengthExceeded,
    UploadLocked,
    UploadNotFound,
    UploadStoreError,
)
from stagestore.models.upload import AppendResult, CreateResult, ObjectInfo, UploadInfo
from stagestore.storage import UploadStore, create_upload_store

__all__ = [
    "UploadStore",
    "create_upload_store",
    "AppendResult",
    "CreateResult",
    "ObjectInfo",
    "UploadInfo",
    "UploadStoreError",
    "UploadNotFound",
    "KeyNotFound",
    "OffsetMismatch",
    "UploadLocked",
    "UploadLengthExceeded",
    "StorageError",
]
