"""Object backend selection from configuration."""

import logging
from typing import Optional

from stagestore.core.config import Settings, settings as default_settings
from stagestore.storage.base import ObjectBackend
from stagestore.storage.gcs import GCSObjectBackend
from stagestore.storage.local import LocalObjectBackend
from stagestore.storage.memory import MemoryObjectBackend
from stagestore.storage.upload_store import UploadStore

logger = logging.getLogger(__name__)


def get_storage_backend(settings: Optional[Settings] = None) -> ObjectBackend:
    """Build the object backend named by STORAGE_BACKEND.

    Raises:
        ValueError: If STORAGE_BACKEND names an unknown backend
    """
    settings = settings or default_settings
    name = settings.storage_backend_name

    if name == "memory":
        return MemoryObjectBackend()
    if name == "local":
        return LocalObjectBackend(settings.LOCAL_STORAGE_PATH)
    if name == "gcs":
        return GCSObjectBackend(
            bucket_name=settings.GCS_BUCKET_NAME,
            project_id=settings.GCP_PROJECT_ID,
            prefix=settings.GCS_OBJECT_PREFIX,
        )
    raise ValueError(f"Unknown STORAGE_BACKEND: {settings.STORAGE_BACKEND}")


def create_upload_store(settings: Optional[Settings] = None) -> UploadStore:
    """Create an upload store over the configured object backend."""
    settings = settings or default_settings
    backend = get_storage_backend(settings)
    logger.info(f"Upload store using {backend.get_backend_name()} object backend")
    return UploadStore(backend=backend, read_chunk_size=settings.READ_CHUNK_SIZE)
