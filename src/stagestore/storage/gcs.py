"""Google Cloud Storage object backend."""

import json
import logging
from typing import Any, Dict, Optional

from google.api_core.exceptions import InternalServerError, ServiceUnavailable, TooManyRequests
from google.cloud import storage
from google.cloud.exceptions import NotFound
from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_exponential

from stagestore.core.config import settings
from stagestore.exceptions import StorageError
from stagestore.storage.base import ObjectBackend, StoredObject

logger = logging.getLogger(__name__)

METADATA_FIELD = "upload-metadata"
KEY_FIELD = "upload-key"

_transient = retry(
    stop=stop_after_attempt(3),
    wait=wait_exponential(multiplier=1, min=2, max=10),
    retry=retry_if_exception_type((ServiceUnavailable, TooManyRequests, InternalServerError)),
    reraise=True,
)


class GCSObjectBackend(ObjectBackend):
    """Google Cloud Storage object backend.

    Objects live at ``{prefix}/{key}`` in the configured bucket. Upload
    metadata is JSON-encoded into a single custom metadata field, since GCS
    custom metadata only holds strings.
    """

    def __init__(
        self,
        bucket_name: Optional[str] = None,
        project_id: Optional[str] = None,
        prefix: Optional[str] = None,
    ):
        self._bucket_name = bucket_name
        self._project_id = project_id
        self._prefix = prefix
        self._client: Optional[storage.Client] = None
        self._bucket: Optional[storage.Bucket] = None

    @property
    def bucket_name(self) -> str:
        return self._bucket_name or settings.GCS_BUCKET_NAME

    @property
    def prefix(self) -> str:
        prefix = self._prefix if self._prefix is not None else settings.GCS_OBJECT_PREFIX
        return prefix.strip("/")

    def _get_bucket(self) -> storage.Bucket:
        """Lazy-load and cache GCS bucket."""
        if self._bucket is None:
            if not self.bucket_name:
                raise ValueError("GCS_BUCKET_NAME not configured")

            self._client = storage.Client(project=self._project_id or settings.GCP_PROJECT_ID)
            self._bucket = self._client.bucket(self.bucket_name)

        return self._bucket

    def get_blob_path(self, key: str) -> str:
        """Blob name for an object key."""
        if not self.prefix:
            return key
        return f"{self.prefix}/{key}"

    def get_target_path(self, key: str) -> str:
        """Full gs:// URI for an object key."""
        return f"gs://{self.bucket_name}/{self.get_blob_path(key)}"

    async def put(self, key: str, data: bytes, metadata: Optional[Dict[str, Any]]) -> None:
        try:
            encoded = json.dumps(metadata or {}, ensure_ascii=False)
        except (TypeError, ValueError) as e:
            raise StorageError(f"Metadata for {key} is not JSON serializable: {e}") from e

        try:
            self._upload(key, data, encoded)
        except Exception as e:
            logger.error(
                "Failed to upload object to GCS",
                extra={"object_key": key, "gcs_uri": self.get_target_path(key), "error": str(e)},
            )
            raise StorageError(f"Failed to store object {key}: {e}") from e

        logger.debug(f"Stored object: key={key}, uri={self.get_target_path(key)}, size={len(data)}")

    async def get(self, key: str) -> Optional[StoredObject]:
        try:
            return self._download(key)
        except NotFound:
            return None
        except Exception as e:
            logger.error(
                "Failed to download object from GCS",
                extra={"object_key": key, "gcs_uri": self.get_target_path(key), "error": str(e)},
            )
            raise StorageError(f"Failed to read object {key}: {e}") from e

    async def exists(self, key: str) -> bool:
        try:
            return self._exists(key)
        except Exception as e:
            raise StorageError(f"Failed to check object {key}: {e}") from e

    def get_backend_name(self) -> str:
        return "gcs"

    @_transient
    def _upload(self, key: str, data: bytes, encoded_metadata: str) -> None:
        blob = self._get_bucket().blob(self.get_blob_path(key))
        blob.metadata = {KEY_FIELD: key, METADATA_FIELD: encoded_metadata}
        blob.upload_from_string(data, content_type="application/octet-stream")

    @_transient
    def _download(self, key: str) -> Optional[StoredObject]:
        blob = self._get_bucket().get_blob(self.get_blob_path(key))
        if blob is None:
            return None
        data = blob.download_as_bytes()
        raw = (blob.metadata or {}).get(METADATA_FIELD)
        metadata = json.loads(raw) if raw else {}
        return StoredObject(key=key, data=data, metadata=metadata)

    @_transient
    def _exists(self, key: str) -> bool:
        return self._get_bucket().blob(self.get_blob_path(key)).exists()
