"""Tests for object backends."""

import json
from unittest.mock import MagicMock, patch

import pytest
from google.api_core.exceptions import Forbidden

from stagestore.core.config import Settings
from stagestore.exceptions import StorageError
from stagestore.storage.factory import create_upload_store, get_storage_backend
from stagestore.storage.gcs import KEY_FIELD, METADATA_FIELD, GCSObjectBackend
from stagestore.storage.local import LocalObjectBackend
from stagestore.storage.memory import MemoryObjectBackend


class TestMemoryObjectBackend:
    """Tests for in-memory backend."""

    @pytest.mark.asyncio
    async def test_put_and_get(self):
        backend = MemoryObjectBackend()

        await backend.put("a", b"data", {"x": 1})
        stored = await backend.get("a")

        assert stored.key == "a"
        assert stored.data == b"data"
        assert stored.metadata == {"x": 1}
        assert await backend.exists("a")

    @pytest.mark.asyncio
    async def test_missing(self):
        backend = MemoryObjectBackend()
        assert await backend.get("nope") is None
        assert not await backend.exists("nope")

    @pytest.mark.asyncio
    async def test_put_copies_payload(self):
        backend = MemoryObjectBackend()
        payload = bytearray(b"abc")

        await backend.put("a", payload, None)
        payload[0] = ord("z")

        stored = await backend.get("a")
        assert stored.data == b"abc"
        assert stored.metadata == {}

    def test_get_backend_name(self):
        assert MemoryObjectBackend().get_backend_name() == "memory"


class TestLocalObjectBackend:
    """Tests for local filesystem backend."""

    def test_get_target_path(self, tmp_path):
        """Keys map to hashed directories under the base path."""
        backend = LocalObjectBackend(tmp_path)

        path = backend.get_target_path("../etc/passwd")

        assert path.parent == tmp_path
        assert ".." not in path.name
        assert len(path.name) == 64
        assert backend.get_target_path("a/b") != backend.get_target_path("a_b")

    @pytest.mark.asyncio
    async def test_put_and_get(self, tmp_path):
        backend = LocalObjectBackend(tmp_path)

        await backend.put("uploads/report.csv", b"name,age\nJohn,30", {"region": "eu"})
        stored = await backend.get("uploads/report.csv")

        assert stored.data == b"name,age\nJohn,30"
        assert stored.metadata == {"region": "eu"}
        assert await backend.exists("uploads/report.csv")

        target = backend.get_target_path("uploads/report.csv")
        document = json.loads((target / "metadata.json").read_text())
        assert document["key"] == "uploads/report.csv"
        assert not list(target.glob(".*.tmp"))

    @pytest.mark.asyncio
    async def test_overwrite(self, tmp_path):
        backend = LocalObjectBackend(tmp_path)

        await backend.put("k", b"first", {"v": 1})
        await backend.put("k", b"second", None)
        stored = await backend.get("k")

        assert stored.data == b"second"
        assert stored.metadata == {}

    @pytest.mark.asyncio
    async def test_missing(self, tmp_path):
        backend = LocalObjectBackend(tmp_path)
        assert await backend.get("missing") is None
        assert not await backend.exists("missing")

    @pytest.mark.asyncio
    async def test_unserializable_metadata(self, tmp_path):
        backend = LocalObjectBackend(tmp_path)

        with pytest.raises(StorageError, match="not JSON serializable"):
            await backend.put("k", b"x", {"bad": object()})

        assert not await backend.exists("k")

    def test_get_backend_name(self, tmp_path):
        assert LocalObjectBackend(tmp_path).get_backend_name() == "local"


@pytest.fixture
def mock_gcs():
    """Patch the GCS client and settings used by the GCS backend."""
    with patch("stagestore.storage.gcs.storage.Client") as mock_client_class:
        with patch("stagestore.storage.gcs.settings") as mock_settings:
            mock_settings.GCS_BUCKET_NAME = "test-bucket"
            mock_settings.GCP_PROJECT_ID = "test-project"
            mock_settings.GCS_OBJECT_PREFIX = "uploads"

            mock_client = MagicMock()
            mock_bucket = MagicMock()
            mock_blob = MagicMock()
            mock_client_class.return_value = mock_client
            mock_client.bucket.return_value = mock_bucket
            mock_bucket.blob.return_value = mock_blob
            mock_bucket.get_blob.return_value = mock_blob

            yield mock_client_class, mock_bucket, mock_blob


class TestGCSObjectBackend:
    """Tests for GCS backend."""

    def test_get_target_path(self, mock_gcs):
        backend = GCSObjectBackend()
        assert backend.get_target_path("a/b.csv") == "gs://test-bucket/uploads/a/b.csv"

    def test_empty_prefix(self, mock_gcs):
        backend = GCSObjectBackend(prefix="")
        assert backend.get_blob_path("k") == "k"

    @pytest.mark.asyncio
    async def test_put(self, mock_gcs):
        mock_client_class, mock_bucket, mock_blob = mock_gcs
        backend = GCSObjectBackend()

        await backend.put("report.csv", b"abc", {"region": "eu"})

        mock_client_class.assert_called_once_with(project="test-project")
        mock_bucket.blob.assert_called_with("uploads/report.csv")
        mock_blob.upload_from_string.assert_called_once_with(b"abc", content_type="application/octet-stream")
        assert mock_blob.metadata[KEY_FIELD] == "report.csv"
        assert json.loads(mock_blob.metadata[METADATA_FIELD]) == {"region": "eu"}

    @pytest.mark.asyncio
    async def test_get(self, mock_gcs):
        _, mock_bucket, mock_blob = mock_gcs
        mock_blob.download_as_bytes.return_value = b"abc"
        mock_blob.metadata = {METADATA_FIELD: json.dumps({"region": "eu"})}
        backend = GCSObjectBackend()

        stored = await backend.get("report.csv")

        mock_bucket.get_blob.assert_called_once_with("uploads/report.csv")
        assert stored.data == b"abc"
        assert stored.metadata == {"region": "eu"}

    @pytest.mark.asyncio
    async def test_get_missing(self, mock_gcs):
        _, mock_bucket, _ = mock_gcs
        mock_bucket.get_blob.return_value = None

        assert await GCSObjectBackend().get("missing") is None

    @pytest.mark.asyncio
    async def test_get_failure(self, mock_gcs):
        _, _, mock_blob = mock_gcs
        mock_blob.download_as_bytes.side_effect = Forbidden("denied")

        with pytest.raises(StorageError, match="Failed to read object"):
            await GCSObjectBackend().get("report.csv")

    @pytest.mark.asyncio
    async def test_exists(self, mock_gcs):
        _, _, mock_blob = mock_gcs
        mock_blob.exists.return_value = True

        assert await GCSObjectBackend().exists("report.csv")

    def test_get_backend_name(self):
        assert GCSObjectBackend().get_backend_name() == "gcs"

    def test_get_bucket_missing_config(self):
        with patch("stagestore.storage.gcs.settings") as mock_settings:
            mock_settings.GCS_BUCKET_NAME = ""

            backend = GCSObjectBackend()

            with pytest.raises(ValueError, match="GCS_BUCKET_NAME not configured"):
                backend._get_bucket()


class TestFactory:
    """Tests for backend selection."""

    def test_memory(self):
        backend = get_storage_backend(Settings(STORAGE_BACKEND="memory"))
        assert isinstance(backend, MemoryObjectBackend)

    def test_local(self, tmp_path):
        backend = get_storage_backend(Settings(STORAGE_BACKEND="local", LOCAL_STORAGE_PATH=str(tmp_path)))
        assert isinstance(backend, LocalObjectBackend)
        assert backend.base_path == tmp_path

    def test_gcs(self):
        backend = get_storage_backend(
            Settings(STORAGE_BACKEND="GCS", GCS_BUCKET_NAME="bucket", GCS_OBJECT_PREFIX="staged")
        )
        assert isinstance(backend, GCSObjectBackend)
        assert backend.get_target_path("k") == "gs://bucket/staged/k"

    def test_unknown(self):
        with pytest.raises(ValueError, match="Unknown STORAGE_BACKEND"):
            get_storage_backend(Settings(STORAGE_BACKEND="s3"))

    @pytest.mark.asyncio
    async def test_create_upload_store(self, tmp_path):
        store = create_upload_store(
            Settings(STORAGE_BACKEND="local", LOCAL_STORAGE_PATH=str(tmp_path), READ_CHUNK_SIZE=2)
        )
        created = await store.create("k", upload_length=3)

        await store.append(created.upload_id, b"abc")

        assert store.read_chunk_size == 2
        assert (await store.backend.get("k")).data == b"abc"
