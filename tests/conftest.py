"""Pytest configuration and shared fixtures."""

import pytest

from stagestore.storage.memory import MemoryObjectBackend
from stagestore.storage.upload_store import UploadStore


@pytest.fixture
def backend():
    """Fresh in-memory object backend."""
    return MemoryObjectBackend()


@pytest.fixture
def store(backend):
    """Create a fresh upload store for each test."""
    return UploadStore(backend=backend)
