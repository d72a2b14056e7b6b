"""Custom exceptions for the staging store."""


class UploadStoreError(Exception):
    """Base exception for the staging store."""
    pass


class UploadNotFound(UploadStoreError):
    """Exception raised when an upload session id is unknown."""

    def __init__(self, upload_id: str):
        self.upload_id = upload_id
        super().__init__(f"Upload not found: {upload_id}")


class KeyNotFound(UploadStoreError):
    """Exception raised when no finalized object exists under a key."""

    def __init__(self, key: str):
        self.key = key
        super().__init__(f"Key not found: {key}")


class OffsetMismatch(UploadStoreError):
    """Exception raised when the caller's offset differs from the session's."""

    def __init__(self, actual: int, expected: int):
        self.actual = actual
        self.expected = expected
        super().__init__(f"Offset mismatch: upload is at {actual}, request expected {expected}")


class UploadLocked(UploadStoreError):
    """Exception raised when another append is in flight for the session."""

    def __init__(self, upload_id: str | None = None):
        self.upload_id = upload_id
        if upload_id is None:
            super().__init__("Upload is locked by a concurrent append")
        else:
            super().__init__(f"Upload {upload_id} is locked by a concurrent append")


class UploadLengthExceeded(UploadStoreError):
    """Exception raised when a stream carries more bytes than the upload allows."""

    def __init__(self, limit: int):
        self.limit = limit
        super().__init__(f"Stream exceeds remaining upload length of {limit} bytes")


class StorageError(UploadStoreError):
    """Exception raised when object backend operations fail."""
    pass
