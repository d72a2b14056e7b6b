"""Upload data models."""

from typing import Any, Dict, Optional

from pydantic import BaseModel, Field


class CreateResult(BaseModel):
    """Result of creating an upload session."""

    upload_id: str


class UploadInfo(BaseModel):
    """Current state of an upload session."""

    offset: int
    key: str
    upload_length: Optional[int] = None
    metadata: Optional[Dict[str, Any]] = None


class AppendResult(BaseModel):
    """Result of appending to an upload session."""

    offset: int
    upload: UploadInfo


class ObjectInfo(BaseModel):
    """Size and metadata of a finalized object."""

    content_length: int
    metadata: Dict[str, Any] = Field(default_factory=dict)
