"""Resumable upload staging store.

Uploads arrive as sequential byte ranges appended to a session. Once a
session has received its declared length, the accumulated bytes are
promoted into the object backend under the session's key.
"""

import asyncio
import inspect
import itertools
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, AsyncIterator, Awaitable, Callable, Dict, List, Optional, Set, Union

from stagestore.core.config import settings
from stagestore.core.logging import upload_id_context
from stagestore.exceptions import (
    KeyNotFound,
    OffsetMismatch,
    UploadLengthExceeded,
    UploadLocked,
    UploadNotFound,
)
from stagestore.models.upload import AppendResult, CreateResult, ObjectInfo, UploadInfo
from stagestore.storage.base import ObjectBackend
from stagestore.storage.memory import MemoryObjectBackend
from stagestore.storage.streams import ByteStream, iter_chunks, limit_stream

logger = logging.getLogger(__name__)

BeforeComplete = Callable[[UploadInfo, str], Union[Awaitable[None], None]]
OnInfo = Callable[[ObjectInfo], Union[Awaitable[None], None]]


@dataclass
class UploadSession:
    """In-flight upload state."""

    upload_id: str
    key: str
    upload_length: Optional[int] = None
    metadata: Optional[Dict[str, Any]] = None
    data: bytearray = field(default_factory=bytearray)
    locked: bool = False
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def offset(self) -> int:
        return len(self.data)


class UploadStore:
    """Staging store for resumable, chunked uploads.

    Sessions are held in memory by the store instance. Finalized objects go
    to the given object backend (in-memory by default).
    """

    def __init__(self, backend: Optional[ObjectBackend] = None, read_chunk_size: Optional[int] = None):
        self.backend = backend if backend is not None else MemoryObjectBackend()
        self.read_chunk_size = read_chunk_size or settings.READ_CHUNK_SIZE
        self._sessions: Dict[str, UploadSession] = {}
        self._ids = itertools.count()
        self._pending: Set[asyncio.Task] = set()

    async def create(
        self,
        key: str,
        upload_length: Optional[int] = None,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> CreateResult:
        """Open a new upload session for key.

        Args:
            key: Key the finished object will be stored under
            upload_length: Declared total length; None leaves the upload unbounded
            metadata: Opaque metadata carried through to the object

        Returns:
            CreateResult with the new upload id
        """
        if upload_length is not None and upload_length < 0:
            raise ValueError(f"upload_length must be non-negative, got {upload_length}")

        upload_id = str(next(self._ids))
        self._sessions[upload_id] = UploadSession(
            upload_id=upload_id,
            key=key,
            upload_length=upload_length,
            metadata=metadata,
        )

        logger.info(
            f"Upload session created: upload_id={upload_id}, key={key}, "
            f"upload_length={upload_length}"
        )
        return CreateResult(upload_id=upload_id)

    async def info(self, upload_id: str) -> UploadInfo:
        """Return the current offset and declared attributes of a session.

        A session that holds all of its declared bytes but whose object was
        never stored reports one byte less than it holds. The caller then
        re-sends the last byte, and that append drives the pending finalize.

        Raises:
            UploadNotFound: If upload_id is unknown
        """
        session = self._get_session(upload_id)
        offset = session.offset
        if offset == session.upload_length and not await self.backend.exists(session.key):
            offset -= 1
        return self._build_info(session, offset)

    async def append(
        self,
        upload_id: str,
        stream: ByteStream,
        expected_offset: Optional[int] = None,
        before_complete: Optional[BeforeComplete] = None,
    ) -> AppendResult:
        """Append the bytes of stream to an upload session.

        Bytes consumed from stream are committed to the session even when the
        stream fails or exceeds the remaining upload length; the error is
        raised after the commit. Callers resume from the offset reported by
        info().

        Args:
            upload_id: Session to append to
            stream: Async/sync iterable of bytes, binary file-like object or bytes
            expected_offset: Offset the caller believes the session is at
            before_complete: Hook run before the object is stored, called with
                the session info and upload id; may be async. If it raises,
                nothing is stored and the error propagates.

        Returns:
            AppendResult with the new offset and session info

        Raises:
            UploadNotFound: If upload_id is unknown
            OffsetMismatch: If expected_offset differs from the session offset
            UploadLocked: If another append is in flight for the session
            UploadLengthExceeded: If stream carries more than the remaining length
        """
        session = self._get_session(upload_id)
        offset = session.offset

        # All bytes received but never finalized: the retry of the last byte
        # (or an append without an offset) completes the upload.
        pending_complete = offset == session.upload_length and (
            expected_offset is None or expected_offset == session.upload_length - 1
        )

        if not pending_complete and expected_offset is not None and expected_offset != offset:
            raise OffsetMismatch(offset, expected_offset)

        if session.locked:
            raise UploadLocked(upload_id)

        token = upload_id_context.set(upload_id)
        session.locked = True
        try:
            if pending_complete:
                if not await self.backend.exists(session.key):
                    logger.info(f"Completing stalled upload: upload_id={upload_id}, key={session.key}")
                    return await self._complete(session, before_complete)
                if expected_offset is not None and expected_offset != offset:
                    raise OffsetMismatch(offset, expected_offset)

            budget = None if session.upload_length is None else session.upload_length - offset
            await self._receive(session, stream, budget)

            # A session that was already full before this append only finalizes
            # while its key has no object; otherwise it is already finalized.
            if session.offset == session.upload_length and (
                session.offset != offset or not await self.backend.exists(session.key)
            ):
                return await self._complete(session, before_complete)

            return AppendResult(offset=session.offset, upload=await self.info(upload_id))
        finally:
            session.locked = False
            upload_id_context.reset(token)

    def create_read_stream(self, key: str, on_info: Optional[OnInfo] = None) -> AsyncIterator[bytes]:
        """Return a stream over the object stored under key.

        Must be called from a running event loop. If on_info is given, it is
        scheduled to run once the caller yields and receives the object's
        ObjectInfo; it is not called when no object exists by then.

        Consuming the stream raises KeyNotFound if no object exists under key.
        """
        if on_info is not None:
            task = asyncio.get_running_loop().create_task(self._notify_info(key, on_info))
            self._pending.add(task)
            task.add_done_callback(self._pending.discard)
        return self._read(key)

    def _get_session(self, upload_id: str) -> UploadSession:
        session = self._sessions.get(upload_id)
        if session is None:
            raise UploadNotFound(upload_id)
        return session

    @staticmethod
    def _build_info(session: UploadSession, offset: int) -> UploadInfo:
        return UploadInfo(
            offset=offset,
            key=session.key,
            upload_length=session.upload_length,
            metadata=session.metadata,
        )

    async def _receive(self, session: UploadSession, stream: ByteStream, budget: Optional[int]) -> None:
        received: List[bytes] = []
        try:
            async for chunk in limit_stream(iter_chunks(stream, self.read_chunk_size), budget):
                received.append(chunk)
        except UploadLengthExceeded:
            logger.warning(
                f"Stream exceeds upload length: upload_id={session.upload_id}, "
                f"remaining={budget}, accepted={sum(len(c) for c in received)}"
            )
            raise
        finally:
            for chunk in received:
                session.data += chunk
            logger.debug(
                f"Committed {sum(len(c) for c in received)} bytes: "
                f"upload_id={session.upload_id}, offset={session.offset}"
            )

    async def _complete(
        self, session: UploadSession, before_complete: Optional[BeforeComplete]
    ) -> AppendResult:
        if before_complete is not None:
            snapshot = self._build_info(session, session.offset)
            try:
                result = before_complete(snapshot, session.upload_id)
                if inspect.isawaitable(result):
                    await result
            except Exception as e:
                logger.warning(
                    f"before_complete hook failed, upload left pending: "
                    f"upload_id={session.upload_id}, key={session.key}, error={e}"
                )
                raise

        await self.backend.put(session.key, bytes(session.data), session.metadata)

        logger.info(
            f"Upload completed: upload_id={session.upload_id}, key={session.key}, "
            f"size={session.offset}, backend={self.backend.get_backend_name()}, "
            f"elapsed={(datetime.now(timezone.utc) - session.created_at).total_seconds():.3f}s"
        )
        return AppendResult(offset=session.offset, upload=await self.info(session.upload_id))

    async def _notify_info(self, key: str, on_info: OnInfo) -> None:
        try:
            stored = await self.backend.get(key)
            if stored is None:
                return
            result = on_info(ObjectInfo(content_length=len(stored.data), metadata=stored.metadata or {}))
            if inspect.isawaitable(result):
                await result
        except Exception:
            logger.exception(f"on_info callback failed: key={key}")

    async def _read(self, key: str) -> AsyncIterator[bytes]:
        stored = await self.backend.get(key)
        if stored is None:
            raise KeyNotFound(key)
        data = stored.data
        for start in range(0, len(data), self.read_chunk_size):
            yield data[start:start + self.read_chunk_size]
