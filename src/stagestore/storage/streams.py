"""Inbound byte stream helpers for the append pipeline."""

import inspect
from typing import Any, AsyncIterable, AsyncIterator, Iterable, Optional, Protocol, Union

from stagestore.exceptions import UploadLengthExceeded


class ByteReader(Protocol):
    """Binary file-like object; read() may be sync or async."""

    def read(self, n: int, /) -> Any: ...


# Anything append() can consume
ByteStream = Union[AsyncIterable[bytes], Iterable[bytes], ByteReader, bytes, bytearray, memoryview]


async def iter_chunks(stream: ByteStream, chunk_size: int = 65536) -> AsyncIterator[bytes]:
    """Yield the chunks of an inbound stream in order, skipping empty ones."""
    if isinstance(stream, str):
        raise TypeError("Text streams are not supported, encode to bytes first")

    if isinstance(stream, (bytes, bytearray, memoryview)):
        if stream:
            yield bytes(stream)
        return

    if hasattr(stream, "__aiter__"):
        async for chunk in stream:
            if chunk:
                yield bytes(chunk)
        return

    read = getattr(stream, "read", None)
    if callable(read):
        while True:
            chunk = read(chunk_size)
            if inspect.isawaitable(chunk):
                chunk = await chunk
            if not chunk:
                return
            yield bytes(chunk)

    if isinstance(stream, Iterable):
        for chunk in stream:
            if chunk:
                yield bytes(chunk)
        return

    raise TypeError(f"Unsupported stream type: {type(stream).__name__}")


async def limit_stream(
    chunks: AsyncIterator[bytes], max_bytes: Optional[int]
) -> AsyncIterator[bytes]:
    """Pass through at most max_bytes bytes of chunks.

    When the source carries more than max_bytes, the permitted prefix is
    yielded first and UploadLengthExceeded is raised afterwards, so the
    consumer keeps every byte up to the limit. ``max_bytes=None`` disables
    the limit.
    """
    if max_bytes is None:
        async for chunk in chunks:
            yield chunk
        return

    remaining = max_bytes
    async for chunk in chunks:
        if len(chunk) > remaining:
            if remaining:
                yield chunk[:remaining]
            raise UploadLengthExceeded(max_bytes)
        remaining -= len(chunk)
        yield chunk
