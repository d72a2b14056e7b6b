"""Stream helpers for upload store tests."""

import asyncio


async def chunked(*chunks: bytes):
    """Async byte stream yielding the given chunks."""
    for chunk in chunks:
        await asyncio.sleep(0)
        yield chunk


async def failing(*chunks: bytes, error: Exception):
    """Async byte stream that yields chunks, then fails."""
    for chunk in chunks:
        await asyncio.sleep(0)
        yield chunk
    raise error


async def gated(gate: asyncio.Event, *chunks: bytes):
    """Async byte stream that blocks until gate is set."""
    await gate.wait()
    for chunk in chunks:
        yield chunk


async def read_all(stream) -> bytes:
    """Drain an async byte stream."""
    parts = []
    async for chunk in stream:
        parts.append(chunk)
    return b"".join(parts)


async def settle(rounds: int = 5) -> None:
    """Let scheduled callbacks run."""
    for _ in range(rounds):
        await asyncio.sleep(0)
