"""File helpers and the consumer side of a parse.

A parse is a plain generator of events. `EventStream` wraps it so callers
can stop early and still release the file handle, and `AsyncEventStream`
drives the same generator from an event loop, one event per worker-thread
hop, so a consumer coroutine never blocks the loop on file I/O.
"""

from __future__ import annotations

import asyncio
import os
import threading
from collections.abc import Generator
from pathlib import Path
from types import TracebackType
from typing import BinaryIO, Optional

from pydantic import BaseModel

from chatlogue.errors import ParseFailedError
from chatlogue.lib.log import get_logger
from chatlogue.models import (
    DoneEvent,
    ErrorEvent,
    MembersEvent,
    MessagesEvent,
    MetaEvent,
    ParsedMember,
    ParsedMessage,
    ParsedMeta,
    ParseEvent,
)

logger = get_logger(__name__)

_EXHAUSTED = object()


def file_size(path: Path | str) -> int:
    return os.path.getsize(path)


def read_head_bytes(path: Path | str, size: int) -> bytes:
    """Read at most ``size`` bytes from the start of ``path``."""
    with open(path, "rb") as handle:
        return handle.read(size)


def decode_head(blob: bytes) -> str:
    # A fixed-size prefix can end in the middle of a multi-byte character.
    return blob.decode("utf-8", errors="ignore")


class CountingReader:
    """Binary reader that counts the bytes pulled through it."""

    def __init__(self, raw: BinaryIO) -> None:
        self._raw = raw
        self.bytes_read = 0

    def read(self, size: int = -1) -> bytes:
        chunk = self._raw.read(size)
        self.bytes_read += len(chunk)
        return chunk

    def close(self) -> None:
        self._raw.close()

    @property
    def closed(self) -> bool:
        return self._raw.closed


class ParseResult(BaseModel):
    """A whole parse collapsed into memory. Only for small files and tests."""

    meta: ParsedMeta
    members: list[ParsedMember]
    messages: list[ParsedMessage]
    message_count: int
    member_count: int


class EventStream:
    """Closable iterator over the events of one parse.

    Iterating pulls one event at a time from the producing generator.
    ``close()`` (or leaving a ``with`` block) releases the underlying file
    even when the sequence was not consumed to its terminal event. A step
    and a close never overlap: ``close()`` called from another thread
    waits for the running step to return first.
    """

    def __init__(self, events: Generator[ParseEvent, None, None], *, label: str = "") -> None:
        self._events = events
        self._label = label
        self._finished = False
        self._lock = threading.Lock()

    def __iter__(self) -> EventStream:
        return self

    def __next__(self) -> ParseEvent:
        with self._lock:
            try:
                event = next(self._events)
            except StopIteration:
                self._finished = True
                raise
            if event.type in ("done", "error"):
                self._finished = True
            return event

    def close(self) -> None:
        with self._lock:
            abandoned = not self._finished
            self._events.close()
            self._finished = True
        if abandoned:
            logger.debug("parse_abandoned", source=self._label)

    @property
    def finished(self) -> bool:
        return self._finished

    @property
    def label(self) -> str:
        return self._label

    def __enter__(self) -> EventStream:
        return self

    def __exit__(
        self,
        exc_type: Optional[type[BaseException]],
        exc: Optional[BaseException],
        tb: Optional[TracebackType],
    ) -> None:
        self.close()

    def collect(self) -> ParseResult:
        """Drain the stream into a `ParseResult`.

        Raises:
            ParseFailedError: If the sequence ends with an error event.
        """
        meta: Optional[ParsedMeta] = None
        members: list[ParsedMember] = []
        messages: list[ParsedMessage] = []
        with self:
            for event in self:
                if isinstance(event, MetaEvent):
                    meta = event.meta
                elif isinstance(event, MembersEvent):
                    members = list(event.members)
                elif isinstance(event, MessagesEvent):
                    messages.extend(event.messages)
                elif isinstance(event, ErrorEvent):
                    raise ParseFailedError(event.reason)
                elif isinstance(event, DoneEvent):
                    assert meta is not None
                    return ParseResult(
                        meta=meta,
                        members=members,
                        messages=messages,
                        message_count=event.message_count,
                        member_count=event.member_count,
                    )
        raise ParseFailedError("event stream ended without a terminal event")

    def to_async(self) -> AsyncEventStream:
        return AsyncEventStream(self)


class AsyncEventStream:
    """Async view of an `EventStream`.

    Each step of the producer runs in a worker thread, so waiting on the
    file or the decoder suspends only the awaiting coroutine. A cancelled
    ``__anext__`` (``asyncio.wait_for`` timing out, a task being cancelled)
    does not stop the step already running in the thread; that step stays
    pending and is handed to the next ``__anext__``, or settled by
    ``aclose()`` before the file is released.

    Example:
        async with registry.parse(path).to_async() as events:
            async for event in events:
                ...
    """

    def __init__(self, stream: EventStream) -> None:
        self._stream = stream
        self._pending: Optional[asyncio.Future[object]] = None

    def __aiter__(self) -> AsyncEventStream:
        return self

    async def __anext__(self) -> ParseEvent:
        if self._pending is None:
            self._pending = asyncio.ensure_future(asyncio.to_thread(next, self._stream, _EXHAUSTED))
        try:
            event = await asyncio.shield(self._pending)
        except asyncio.CancelledError:
            # The step is still running in its thread; keep it for the next caller.
            raise
        except Exception:
            self._pending = None
            raise
        self._pending = None
        if event is _EXHAUSTED:
            raise StopAsyncIteration
        return event  # type: ignore[return-value]

    async def _settle_pending(self) -> None:
        pending, self._pending = self._pending, None
        if pending is None:
            return
        try:
            await pending
        except Exception as exc:
            logger.debug("parse_step_discarded", source=self._stream.label, error=str(exc))

    async def aclose(self) -> None:
        await self._settle_pending()
        await asyncio.to_thread(self._stream.close)

    async def __aenter__(self) -> AsyncEventStream:
        return self

    async def __aexit__(
        self,
        exc_type: Optional[type[BaseException]],
        exc: Optional[BaseException],
        tb: Optional[TracebackType],
    ) -> None:
        await self.aclose()


__all__ = [
    "AsyncEventStream",
    "CountingReader",
    "EventStream",
    "ParseResult",
    "decode_head",
    "file_size",
    "read_head_bytes",
]
