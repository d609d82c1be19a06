# src/forkline/engine/streams.py
"""Lazily produced record streams and their forks.

A RecordStream wraps one lazily produced sequence. It is consumed in exactly
one of two ways:

- linearly: iterated once, or piped into a derived stream (transforms);
- through forks: any number of StreamFork views attached BEFORE the first
  record is produced, each observing the full sequence independently.

Forks are pull-driven. Whichever fork needs an item and has none buffered
pulls the next item from the source (under a lock) and appends it to the
buffer of every open sibling. Buffers are bounded by buffer_size: a pull
waits while any open sibling's buffer is full, so a slow consumer holds the
source back instead of letting memory grow. A closed fork stops receiving
items and no longer counts for backpressure.

Two-phase use:
    stream = RecordStream(records())
    a, b = stream.fork(), stream.fork()   # attach phase
    await asyncio.gather(consume(a), consume(b))  # drive phase

A fork attached after the source advanced would miss earlier items, so
fork() raises StreamStateError once production has started. Once every fork
was closed the stream closes its source, and through pipe() every upstream
stream, so an abandoned branch never holds back the forks it was split from.
"""

from __future__ import annotations

import asyncio
from collections import deque
from collections.abc import AsyncIterable, AsyncIterator, Callable, Iterable
from typing import Any

from forkline.contracts.errors import StreamStateError

DEFAULT_BUFFER_SIZE = 1000


class RecordStream:
    """A lazily produced record sequence that can be piped or forked."""

    def __init__(
        self,
        source: AsyncIterable[Any] | Iterable[Any],
        *,
        buffer_size: int | None = DEFAULT_BUFFER_SIZE,
        upstream: RecordStream | None = None,
    ) -> None:
        if buffer_size is not None and buffer_size < 1:
            raise ValueError(f"buffer_size must be >= 1 or None, got {buffer_size}")

        self._source = source
        self._buffer_size = buffer_size
        self._upstream = upstream

        self._iterator: AsyncIterator[Any] | None = None
        self._forks: list[StreamFork] = []
        self._consumed_linearly = False
        self._exhausted = False
        self._error: Exception | None = None
        self._closed = False

        self._pull_lock = asyncio.Lock()
        self._space = asyncio.Condition()

    @property
    def buffer_size(self) -> int | None:
        return self._buffer_size

    @property
    def started(self) -> bool:
        """True once the source has been asked for its first record."""
        return self._iterator is not None

    @property
    def fork_count(self) -> int:
        return len(self._forks)

    # === Linear consumption ===

    def __aiter__(self) -> AsyncIterator[Any]:
        self._claim_linear()
        return self._open()

    def pipe(self, fn: Callable[[AsyncIterator[Any]], AsyncIterable[Any]]) -> RecordStream:
        """Derive a new stream by passing this stream's records through fn.

        fn is typically an async generator function; it must not start
        consuming until the derived stream is iterated. The derived stream
        inherits this stream's buffer_size.
        """
        self._claim_linear()
        return RecordStream(fn(self._open()), buffer_size=self._buffer_size, upstream=self)

    def map(self, fn: Callable[[Any], Any]) -> RecordStream:
        async def _map(records: AsyncIterator[Any]) -> AsyncIterator[Any]:
            async for record in records:
                yield fn(record)

        return self.pipe(_map)

    def filter(self, predicate: Callable[[Any], bool]) -> RecordStream:
        async def _filter(records: AsyncIterator[Any]) -> AsyncIterator[Any]:
            async for record in records:
                if predicate(record):
                    yield record

        return self.pipe(_filter)

    async def collect(self) -> list[Any]:
        """Consume the stream linearly into a list."""
        return [record async for record in self]

    def _claim_linear(self) -> None:
        if self._forks:
            raise StreamStateError("Stream has forks attached; consume it through its forks")
        if self._consumed_linearly or self.started:
            raise StreamStateError("Stream has already been consumed; a stream can be consumed linearly only once")
        self._consumed_linearly = True

    def _open(self) -> AsyncIterator[Any]:
        self._iterator = self._iterate_source()
        return self._iterator

    async def _iterate_source(self) -> AsyncIterator[Any]:
        source = self._source
        if isinstance(source, AsyncIterable):
            async for record in source:
                yield record
        else:
            for record in source:
                yield record

    # === Fan-out ===

    def fork(self) -> StreamFork:
        """Attach a new independent view over this stream.

        Raises:
            StreamStateError: The stream already started producing or was
                consumed linearly
        """
        if self._consumed_linearly:
            raise StreamStateError("Cannot fork a stream that is consumed linearly")
        if self.started:
            raise StreamStateError("Cannot fork a stream that already started producing records; attach every fork before consuming")

        fork = StreamFork(self)
        self._forks.append(fork)
        return fork

    async def _next_for(self, fork: StreamFork) -> Any:
        while True:
            if fork._buffer:
                record = fork._buffer.popleft()
                await self._notify_space()
                return record
            if fork.closed:
                raise StopAsyncIteration
            if self._exhausted:
                if self._error is not None:
                    raise self._error
                raise StopAsyncIteration
            await self._pull(fork)

    async def _pull(self, requester: StreamFork) -> None:
        async with self._pull_lock:
            # Another fork may have pulled while we waited for the lock
            if requester._buffer or self._exhausted:
                return

            if self._buffer_size is not None:
                async with self._space:
                    await self._space.wait_for(self._has_space)

            if self._iterator is None:
                self._iterator = self._iterate_source()

            try:
                record = await anext(self._iterator)
            except StopAsyncIteration:
                self._exhausted = True
            except Exception as exc:
                # Delivered to every fork when it reaches this point
                self._error = exc
                self._exhausted = True
            else:
                for fork in self._forks:
                    if not fork.closed:
                        fork._buffer.append(record)

    async def aclose(self) -> None:
        """Stop producing: close the source and every upstream stream. Idempotent."""
        if self._closed:
            return
        self._closed = True
        async with self._pull_lock:
            self._exhausted = True
            if self._iterator is not None:
                await self._iterator.aclose()
            source_aclose = getattr(self._source, "aclose", None)
            if source_aclose is not None:
                await source_aclose()
        if self._upstream is not None:
            await self._upstream.aclose()

    async def _fork_closed(self) -> None:
        if all(fork.closed for fork in self._forks):
            await self.aclose()
        else:
            await self._notify_space()

    def _has_space(self) -> bool:
        assert self._buffer_size is not None
        return all(len(fork._buffer) < self._buffer_size for fork in self._forks if not fork.closed)

    async def _notify_space(self) -> None:
        if self._buffer_size is None:
            return
        async with self._space:
            self._space.notify_all()


class StreamFork:
    """One independent consumption view over a forked RecordStream.

    Consuming a fork never advances or exhausts any sibling fork.
    """

    def __init__(self, stream: RecordStream) -> None:
        self._stream = stream
        self._buffer: deque[Any] = deque()
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def buffered(self) -> int:
        return len(self._buffer)

    def __aiter__(self) -> StreamFork:
        return self

    async def __anext__(self) -> Any:
        if self._closed:
            raise StopAsyncIteration
        return await self._stream._next_for(self)

    async def aclose(self) -> None:
        """Detach this fork; buffered records are dropped. Idempotent.

        Closing the last open fork closes the stream itself.
        """
        if self._closed:
            return
        self._closed = True
        self._buffer.clear()
        await self._stream._fork_closed()
