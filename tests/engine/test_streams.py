"""Tests for RecordStream and StreamFork."""

import asyncio
from collections.abc import AsyncIterator
from typing import Any

import pytest

from forkline.contracts.errors import StreamStateError
from forkline.engine.streams import DEFAULT_BUFFER_SIZE, RecordStream, StreamFork


class _Source:
    """Async record source that tracks what it produced and whether it closed."""

    def __init__(self, items: list[Any], fail_after: int | None = None) -> None:
        self.items = items
        self.fail_after = fail_after
        self.produced: list[Any] = []
        self.closed = False

    async def generate(self) -> AsyncIterator[Any]:
        try:
            for index, item in enumerate(self.items):
                if self.fail_after is not None and index == self.fail_after:
                    raise RuntimeError("source broke")
                self.produced.append(item)
                yield item
        finally:
            self.closed = True


async def _drain(fork: StreamFork) -> tuple[list[Any], BaseException | None]:
    seen: list[Any] = []
    try:
        async for record in fork:
            seen.append(record)
    except RuntimeError as exc:
        return seen, exc
    return seen, None


class TestLinearConsumption:
    @pytest.mark.asyncio
    async def test_collect_sync_iterable(self) -> None:
        assert await RecordStream([1, 2, 3]).collect() == [1, 2, 3]

    @pytest.mark.asyncio
    async def test_collect_async_source(self) -> None:
        source = _Source(["a", "b"])

        assert await RecordStream(source.generate()).collect() == ["a", "b"]

    @pytest.mark.asyncio
    async def test_map_and_filter_chain(self) -> None:
        stream = RecordStream([1, 2, 3]).map(lambda x: x * 2).filter(lambda x: x > 2)

        assert await stream.collect() == [4, 6]

    @pytest.mark.asyncio
    async def test_derived_stream_inherits_buffer_size(self) -> None:
        stream = RecordStream([1], buffer_size=7).map(str)

        assert stream.buffer_size == 7

    @pytest.mark.asyncio
    async def test_second_linear_consumption_rejected(self) -> None:
        stream = RecordStream([1, 2])
        await stream.collect()

        with pytest.raises(StreamStateError, match="already been consumed"):
            await stream.collect()

    def test_pipe_twice_rejected(self) -> None:
        stream = RecordStream([1])
        stream.map(str)

        with pytest.raises(StreamStateError):
            stream.map(repr)

    def test_linear_after_fork_rejected(self) -> None:
        stream = RecordStream([1])
        stream.fork()

        with pytest.raises(StreamStateError, match="forks attached"):
            stream.map(str)

    def test_fork_after_linear_rejected(self) -> None:
        stream = RecordStream([1])
        stream.map(str)

        with pytest.raises(StreamStateError, match="consumed linearly"):
            stream.fork()

    def test_invalid_buffer_size(self) -> None:
        with pytest.raises(ValueError, match="buffer_size"):
            RecordStream([], buffer_size=0)

    def test_default_buffer_size(self) -> None:
        assert RecordStream([]).buffer_size == DEFAULT_BUFFER_SIZE


class TestForks:
    """Every fork observes the full sequence independently."""

    @pytest.mark.asyncio
    async def test_each_fork_sees_full_sequence(self) -> None:
        source = _Source(["A", "B", "C"])
        stream = RecordStream(source.generate())
        forks = [stream.fork() for _ in range(3)]

        results = await asyncio.gather(*(_drain(fork) for fork in forks))

        assert [seen for seen, _ in results] == [["A", "B", "C"]] * 3
        # The source is pulled once, not once per fork
        assert source.produced == ["A", "B", "C"]

    @pytest.mark.asyncio
    async def test_forks_consumed_one_after_another(self) -> None:
        stream = RecordStream([1, 2, 3], buffer_size=None)
        first, second = stream.fork(), stream.fork()

        assert (await _drain(first))[0] == [1, 2, 3]
        assert second.buffered == 3
        assert (await _drain(second))[0] == [1, 2, 3]

    @pytest.mark.asyncio
    async def test_fork_after_start_rejected(self) -> None:
        stream = RecordStream([1, 2])
        fork = stream.fork()
        await anext(fork)

        assert stream.started
        with pytest.raises(StreamStateError, match="already started"):
            stream.fork()

    @pytest.mark.asyncio
    async def test_source_error_reaches_every_fork(self) -> None:
        source = _Source([1, 2, 3], fail_after=1)
        stream = RecordStream(source.generate())
        forks = [stream.fork(), stream.fork()]

        results = await asyncio.gather(*(_drain(fork) for fork in forks))

        for seen, error in results:
            assert seen == [1]
            assert isinstance(error, RuntimeError)
            assert str(error) == "source broke"

    @pytest.mark.asyncio
    async def test_fork_count(self) -> None:
        stream = RecordStream([])
        stream.fork()
        stream.fork()

        assert stream.fork_count == 2


class TestBackpressure:
    @pytest.mark.asyncio
    async def test_slow_fork_holds_back_the_source(self) -> None:
        source = _Source([1, 2, 3, 4, 5])
        stream = RecordStream(source.generate(), buffer_size=2)
        fast, slow = stream.fork(), stream.fork()

        fast_task = asyncio.create_task(_drain(fast))
        await asyncio.sleep(0.05)

        assert not fast_task.done()
        assert source.produced == [1, 2]
        assert slow.buffered == 2

        slow_seen, _ = await _drain(slow)
        fast_seen, _ = await asyncio.wait_for(fast_task, timeout=1)

        assert slow_seen == fast_seen == [1, 2, 3, 4, 5]

    @pytest.mark.asyncio
    async def test_unbounded_buffers_never_block(self) -> None:
        stream = RecordStream(range(100), buffer_size=None)
        fast, idle = stream.fork(), stream.fork()

        seen, _ = await asyncio.wait_for(_drain(fast), timeout=1)

        assert seen == list(range(100))
        assert idle.buffered == 100

    @pytest.mark.asyncio
    async def test_closed_fork_does_not_count(self) -> None:
        stream = RecordStream(range(10), buffer_size=1)
        active, abandoned = stream.fork(), stream.fork()
        await abandoned.aclose()

        seen, _ = await asyncio.wait_for(_drain(active), timeout=1)

        assert seen == list(range(10))
        assert abandoned.buffered == 0


class TestClosing:
    @pytest.mark.asyncio
    async def test_closed_fork_ends_iteration(self) -> None:
        stream = RecordStream([1, 2, 3])
        fork = stream.fork()
        stream.fork()
        await fork.aclose()
        await fork.aclose()

        assert fork.closed
        assert await _drain(fork) == ([], None)

    @pytest.mark.asyncio
    async def test_closing_every_fork_closes_the_source(self) -> None:
        source = _Source([1, 2, 3])
        stream = RecordStream(source.generate())
        first, second = stream.fork(), stream.fork()
        assert await anext(first) == 1

        await first.aclose()
        assert not source.closed
        await second.aclose()

        assert source.closed
        assert source.produced == [1]

    @pytest.mark.asyncio
    async def test_closing_a_derived_stream_closes_upstream(self) -> None:
        source = _Source([1, 2, 3])
        derived = RecordStream(source.generate()).map(lambda x: x * 10)
        fork = derived.fork()
        assert await anext(fork) == 10

        await fork.aclose()

        assert source.closed

    @pytest.mark.asyncio
    async def test_abandoned_branch_does_not_stall_siblings(self) -> None:
        parent = RecordStream(range(20), buffer_size=2)
        sibling = parent.fork()
        branch = RecordStream(parent.fork(), buffer_size=2)
        branch_fork = branch.fork()
        assert await anext(branch_fork) == 0

        await branch_fork.aclose()
        seen, _ = await asyncio.wait_for(_drain(sibling), timeout=1)

        assert seen == list(range(20))
