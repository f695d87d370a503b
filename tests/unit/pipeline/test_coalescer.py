"""Unit tests for request coalescing."""

import asyncio

import pytest

from agent_gateway.exceptions import InternalCoalescingError, UpstreamRejectedError
from agent_gateway.pipeline.coalescer import CoalescingStats, RequestCoalescer


class TestCoalescingStats:
    """Tests for CoalescingStats."""

    def test_rate_empty(self):
        assert CoalescingStats().coalesce_rate == 0.0

    def test_rate(self):
        stats = CoalescingStats(total_calls=10, coalesced=4, unique=6)
        assert stats.coalesce_rate == 0.4


class TestRequestCoalescer:
    """Tests for RequestCoalescer."""

    @pytest.fixture
    def coalescer(self):
        return RequestCoalescer()

    @pytest.mark.asyncio
    async def test_single_call_runs_producer(self, coalescer):
        """Test a lone call runs its producer."""

        async def producer():
            return "answer"

        result, joined = await coalescer.run("fp-1", producer)

        assert result == "answer"
        assert joined is False
        assert coalescer.in_flight_count == 0

    @pytest.mark.asyncio
    async def test_concurrent_calls_share_one_producer(self, coalescer):
        """Test identical concurrent calls invoke the producer exactly once."""
        calls = 0
        gate = asyncio.Event()

        async def producer():
            nonlocal calls
            calls += 1
            await gate.wait()
            return "shared"

        tasks = [
            asyncio.create_task(coalescer.run_exclusive("fp-1", producer))
            for _ in range(5)
        ]
        await asyncio.sleep(0)
        assert coalescer.is_in_flight("fp-1")

        gate.set()
        results = await asyncio.gather(*tasks)

        assert results == ["shared"] * 5
        assert calls == 1
        assert coalescer.stats.coalesced == 4
        assert coalescer.stats.unique == 1

    @pytest.mark.asyncio
    async def test_different_fingerprints_run_separately(self, coalescer):
        """Test different fingerprints never share a call."""
        calls = []

        async def producer_for(name):
            calls.append(name)
            await asyncio.sleep(0)
            return name

        results = await asyncio.gather(
            coalescer.run_exclusive("fp-a", lambda: producer_for("a")),
            coalescer.run_exclusive("fp-b", lambda: producer_for("b")),
        )

        assert results == ["a", "b"]
        assert sorted(calls) == ["a", "b"]

    @pytest.mark.asyncio
    async def test_failure_reaches_every_waiter(self, coalescer):
        """Test a producer failure is raised to all waiters."""
        gate = asyncio.Event()

        async def producer():
            await gate.wait()
            raise UpstreamRejectedError("bad request")

        tasks = [
            asyncio.create_task(coalescer.run_exclusive("fp-1", producer))
            for _ in range(3)
        ]
        await asyncio.sleep(0)
        gate.set()
        results = await asyncio.gather(*tasks, return_exceptions=True)

        assert all(isinstance(r, UpstreamRejectedError) for r in results)
        assert coalescer.in_flight_count == 0

    @pytest.mark.asyncio
    async def test_entry_released_after_failure(self, coalescer):
        """Test a later call starts a fresh producer after a failure."""
        attempts = 0

        async def producer():
            nonlocal attempts
            attempts += 1
            if attempts == 1:
                raise UpstreamRejectedError("first fails")
            return "second works"

        with pytest.raises(UpstreamRejectedError):
            await coalescer.run_exclusive("fp-1", producer)

        assert await coalescer.run_exclusive("fp-1", producer) == "second works"
        assert attempts == 2

    @pytest.mark.asyncio
    async def test_cancelled_waiter_does_not_cancel_shared_call(self, coalescer):
        """Test one waiter leaving keeps the call alive for the others."""
        gate = asyncio.Event()

        async def producer():
            await gate.wait()
            return "done"

        first = asyncio.create_task(coalescer.run_exclusive("fp-1", producer))
        second = asyncio.create_task(coalescer.run_exclusive("fp-1", producer))
        await asyncio.sleep(0)

        first.cancel()
        with pytest.raises(asyncio.CancelledError):
            await first

        gate.set()
        assert await second == "done"

    @pytest.mark.asyncio
    async def test_abandoned_call_cancelled_when_configured(self):
        """Test the shared call is cancelled once every waiter left."""
        coalescer = RequestCoalescer(cancel_when_abandoned=True)
        started = asyncio.Event()
        cancelled = asyncio.Event()

        async def producer():
            started.set()
            try:
                await asyncio.Event().wait()
            except asyncio.CancelledError:
                cancelled.set()
                raise

        waiter = asyncio.create_task(coalescer.run_exclusive("fp-1", producer))
        await started.wait()

        waiter.cancel()
        with pytest.raises(asyncio.CancelledError):
            await waiter

        await asyncio.wait_for(cancelled.wait(), timeout=1)
        for _ in range(3):
            await asyncio.sleep(0)
        assert coalescer.in_flight_count == 0

    @pytest.mark.asyncio
    async def test_abandoned_call_keeps_running_by_default(self, coalescer):
        """Test the shared call finishes even with no waiter left."""
        gate = asyncio.Event()
        finished = asyncio.Event()

        async def producer():
            await gate.wait()
            finished.set()
            return "late"

        waiter = asyncio.create_task(coalescer.run_exclusive("fp-1", producer))
        await asyncio.sleep(0)
        waiter.cancel()
        with pytest.raises(asyncio.CancelledError):
            await waiter

        gate.set()
        await asyncio.wait_for(finished.wait(), timeout=1)

    @pytest.mark.asyncio
    async def test_shared_call_cancelled_under_waiters(self, coalescer):
        """Test waiters get an internal error if the shared call is cancelled."""
        started = asyncio.Event()

        async def producer():
            started.set()
            await asyncio.Event().wait()

        waiter = asyncio.create_task(coalescer.run_exclusive("fp-1", producer))
        await started.wait()

        coalescer._in_flight["fp-1"].task.cancel()

        with pytest.raises(InternalCoalescingError):
            await waiter

    @pytest.mark.asyncio
    async def test_reset_stats(self, coalescer):
        async def producer():
            return 1

        await coalescer.run("fp-1", producer)
        coalescer.reset_stats()

        assert coalescer.stats.total_calls == 0
