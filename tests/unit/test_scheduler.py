"""Tests for batch partitioning and bounded concurrency."""

import asyncio

import pytest

from riskgen.config import SelectionMode
from riskgen.orchestrator.models import OutcomeCategory, Transaction, TransactionState
from riskgen.orchestrator.outcomes import OutcomeAggregator
from riskgen.orchestrator.scheduler import BatchScheduler, partition
from riskgen.shared.errors import ConfigurationError


def _done(key: str, level: OutcomeCategory = OutcomeCategory.LOW) -> Transaction:
    txn = Transaction(identity_key=key)
    txn.returned_level = level
    txn.state = TransactionState.DONE
    return txn


class RecordingRunner:
    """Fake transaction runner that tracks start/finish order and in-flight peak."""

    def __init__(self, delays: dict[str, float] | None = None, failing: set[str] | None = None):
        self.delays = delays or {}
        self.failing = failing or set()
        self.events: list[tuple[str, str]] = []
        self.in_flight = 0
        self.peak = 0

    async def __call__(self, key: str) -> Transaction:
        self.events.append(("start", key))
        self.in_flight += 1
        self.peak = max(self.peak, self.in_flight)
        try:
            await asyncio.sleep(self.delays.get(key, 0.001))
            if key in self.failing:
                raise RuntimeError(f"{key} exploded")
            return _done(key)
        finally:
            self.in_flight -= 1
            self.events.append(("end", key))


class TestPartition:
    def test_sizes(self):
        batches = list(partition(["a", "b", "c", "d", "e"], 2))
        assert [len(b) for b in batches] == [2, 2, 1]
        assert batches[0] == ["a", "b"]
        assert batches[2] == ["e"]

    def test_empty(self):
        assert list(partition([], 3)) == []

    def test_invalid_size(self):
        with pytest.raises(ConfigurationError):
            list(partition(["a"], 0))


class TestBatchScheduler:
    def test_rejects_zero_concurrency(self):
        with pytest.raises(ConfigurationError):
            BatchScheduler(RecordingRunner(), OutcomeAggregator(), concurrency=0)

    @pytest.mark.asyncio
    async def test_batches_are_sequential(self):
        keys = ["k1", "k2", "k3", "k4", "k5"]
        # k1 is slow: batch 2 must still wait for it
        runner = RecordingRunner(delays={"k1": 0.05})
        scheduler = BatchScheduler(runner, OutcomeAggregator(), concurrency=2)

        await scheduler.run(keys)

        assert scheduler.batches_run == 3
        order = runner.events
        first_batch_ends = max(order.index(("end", "k1")), order.index(("end", "k2")))
        second_batch_starts = min(order.index(("start", "k3")), order.index(("start", "k4")))
        assert first_batch_ends < second_batch_starts
        assert order.index(("end", "k4")) < order.index(("start", "k5"))
        assert runner.peak == 2

    @pytest.mark.asyncio
    async def test_failure_is_isolated_and_counted(self):
        keys = ["k1", "k2", "k3", "k4"]
        runner = RecordingRunner(failing={"k2"})
        aggregator = OutcomeAggregator()
        scheduler = BatchScheduler(runner, aggregator, concurrency=4)

        counts = await scheduler.run(keys)

        assert counts["ERROR"] == 1
        assert counts["LOW"] == 3
        assert ("end", "k1") in runner.events
        assert ("end", "k4") in runner.events

    @pytest.mark.asyncio
    async def test_counts_sum_to_attempts(self):
        keys = [f"k{i}" for i in range(23)]
        runner = RecordingRunner(failing={"k3", "k11", "k20"})
        aggregator = OutcomeAggregator()
        counts = await BatchScheduler(runner, aggregator, concurrency=5).run(keys)
        assert sum(counts.values()) == len(keys)
        assert aggregator.total == len(keys)

    @pytest.mark.asyncio
    async def test_failed_transaction_outcome_recorded(self):
        async def failing_submit(key: str) -> Transaction:
            txn = Transaction(identity_key=key)
            txn.state = TransactionState.FAILED
            return txn

        counts = await BatchScheduler(failing_submit, OutcomeAggregator(), concurrency=3).run(
            ["a", "b"]
        )
        assert counts["ERROR"] == 2

    @pytest.mark.asyncio
    async def test_sequential_mode_same_partitioning(self):
        keys = ["a", "b", "c", "a", "b"]
        runner = RecordingRunner()
        scheduler = BatchScheduler(
            runner,
            OutcomeAggregator(),
            concurrency=2,
            mode=SelectionMode.SEQUENTIAL,
            cycle_length=3,
        )
        counts = await scheduler.run(keys)
        assert scheduler.batches_run == 3
        assert counts["LOW"] == 5
