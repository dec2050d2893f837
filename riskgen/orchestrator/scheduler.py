"""Bounded fan-out over identities: concurrent within a batch, sequential across batches."""

import asyncio
import time
from collections.abc import Awaitable, Callable, Iterator, Sequence
from typing import Any

import structlog

from riskgen.config import SelectionMode
from riskgen.shared.errors import ConfigurationError

from .models import OutcomeCategory, Transaction
from .outcomes import OutcomeAggregator

logger = structlog.get_logger()

DEFAULT_CONCURRENCY = 20


def partition(keys: Sequence[str], size: int) -> Iterator[list[str]]:
    """Consecutive slices of *size*; the last one may be shorter."""
    if size < 1:
        raise ConfigurationError(f"batch size must be at least 1, got {size}")
    for start in range(0, len(keys), size):
        yield list(keys[start : start + size])


class BatchScheduler:
    """Runs transactions in batches of at most ``concurrency``.

    Batch N+1 starts only after every transaction of batch N has finished.
    A transaction that raises is logged and counted as ``ERROR``; its siblings
    keep running.
    """

    def __init__(
        self,
        run_transaction: Callable[[str], Awaitable[Transaction]],
        aggregator: OutcomeAggregator,
        concurrency: int = DEFAULT_CONCURRENCY,
        mode: SelectionMode = SelectionMode.RANDOM,
        cycle_length: int | None = None,
    ):
        if concurrency < 1:
            raise ConfigurationError(f"concurrency must be at least 1, got {concurrency}")
        self.run_transaction = run_transaction
        self.aggregator = aggregator
        self.concurrency = concurrency
        self.mode = mode
        self.cycle_length = cycle_length
        self.batches_run = 0

    async def _run_one(self, key: str, batch_number: int) -> OutcomeCategory:
        try:
            txn = await self.run_transaction(key)
        except Exception as exc:
            logger.exception(
                "transaction_crashed", identity_key=key, batch=batch_number, error=str(exc)
            )
            return await self.aggregator.record(OutcomeCategory.ERROR)
        return await self.aggregator.record(txn.outcome)

    def _log_cycle_boundary(self, start: int, end: int) -> None:
        if self.mode != SelectionMode.SEQUENTIAL or not self.cycle_length:
            return
        # a cycle starts wherever the selection wrapped back to the first identity
        cycle = -(-start // self.cycle_length)
        while cycle * self.cycle_length < end:
            logger.info(
                "identity_cycle_started",
                cycle=cycle + 1,
                position=cycle * self.cycle_length + 1,
            )
            cycle += 1

    async def run(self, identity_keys: Sequence[str]) -> dict[str, Any]:
        started = time.monotonic()
        total = len(identity_keys)
        logger.info(
            "run_started", transactions=total, concurrency=self.concurrency, mode=self.mode.value
        )

        position = 0
        for batch_number, batch in enumerate(partition(identity_keys, self.concurrency), start=1):
            end = position + len(batch)
            self._log_cycle_boundary(position, end)
            logger.info("batch_started", batch=batch_number, first=position + 1, last=end)

            outcomes = await asyncio.gather(*(self._run_one(key, batch_number) for key in batch))

            logger.info(
                "batch_finished",
                batch=batch_number,
                size=len(batch),
                errors=sum(1 for o in outcomes if o == OutcomeCategory.ERROR),
            )
            self.batches_run += 1
            position = end

        elapsed = time.monotonic() - started
        logger.info(
            "run_finished",
            transactions=total,
            batches=self.batches_run,
            elapsed_seconds=round(elapsed, 2),
        )
        return self.aggregator.snapshot()
