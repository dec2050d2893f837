"""Outcome tallies shared by every concurrent transaction of a run."""

import asyncio

from rich.console import Console
from rich.table import Table

from .models import OutcomeCategory


class OutcomeAggregator:
    """Counts terminal outcomes per category.

    Transactions of a batch record concurrently, so increments go through an
    ``asyncio.Lock``.
    """

    def __init__(self) -> None:
        self._counts: dict[OutcomeCategory, int] = {category: 0 for category in OutcomeCategory}
        self._lock = asyncio.Lock()

    async def record(self, outcome: object) -> OutcomeCategory:
        category = OutcomeCategory.parse(outcome)
        async with self._lock:
            self._counts[category] += 1
        return category

    def snapshot(self) -> dict[str, int]:
        return {category.value: count for category, count in self._counts.items()}

    @property
    def total(self) -> int:
        return sum(self._counts.values())


def render_summary(snapshot: dict[str, int], console: Console | None = None) -> Table:
    """Print the outcome counts as a table and return it."""
    table = Table(title="Evaluation Result Summary")
    table.add_column("Level")
    table.add_column("Count", justify="right")
    for level, count in snapshot.items():
        table.add_row(level, str(count))
    table.add_section()
    table.add_row("TOTAL", str(sum(snapshot.values())))
    (console or Console()).print(table)
    return table
