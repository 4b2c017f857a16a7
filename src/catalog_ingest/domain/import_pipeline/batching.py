"""Offset/limit batch windows with per-batch failure isolation."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Callable, Iterator

log = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class BatchWindow:
    offset: int
    limit: int

    @property
    def first_row(self) -> int:
        return self.offset + 1

    def last_row(self, total: int) -> int:
        return min(self.offset + self.limit, total)


def iter_windows(total: int, batch_size: int) -> Iterator[BatchWindow]:
    if batch_size < 1:
        raise ValueError("batch_size must be positive")
    for offset in range(0, total, batch_size):
        yield BatchWindow(offset=offset, limit=batch_size)


@dataclass(slots=True)
class StageResult:
    """Outcome of one transform stage."""

    name: str
    total: int = 0
    batches: int = 0
    failed_batches: list[BatchWindow] = field(default_factory=list[BatchWindow])
    row_count: int | None = None

    @property
    def succeeded(self) -> bool:
        return not self.failed_batches


def run_batches(
    name: str,
    total: int,
    batch_size: int,
    process: Callable[[BatchWindow], None],
    *,
    recoverable_errors: tuple[type[Exception], ...] = (),
) -> StageResult:
    """Run ``process`` once per window; recoverable failures are logged and skipped.

    ``process`` is expected to commit its own work, so a failed window leaves
    earlier and later windows intact.
    """

    result = StageResult(name=name, total=total)
    for window in iter_windows(total, batch_size):
        last = window.last_row(total)
        log.info("Importing %s %d-%d of %d", name, window.first_row, last, total)
        try:
            process(window)
        except recoverable_errors:
            log.exception("Failed to import %s rows %d-%d", name, window.first_row, last)
            result.failed_batches.append(window)
        result.batches += 1
    return result
