"""
Bounded worker pool for row writes.

Items run in consecutive chunks of ``batch_size``; within a chunk at most
``max_workers`` run at once.  Every item settles independently: an
exception is captured on its ``Settled`` record and never cancels the
others.  Each task runs in a copy of the caller's ``contextvars`` context
so ``LogContext`` fields reach worker log lines.
"""

from __future__ import annotations

import contextvars
from collections.abc import Callable, Sequence
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import Generic, TypeVar

T = TypeVar("T")
R = TypeVar("R")


@dataclass(frozen=True)
class Settled(Generic[T, R]):
    """Outcome of one item: either ``value`` or ``error`` is set."""

    item: T
    value: R | None = None
    error: BaseException | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


def _settle(item: T, fn: Callable[[T], R]) -> Settled[T, R]:
    try:
        return Settled(item=item, value=fn(item))
    except Exception as exc:
        return Settled(item=item, error=exc)


def run_bounded(
    items: Sequence[T],
    fn: Callable[[T], R],
    max_workers: int,
    batch_size: int,
) -> list[Settled[T, R]]:
    """Apply ``fn`` to every item; results come back in input order."""
    if not items:
        return []

    results: list[Settled[T, R]] = []
    workers = max(1, min(max_workers, batch_size, len(items)))
    with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="rate-sync") as pool:
        for start in range(0, len(items), batch_size):
            chunk = items[start:start + batch_size]
            futures = [
                pool.submit(contextvars.copy_context().run, _settle, item, fn)
                for item in chunk
            ]
            results.extend(future.result() for future in futures)
    return results
