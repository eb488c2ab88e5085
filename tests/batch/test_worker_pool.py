"""Tests for settlement_batch.services.pool -- run_bounded."""

import threading
import time

from settlement_batch.services.pool import run_bounded
from settlement_kernel.logging_config import LogContext


def test_empty_input():
    assert run_bounded([], lambda item: item, max_workers=4, batch_size=2) == []


def test_results_keep_input_order():
    def slow_for_small(n):
        time.sleep(0.001 * (10 - n))
        return n * n

    settled = run_bounded(list(range(10)), slow_for_small, max_workers=4, batch_size=3)
    assert [s.item for s in settled] == list(range(10))
    assert [s.value for s in settled] == [n * n for n in range(10)]


def test_failure_is_isolated():
    def fn(n):
        if n == 2:
            raise ValueError("bad row")
        return n

    settled = run_bounded([1, 2, 3], fn, max_workers=3, batch_size=3)

    assert [s.ok for s in settled] == [True, False, True]
    assert isinstance(settled[1].error, ValueError)
    assert settled[2].value == 3


def test_concurrency_is_bounded():
    lock = threading.Lock()
    running = 0
    peak = 0

    def fn(_):
        nonlocal running, peak
        with lock:
            running += 1
            peak = max(peak, running)
        time.sleep(0.005)
        with lock:
            running -= 1

    run_bounded(list(range(12)), fn, max_workers=8, batch_size=3)
    assert peak <= 3


def test_log_context_reaches_workers():
    seen = []

    with LogContext.bind(settlement_id="s-9"):
        run_bounded(
            [1, 2], lambda _: seen.append(LogContext.get_all().get("settlement_id")),
            max_workers=2, batch_size=2,
        )

    assert seen == ["s-9", "s-9"]
