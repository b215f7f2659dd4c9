"""Unit tests for AsyncRecordExecutor."""

import asyncio
import threading
import time

import pytest

from schemadrift.core.exceptions import RecordTimeoutError, StorageError
from schemadrift.core.parallel import AsyncRecordExecutor


def test_results_keep_input_order():
    executor = AsyncRecordExecutor(concurrency=3)

    def slow_square(n):
        time.sleep(0.01 * (5 - n))
        return n * n

    results = asyncio.run(executor.process_records(range(5), slow_square))

    assert results == [0, 1, 4, 9, 16]


def test_async_functions_are_awaited():
    executor = AsyncRecordExecutor(concurrency=2)

    async def double(n):
        await asyncio.sleep(0)
        return n * 2

    assert asyncio.run(executor.process_records([1, 2, 3], double)) == [2, 4, 6]


def test_concurrency_is_bounded():
    executor = AsyncRecordExecutor(concurrency=2)
    lock = threading.Lock()
    active = 0
    peak = 0

    def track(_):
        nonlocal active, peak
        with lock:
            active += 1
            peak = max(peak, active)
        time.sleep(0.02)
        with lock:
            active -= 1

    asyncio.run(executor.process_records(range(6), track))

    assert peak <= 2


def test_failures_stay_in_their_slot():
    executor = AsyncRecordExecutor(concurrency=2)

    def maybe_fail(n):
        if n == 1:
            raise ValueError("bad record")
        return n

    results = asyncio.run(executor.process_records([0, 1, 2], maybe_fail))

    assert results[0] == 0
    assert isinstance(results[1], ValueError)
    assert results[2] == 2


def test_timeout_becomes_record_timeout_error():
    executor = AsyncRecordExecutor(concurrency=1, timeout=0.05)

    async def hang(_):
        await asyncio.sleep(1)

    results = asyncio.run(executor.process_records([1], hang))

    assert isinstance(results[0], RecordTimeoutError)
    assert not isinstance(results[0], StorageError)
    assert "timed out" in str(results[0])


def test_timed_out_sync_worker_still_finishes():
    executor = AsyncRecordExecutor(concurrency=1, timeout=0.05)
    finished = threading.Event()

    def slow(_):
        time.sleep(0.2)
        finished.set()
        return "done"

    results = asyncio.run(executor.process_records([1], slow))

    assert isinstance(results[0], RecordTimeoutError)
    assert finished.wait(timeout=2)


def test_empty_input():
    assert asyncio.run(AsyncRecordExecutor(1).process_records([], str)) == []


@pytest.mark.parametrize("kwargs", [{"concurrency": 0}, {"concurrency": 1, "timeout": 0}])
def test_invalid_arguments(kwargs):
    with pytest.raises(ValueError):
        AsyncRecordExecutor(**kwargs)
