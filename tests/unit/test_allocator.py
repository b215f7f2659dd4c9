"""Unit tests for the version allocator."""

import threading

import pytest

from schemadrift.core.exceptions import (
    RegistrationError,
    StorageWriteError,
    VersionConflictError,
)
from schemadrift.core.metrics import DriftMetrics
from schemadrift.core.schema.allocator import SubjectLocks, VersionAllocator
from schemadrift.core.schema.storage import InMemoryVersionStore


class _RacingStore(InMemoryVersionStore):
    """Store where another writer sneaks in ahead of the first N appends."""

    def __init__(self, lost_races: int):
        super().__init__()
        self.lost_races = lost_races
        self.attempts = 0

    def append_version_atomic(self, candidate):
        self.attempts += 1
        if self.lost_races > 0:
            self.lost_races -= 1
            rival = candidate.model_copy(update={"registered_by": "rival"})
            super().append_version_atomic(rival)
        return super().append_version_atomic(candidate)


class _BrokenStore(InMemoryVersionStore):
    def append_version_atomic(self, candidate):
        raise StorageWriteError("disk full", context={"subject": candidate.subject})


def test_first_registration_is_version_one(memory_store):
    allocator = VersionAllocator(memory_store)

    saved = allocator.register("auth-schema", '{"code":"integer"}', "tests")

    assert saved.version == 1
    assert saved.is_active
    assert saved.registered_by == "tests"
    assert saved.compatibility_mode == "BACKWARD"
    assert memory_store.list_versions("auth-schema") == [saved]


def test_sequential_registrations_increment(memory_store):
    allocator = VersionAllocator(memory_store)

    versions = [
        allocator.register("s", f'{{"f{n}":"string"}}', "tests").version
        for n in range(5)
    ]

    assert versions == [1, 2, 3, 4, 5]


def test_next_version_follows_highest_stored(memory_store, make_version):
    memory_store.append_version_atomic(make_version("s", 1))
    memory_store.append_version_atomic(make_version("s", 4))

    assert VersionAllocator(memory_store).next_version("s") == 5


def test_compatibility_mode_and_schema_id_are_recorded(memory_store):
    allocator = VersionAllocator(memory_store, compatibility_mode="FULL")

    saved = allocator.register("s", "{}", "tests", schema_id=42)

    assert saved.compatibility_mode == "FULL"
    assert saved.schema_id == 42


def test_conflict_is_retried_with_fresh_version():
    store = _RacingStore(lost_races=1)
    metrics = DriftMetrics("test")
    allocator = VersionAllocator(store, retry_delay=0, metrics=metrics)

    saved = allocator.register("s", '{"a":"string"}', "tests")

    assert saved.version == 2
    assert store.attempts == 2
    assert [v.registered_by for v in store.list_versions("s")] == ["rival", "tests"]
    assert metrics.registrations == 1


def test_exhausted_retries_raise_registration_error():
    store = _RacingStore(lost_races=10)
    allocator = VersionAllocator(store, max_retries=2, retry_delay=0)

    with pytest.raises(RegistrationError) as exc_info:
        allocator.register("s", '{"a":"string"}', "tests")

    assert store.attempts == 3
    assert isinstance(exc_info.value.__cause__, VersionConflictError)
    assert exc_info.value.context["subject"] == "s"


def test_retry_delay_backs_off(monkeypatch):
    sleeps = []
    monkeypatch.setattr(
        "schemadrift.core.schema.allocator.time.sleep", sleeps.append
    )
    monkeypatch.setattr(
        "schemadrift.core.schema.allocator.random.uniform", lambda low, high: 0.0
    )
    allocator = VersionAllocator(
        _RacingStore(lost_races=3), max_retries=3, retry_delay=0.1, backoff_rate=2.0
    )

    allocator.register("s", "{}", "tests")

    assert sleeps == pytest.approx([0.1, 0.2, 0.4])


def test_storage_failures_are_not_retried():
    allocator = VersionAllocator(_BrokenStore(), retry_delay=0)

    with pytest.raises(StorageWriteError, match="disk full"):
        allocator.register("s", "{}", "tests")


def test_negative_retries_rejected(memory_store):
    with pytest.raises(ValueError, match="max_retries"):
        VersionAllocator(memory_store, max_retries=-1)


def test_concurrent_registrations_are_contiguous(memory_store):
    allocator = VersionAllocator(memory_store)
    barrier = threading.Barrier(8)
    saved = []

    def worker(n):
        barrier.wait()
        saved.append(allocator.register("s", f'{{"w{n}":"integer"}}', "tests"))

    threads = [threading.Thread(target=worker, args=(n,)) for n in range(8)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert sorted(v.version for v in saved) == list(range(1, 9))
    assert [v.version for v in memory_store.list_versions("s")] == list(range(1, 9))


def test_independent_allocators_on_shared_store_retry_conflicts(memory_store):
    allocators = [VersionAllocator(memory_store, max_retries=20, retry_delay=0.001) for _ in range(4)]
    barrier = threading.Barrier(len(allocators))
    errors = []

    def worker(allocator):
        barrier.wait()
        try:
            for n in range(3):
                allocator.register("s", f'{{"n{n}":"integer"}}', "tests")
        except Exception as e:
            errors.append(e)

    threads = [threading.Thread(target=worker, args=(a,)) for a in allocators]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert errors == []
    assert [v.version for v in memory_store.list_versions("s")] == list(range(1, 13))


def test_retry_sleep_adds_jitter(monkeypatch):
    sleeps = []
    jitter_bounds = []
    monkeypatch.setattr("schemadrift.core.schema.allocator.time.sleep", sleeps.append)

    def fake_uniform(low, high):
        jitter_bounds.append((low, high))
        return high / 2

    monkeypatch.setattr("schemadrift.core.schema.allocator.random.uniform", fake_uniform)
    allocator = VersionAllocator(
        _RacingStore(lost_races=2), max_retries=2, retry_delay=0.1, backoff_rate=2.0
    )

    allocator.register("s", "{}", "tests")

    assert jitter_bounds == [(0, 0.1), (0, 0.2)]
    assert sleeps == pytest.approx([0.15, 0.3])


def test_subject_locks_are_released_after_registration(memory_store):
    allocator = VersionAllocator(memory_store)

    for n in range(5):
        allocator.register(f"subject-{n}", "{}", "tests")

    assert len(allocator._locks) == 0


def test_subject_locks_evicted_after_concurrent_use(memory_store):
    locks = SubjectLocks()
    allocators = [VersionAllocator(memory_store, subject_locks=locks) for _ in range(4)]
    barrier = threading.Barrier(len(allocators))

    def worker(allocator):
        barrier.wait()
        allocator.register("s", "{}", "tests")

    threads = [threading.Thread(target=worker, args=(a,)) for a in allocators]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert len(locks) == 0
    assert [v.version for v in memory_store.list_versions("s")] == [1, 2, 3, 4]
