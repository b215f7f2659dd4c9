"""Unit tests for the public API helpers."""

import threading

import pytest

from schemadrift import (
    RegistryConfig,
    SqlVersionStore,
    build_processor,
    build_registry,
    check_drift,
    derive_schema,
    from_yaml,
    process_record,
    register_version,
)
from schemadrift.core.external import HttpSubjectCatalog
from schemadrift.core.processor import FirstSightingPolicy
from schemadrift.core.schema.models import DriftStatus
from schemadrift.core.schema.storage import InMemoryVersionStore, TimedVersionStore


def test_derive_schema():
    assert derive_schema(b'{"service":"auth","code":200}') == '{"service":"string","code":"integer"}'
    assert derive_schema("[1]") == "{}"


def test_check_and_register(memory_store):
    assert check_drift(memory_store, "s", '{"a":"string"}').status == DriftStatus.NO_PRIOR

    saved = register_version(memory_store, "s", '{"a":"string"}', "tests")

    assert saved.version == 1
    assert check_drift(memory_store, "s", '{"a":"string"}').status == DriftStatus.MATCH


def test_build_registry_from_config(temp_dir):
    config = RegistryConfig(
        store=f"sql:sqlite:///{temp_dir / 'schemas.db'}",
        compatibility_mode="FULL",
        registration={"max_retries": 7},
        external={"url": "http://registry:8081"},
    )

    registry = build_registry(config)

    assert isinstance(registry.store, SqlVersionStore)
    assert registry.allocator.max_retries == 7
    assert registry.allocator.compatibility_mode == "FULL"
    assert isinstance(registry.catalog, HttpSubjectCatalog)
    assert registry.register_version("s", "{}", "tests").compatibility_mode == "FULL"
    registry.store.close()


def test_build_registry_wraps_store_with_timeout():
    registry = build_registry(RegistryConfig(store="memory", storage_timeout=2))

    assert isinstance(registry.store, TimedVersionStore)
    registry.store.close()


def test_build_registry_invalid_store():
    with pytest.raises(ValueError):
        build_registry(RegistryConfig(store="ftp:nowhere"))


def test_build_processor_uses_config(memory_store):
    config = RegistryConfig(registered_by="pipeline", first_sighting="defer")
    processor = build_processor(config, registry=build_registry(config, store=memory_store))

    assert processor.registered_by == "pipeline"
    assert processor.first_sighting == FirstSightingPolicy.DEFER


def test_process_record(registry):
    meta = process_record(registry, b'{"application":"web","x":1}', registered_by="api")

    assert meta.subject == "web-schema"
    assert registry.latest_version("web-schema").registered_by == "api"


def test_from_yaml(temp_dir):
    path = temp_dir / "registry.yaml"
    path.write_text("name: demo\nstore: memory\n", encoding="utf-8")

    assert from_yaml(str(path)).name == "demo"
    assert isinstance(build_registry(from_yaml(str(path))).store, InMemoryVersionStore)


def test_concurrent_register_version_calls_are_contiguous(temp_dir):
    store = SqlVersionStore(f"sqlite:///{temp_dir / 'concurrent.db'}")
    callers = 12
    barrier = threading.Barrier(callers)
    saved = []
    failures = []
    lock = threading.Lock()

    def call(n):
        barrier.wait()
        try:
            version = register_version(store, "s", f'{{"c{n}":"integer"}}', "tests")
        except Exception as e:
            with lock:
                failures.append(e)
            return
        with lock:
            saved.append(version.version)

    threads = [threading.Thread(target=call, args=(n,)) for n in range(callers)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()
    store.close()

    assert failures == []
    assert sorted(saved) == list(range(1, callers + 1))


def test_registries_built_over_one_store_share_subject_locks(memory_store):
    config = RegistryConfig()

    first = build_registry(config, store=memory_store)
    second = build_registry(config, store=memory_store)

    assert first.allocator._locks is second.allocator._locks
