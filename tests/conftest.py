"""Pytest configuration and shared fixtures."""

import tempfile
from pathlib import Path

import pytest

from schemadrift.core.metrics import DriftMetrics
from schemadrift.core.schema import InMemoryVersionStore, SchemaRegistry, SchemaVersion


@pytest.fixture
def temp_dir():
    """Create a temporary directory for test files."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def memory_store():
    return InMemoryVersionStore()


@pytest.fixture
def metrics():
    return DriftMetrics("test")


@pytest.fixture
def registry(memory_store, metrics):
    """SchemaRegistry over an in-memory store with metrics attached."""
    return SchemaRegistry(store=memory_store, metrics=metrics)


@pytest.fixture
def auth_record():
    return b'{"service":"auth","level":"INFO","code":200}'


@pytest.fixture
def auth_record_drifted():
    return b'{"service":"auth","level":"INFO","code":200.5}'


@pytest.fixture
def make_version():
    """Factory for SchemaVersion instances with sensible defaults."""

    def _make(subject="orders-schema", version=1, definition='{"id":"integer"}', **kwargs):
        return SchemaVersion(
            subject=subject,
            version=version,
            definition=definition,
            registered_by=kwargs.pop("registered_by", "tests"),
            **kwargs,
        )

    return _make
