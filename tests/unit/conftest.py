from __future__ import annotations

import pytest

from catalog_reconciler.adapters.audit.in_memory_audit_sink import InMemoryAuditSink
from catalog_reconciler.adapters.console.noop_console import NoopConsole
from catalog_reconciler.application.session import SessionHandle
from catalog_reconciler.settings import Settings
from fakes import FakeSessionProvider, FakeUiSurface


@pytest.fixture
def settings(tmp_path) -> Settings:
    """Settings writing into a per-test output directory."""
    return Settings(output_dir=str(tmp_path))


@pytest.fixture
def surface() -> FakeUiSurface:
    return FakeUiSurface()


@pytest.fixture
def provider(surface: FakeUiSurface) -> FakeSessionProvider:
    return FakeSessionProvider(surface)


@pytest.fixture
def session(provider: FakeSessionProvider) -> SessionHandle:
    return SessionHandle(provider)


@pytest.fixture
def sink() -> InMemoryAuditSink:
    return InMemoryAuditSink()


@pytest.fixture
def console() -> NoopConsole:
    return NoopConsole()
