from __future__ import annotations

from collections.abc import Iterator

import pytest

from rpc_binder.client import set_client
from rpc_binder.config import BinderSettings, set_settings
from rpc_binder.registry import ServiceDescriptor, register_service

from .sample_services import EchoService, RecordingTransport


@pytest.fixture(autouse=True)
def _reset_singletons(monkeypatch: pytest.MonkeyPatch) -> Iterator[None]:
    for key in ("RPC_BINDER_CONFIG", "RPC_BINDER_ON_COLLISION", "RPC_BINDER_LOG_PAYLOADS"):
        monkeypatch.delenv(key, raising=False)
    set_settings(None)
    set_client(None)
    yield
    set_settings(None)
    set_client(None)


@pytest.fixture
def settings() -> BinderSettings:
    return BinderSettings()


@pytest.fixture
def echo_service() -> EchoService:
    return EchoService()


@pytest.fixture
def echo_descriptor(echo_service: EchoService, settings: BinderSettings) -> ServiceDescriptor:
    return register_service("echo", echo_service, settings=settings)


@pytest.fixture
def recording_transport() -> RecordingTransport:
    return RecordingTransport()
