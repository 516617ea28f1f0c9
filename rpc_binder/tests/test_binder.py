from __future__ import annotations

import logging

import pytest

from rpc_binder.binder import ServiceBinder, new_service
from rpc_binder.codec import JSON_CONTENT_TYPE, YAML_CONTENT_TYPE
from rpc_binder.config import BinderSettings
from rpc_binder.errors import BinderError, RegistrationError, SchemaError
from rpc_binder.types import Context

from .sample_services import EchoService, NoMethods, RecordingTransport, TimeResult


class TestServiceBinder:
    def test_register_then_hook(
        self,
        echo_service: EchoService,
        settings: BinderSettings,
        recording_transport: RecordingTransport,
    ):
        binder = ServiceBinder(settings)
        desc = binder.register("echo", echo_service)
        assert binder.service is desc
        binder.hook(recording_transport)
        assert sorted(recording_transport.handlers) == [
            "echo",
            "explode",
            "fail",
            "get_login_kind",
            "get_signature",
            "notify",
        ]

    def test_hooked_handlers_dispatch(
        self, echo_service: EchoService, recording_transport: RecordingTransport
    ):
        new_service(recording_transport, "echo", echo_service)
        out = recording_transport.handlers["notify"](
            Context.background(), b'{"topic": "t"}', JSON_CONTENT_TYPE
        )
        assert out is None
        assert echo_service.notified == ["t"]

    def test_signature_handler(
        self, echo_service: EchoService, recording_transport: RecordingTransport
    ):
        binder = new_service(recording_transport, "echo", echo_service)
        out = recording_transport.handlers["get_signature"](
            Context.background(), b"", JSON_CONTENT_TYPE
        )
        assert out is not None
        assert out.content_type == YAML_CONTENT_TYPE
        assert out.data.decode("utf-8") == binder.signature_yaml()

    def test_custom_signature_name(
        self, echo_service: EchoService, recording_transport: RecordingTransport
    ):
        settings = BinderSettings(signature_method="describe")
        new_service(recording_transport, "echo", echo_service, settings)
        assert "describe" in recording_transport.handlers
        assert "get_signature" not in recording_transport.handlers

    def test_hook_twice(
        self,
        echo_service: EchoService,
        settings: BinderSettings,
        recording_transport: RecordingTransport,
    ):
        binder = ServiceBinder(settings)
        binder.register("echo", echo_service)
        binder.hook(recording_transport)
        with pytest.raises(BinderError, match="already been hooked"):
            binder.hook(RecordingTransport())

    def test_hook_without_service(self, recording_transport: RecordingTransport):
        with pytest.raises(BinderError, match="no method exported"):
            ServiceBinder().hook(recording_transport)

    def test_register_twice(self, echo_service: EchoService, settings: BinderSettings):
        binder = ServiceBinder(settings)
        binder.register("echo", echo_service)
        with pytest.raises(BinderError, match="already registered"):
            binder.register("echo", echo_service)

    def test_signature_before_register(self):
        with pytest.raises(BinderError):
            _ = ServiceBinder().signature

    def test_transport_refusal_is_wrapped(
        self, echo_service: EchoService, recording_transport: RecordingTransport
    ):
        recording_transport.handlers["echo"] = lambda ctx, data, ct: None
        binder = ServiceBinder()
        binder.register("echo", echo_service)
        with pytest.raises(BinderError, match=r"add service \[echo\]"):
            binder.hook(recording_transport)

    def test_not_a_transport(self, echo_service: EchoService):
        binder = ServiceBinder()
        binder.register("echo", echo_service)
        with pytest.raises(BinderError, match="InvocationTransport"):
            binder.hook(object())  # type: ignore[arg-type]


class TestNewService:
    def test_logs_signature(
        self,
        echo_service: EchoService,
        recording_transport: RecordingTransport,
        caplog: pytest.LogCaptureFixture,
    ):
        with caplog.at_level(logging.INFO, logger="rpc_binder.binder"):
            new_service(recording_transport, "echo", echo_service)
        text = "\n".join(r.getMessage() for r in caplog.records)
        assert "Service method signature" in text
        assert "apiVersion: echo" in text

    def test_registration_failure(self, recording_transport: RecordingTransport):
        with pytest.raises(RegistrationError):
            new_service(recording_transport, "none", NoMethods())
        assert recording_transport.handlers == {}

    def test_schema_failure_before_hook(self, recording_transport: RecordingTransport):
        with pytest.raises(SchemaError):
            new_service(recording_transport, "legacy", TimeResult())
        assert recording_transport.handlers == {}
