"""
Service binder: registration, signature and transport wiring in one place.

Typical use:

    transport = HttpTransport()
    new_service(transport, "echo", EchoService())
    # uvicorn.run(transport.app)
"""

from __future__ import annotations

import logging
from typing import Any

from .config import BinderSettings, get_settings
from .dispatcher import InvocationDispatcher
from .errors import BinderError
from .registry import ServiceDescriptor, register_service
from .signature import Signature, SignatureService
from .transports.base import InvocationTransport, ensure_protocol

__all__ = ["ServiceBinder", "new_service"]


class ServiceBinder:
    """
    Binds one service object to one transport.

    register() runs discovery and builds the signature once; hook() installs
    a handler per method plus the signature handler. Both are single-shot.
    """

    def __init__(self, settings: BinderSettings | None = None) -> None:
        self._settings = settings or get_settings()
        self._logger = logging.getLogger(f"{self._settings.logger_name}.binder")
        self._service: ServiceDescriptor | None = None
        self._signature: SignatureService | None = None
        self._transport: InvocationTransport | None = None

    @property
    def settings(self) -> BinderSettings:
        return self._settings

    @property
    def service(self) -> ServiceDescriptor | None:
        return self._service

    @property
    def signature(self) -> Signature:
        if self._signature is None:
            raise BinderError("no service registered")
        return self._signature.signature

    def signature_yaml(self) -> str:
        if self._signature is None:
            raise BinderError("no service registered")
        return self._signature.render()

    def register(self, name: str, service: Any) -> ServiceDescriptor:
        """
        Discover service methods and build their signature.

        Raises:
            RegistrationError: empty name or no eligible methods.
            SchemaError: a model uses an unsupported field type.
            BinderError: a service is already registered on this binder.
        """
        if self._service is not None:
            raise BinderError(f"service {self._service.name} already registered")
        descriptor = register_service(name, service, settings=self._settings)
        signature = SignatureService(descriptor)
        signature.render()  # surfaces SchemaError before anything is served
        self._service = descriptor
        self._signature = signature
        return descriptor

    def hook(self, transport: InvocationTransport) -> None:
        """
        Install every method handler and the signature handler on transport.

        Raises:
            BinderError: already hooked, nothing registered, or the transport
                refused a handler.
        """
        if self._transport is not None:
            raise BinderError("service has already been hooked")
        if self._service is None or self._signature is None:
            raise BinderError("service has no method exported")
        ensure_protocol(transport)

        self._logger.info("hook service %s", self._service.name)
        dispatcher = InvocationDispatcher(self._service, self._settings)
        for wire, handler in sorted(dispatcher.handlers().items()):
            try:
                transport.add_service_invocation_handler(wire, handler)
            except Exception as exc:
                raise BinderError(f"add service [{wire}] error: {exc}") from exc
        transport.add_service_invocation_handler(
            self._settings.signature_method, self._signature.handler()
        )
        self._transport = transport


def new_service(
    transport: InvocationTransport,
    name: str,
    service: Any,
    settings: BinderSettings | None = None,
) -> ServiceBinder:
    """
    Register service under name, log its signature and hook it to transport.
    """
    binder = ServiceBinder(settings)
    binder.register(name, service)
    logging.getLogger(f"{binder.settings.logger_name}.binder").info(
        "Service method signature\n%s", binder.signature_yaml()
    )
    binder.hook(transport)
    return binder
