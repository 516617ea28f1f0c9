"""
Transport protocol for rpc_binder.

A transport receives invocation handlers keyed by wire name and routes
incoming calls to them. Handlers are synchronous:

    handler(ctx: Context, data: bytes, content_type: str) -> Content | None
"""

from __future__ import annotations

from collections.abc import Callable
from typing import Any, Protocol, runtime_checkable

from ..errors import BinderError
from ..types import Content, Context

__all__ = ["InvocationHandler", "InvocationTransport", "ensure_protocol"]

InvocationHandler = Callable[[Context, bytes, str], "Content | None"]


@runtime_checkable
class InvocationTransport(Protocol):
    """
    Protocol for transports the binder hooks into.

    Requirements:
      - add_service_invocation_handler(name, handler) -> None
        Route calls for wire name `name` to handler. Implementations may
        raise to refuse a name (for example a duplicate).
    """

    def add_service_invocation_handler(
        self,
        name: str,
        handler: InvocationHandler,
    ) -> None:  # pragma: no cover - protocol signature
        ...


def ensure_protocol(obj: Any) -> None:
    """
    Ensure the given object satisfies the InvocationTransport protocol at runtime.

    Raises:
        BinderError: if the object does not appear to implement the protocol.
    """
    if not isinstance(obj, InvocationTransport):
        raise BinderError(
            f"{type(obj).__name__} does not implement InvocationTransport",
            details={"transport": type(obj).__name__},
        )
