"""
rpc_binder: expose a plain service object as RPC methods.

Methods shaped like `def name(self, ctx, arg, result) -> Exception | None`
are discovered, wrapped into decode/validate/invoke/encode handlers and
hooked to a transport, together with a YAML signature document.
"""

from __future__ import annotations

from .binder import ServiceBinder, new_service
from .client import ServiceClient, get_client, set_client
from .config import BinderSettings, get_settings, load_settings, set_settings
from .dispatcher import InvocationDispatcher
from .errors import (
    BinderError,
    DecodeError,
    InvocationError,
    MethodNotFound,
    RegistrationError,
    SchemaError,
    ValidationError,
)
from .naming import camel_split, to_wire_name
from .registry import MethodDescriptor, ServiceDescriptor, discover, register_service
from .schemas import extract_fields
from .signature import Signature, SignatureService, build_signature, render_signature
from .transports import HttpTransport, InvocationTransport
from .types import NO_VALUE, Binding, Content, Context, JSONTime, ResultKind

__all__ = [
    "__version__",
    # errors
    "BinderError",
    "RegistrationError",
    "SchemaError",
    "MethodNotFound",
    "DecodeError",
    "ValidationError",
    "InvocationError",
    # config
    "BinderSettings",
    "load_settings",
    "get_settings",
    "set_settings",
    # types
    "Context",
    "JSONTime",
    "Binding",
    "ResultKind",
    "NO_VALUE",
    "Content",
    # registration
    "camel_split",
    "to_wire_name",
    "MethodDescriptor",
    "ServiceDescriptor",
    "discover",
    "register_service",
    # signature
    "extract_fields",
    "Signature",
    "SignatureService",
    "build_signature",
    "render_signature",
    # dispatch + wiring
    "InvocationDispatcher",
    "ServiceBinder",
    "new_service",
    "InvocationTransport",
    "HttpTransport",
    # outbound
    "ServiceClient",
    "get_client",
    "set_client",
]

__version__: str = "0.1.0"
