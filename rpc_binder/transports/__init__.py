"""
Transports that route invocations to bound handlers.

- InvocationTransport: protocol the binder hooks into
- HttpTransport: FastAPI application exposing POST /{method}
"""

from .base import InvocationHandler, InvocationTransport, ensure_protocol
from .http import HttpTransport

__all__ = ["HttpTransport", "InvocationHandler", "InvocationTransport", "ensure_protocol"]
