"""
Signature document for a registered service.

    apiVersion: <service name>
    spec:
      - name: <wire method name>
        in: [ <field descriptor>, ... ]
        out: [ <field descriptor>, ... ]

Exports:
- MethodSignature, Signature
- build_signature(service_descriptor)
- render_signature(signature)
- SignatureService: cached document plus the handler served under the
  reserved wire name
"""

from __future__ import annotations

import threading
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

import yaml

from .codec import YAML_CONTENT_TYPE
from .schemas import FieldDescriptor, extract_fields
from .types import Content, Context

if TYPE_CHECKING:
    from .registry import ServiceDescriptor

__all__ = [
    "MethodSignature",
    "Signature",
    "SignatureService",
    "build_signature",
    "render_signature",
]


@dataclass(frozen=True)
class MethodSignature:
    name: str
    in_: list[FieldDescriptor] = field(default_factory=list)
    out: list[FieldDescriptor] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {"name": self.name, "in": self.in_, "out": self.out}


@dataclass(frozen=True)
class Signature:
    api_version: str
    spec: list[MethodSignature] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {"apiVersion": self.api_version, "spec": [m.to_dict() for m in self.spec]}

    def method(self, name: str) -> MethodSignature | None:
        return next((m for m in self.spec if m.name == name), None)


def build_signature(service: ServiceDescriptor) -> Signature:
    """
    Describe every method of service, sorted by wire name.

    Raises:
        SchemaError: when an argument or result model cannot be described.
    """
    spec: list[MethodSignature] = []
    for wire in sorted(service.methods):
        m = service.methods[wire]
        out = [] if m.result.is_void or m.result.model is None else extract_fields(m.result.model)
        spec.append(MethodSignature(name=wire, in_=extract_fields(m.arg_type), out=out))
    return Signature(api_version=service.name, spec=spec)


def render_signature(signature: Signature) -> str:
    """YAML text of the document with field order preserved."""
    return yaml.safe_dump(
        signature.to_dict(),
        sort_keys=False,
        allow_unicode=True,
        default_flow_style=False,
    )


class SignatureService:
    """
    Signature of one service, built once and served as YAML.
    """

    def __init__(self, service: ServiceDescriptor) -> None:
        self._service = service
        self._lock = threading.Lock()
        self._signature: Signature | None = None
        self._text: str | None = None

    @property
    def signature(self) -> Signature:
        if self._signature is None:
            with self._lock:
                if self._signature is None:
                    self._signature = build_signature(self._service)
        return self._signature

    def render(self) -> str:
        if self._text is None:
            text = render_signature(self.signature)
            with self._lock:
                self._text = text
        return self._text

    def handler(self):
        """Invocation handler answering with the YAML document; input is ignored."""
        data = self.render().encode("utf-8")

        def _handle(ctx: Context, raw: bytes, content_type: str | None = None) -> Content:
            return Content(data=data, content_type=YAML_CONTENT_TYPE)

        return _handle
