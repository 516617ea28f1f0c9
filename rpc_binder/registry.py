"""
Method discovery and descriptor model for rpc_binder.

Provides:
- MethodDescriptor: one callable method with its argument/result types and
  thread-safe call statistics.
- ServiceDescriptor: read-only table of wire name -> MethodDescriptor.
- discover(service): eligible methods of a service object.
- register_service(name, service): discover + checks, returns ServiceDescriptor.

A method is eligible when its signature reads

    def name(self, ctx: Context, arg: Model, result: Model | Any) -> Exception | None

Ineligible public methods are logged at WARNING and skipped.
"""

from __future__ import annotations

import inspect
import logging
import typing
from collections.abc import Callable, Mapping
from dataclasses import dataclass
from threading import Lock
from types import MappingProxyType, NoneType, UnionType
from typing import Any, Union, get_args, get_origin

from pydantic import BaseModel

from .config import BinderSettings, get_settings
from .errors import RegistrationError
from .naming import to_wire_name
from .schemas import is_exported, is_structured, unwrap_optional
from .types import Context, ResultKind
from .validation import compile_reachable_bindings

__all__ = [
    "MethodDescriptor",
    "ServiceDescriptor",
    "discover",
    "register_service",
]

MethodCallable = Callable[[Context, Any, Any], BaseException | None]

_POSITIONAL = (inspect.Parameter.POSITIONAL_ONLY, inspect.Parameter.POSITIONAL_OR_KEYWORD)


class MethodDescriptor:
    """
    A registered service method.

    Identity fields are fixed at construction; calls/errors/last_ms are
    updated under a per-descriptor lock by record().
    """

    __slots__ = (
        "wire_name",
        "method_name",
        "arg_type",
        "result",
        "func",
        "calls",
        "errors",
        "last_ms",
        "_lock",
    )

    def __init__(
        self,
        wire_name: str,
        method_name: str,
        arg_type: type[BaseModel],
        result: ResultKind,
        func: MethodCallable,
    ) -> None:
        self.wire_name = wire_name
        self.method_name = method_name
        self.arg_type = arg_type
        self.result = result
        self.func = func
        self.calls: int = 0
        self.errors: int = 0
        self.last_ms: int | None = None
        self._lock = Lock()

    def record(self, ok: bool, duration_ms: int) -> int:
        """Count one call (success or failure); returns the new call count."""
        with self._lock:
            self.calls += 1
            if not ok:
                self.errors += 1
            self.last_ms = max(duration_ms, 0)
            return self.calls

    def stats(self) -> dict[str, Any]:
        with self._lock:
            return {"calls": self.calls, "errors": self.errors, "last_ms": self.last_ms}

    def __repr__(self) -> str:
        out = "void" if self.result.is_void else getattr(self.result.model, "__name__", "?")
        return (
            f"MethodDescriptor({self.wire_name!r}, {self.method_name!r}, "
            f"in={self.arg_type.__name__}, out={out})"
        )


@dataclass(frozen=True)
class ServiceDescriptor:
    """Service name, receiver and its read-only method table."""

    name: str
    receiver: Any
    methods: Mapping[str, MethodDescriptor]

    def get(self, wire_name: str) -> MethodDescriptor | None:
        return self.methods.get(wire_name)

    def snapshot(self) -> dict[str, dict[str, Any]]:
        """Per-method call statistics keyed by wire name."""
        return {name: m.stats() for name, m in self.methods.items()}


# -------------------------
# Eligibility
# -------------------------


def _is_void_marker(tp: Any) -> bool:
    return tp is Any or tp is object


def _returns_error_or_none(tp: Any) -> bool:
    if tp is None or tp is NoneType:
        return True
    if get_origin(tp) not in (Union, UnionType):
        return False
    args = get_args(tp)
    return NoneType in args and all(
        a is NoneType or (isinstance(a, type) and issubclass(a, BaseException)) for a in args
    )


def _check_method(
    owner: type, attr: str, func: Any, log: logging.Logger
) -> tuple[type[BaseModel], ResultKind] | None:
    """Return (argument model, result kind) when eligible, else log and None."""
    where = f"{owner.__name__}.{attr}"
    if inspect.iscoroutinefunction(func) or inspect.isasyncgenfunction(func):
        log.warning("method %s is async, need a synchronous method", where)
        return None

    params = list(inspect.signature(func).parameters.values())
    if len(params) != 4 or any(p.kind not in _POSITIONAL for p in params):
        log.warning("method %s has %d parameters, need 4 positional", where, len(params))
        return None

    try:
        hints = typing.get_type_hints(func, include_extras=True)
    except (NameError, TypeError) as exc:
        log.warning("method %s has unresolvable annotations: %s", where, exc)
        return None

    _, ctx_param, arg_param, result_param = params
    if hints.get(ctx_param.name) is not Context:
        log.warning("method %s: first argument must be Context", where)
        return None

    arg_type = unwrap_optional(hints.get(arg_param.name))
    if not is_structured(arg_type):
        log.warning("method %s: argument type is not a structured type", where)
        return None
    if not is_exported(arg_type):
        log.warning("method %s: argument type %s not exported", where, arg_type.__name__)
        return None

    if result_param.name not in hints:
        log.warning("method %s: result parameter has no annotation", where)
        return None
    result_hint = hints[result_param.name]
    if _is_void_marker(result_hint):
        result = ResultKind.void()
    else:
        result_type = unwrap_optional(result_hint)
        if not is_structured(result_type):
            log.warning("method %s: result type is not a structured type", where)
            return None
        if not is_exported(result_type):
            log.warning("method %s: result type %s not exported", where, result_type.__name__)
            return None
        result = ResultKind.typed(result_type)

    if "return" not in hints or not _returns_error_or_none(hints["return"]):
        log.warning("method %s: must return an exception or None", where)
        return None

    return arg_type, result


def _candidates(owner: type) -> list[tuple[str, Any]]:
    out: list[tuple[str, Any]] = []
    for attr in dir(owner):
        if attr.startswith("_"):
            continue
        raw = inspect.getattr_static(owner, attr)
        if inspect.isfunction(raw):
            out.append((attr, raw))
    return out


def discover(
    service: Any,
    *,
    settings: BinderSettings | None = None,
) -> dict[str, MethodDescriptor]:
    """
    Build the wire name -> MethodDescriptor table for a service object.

    Raises:
        RegistrationError: on a wire name collision with on_collision="reject".
        SchemaError: when an argument model carries malformed Binding rules.
    """
    cfg = settings or get_settings()
    log = logging.getLogger(f"{cfg.logger_name}.registry")
    owner = type(service)

    methods: dict[str, MethodDescriptor] = {}
    for attr, func in _candidates(owner):
        checked = _check_method(owner, attr, func, log)
        if checked is None:
            continue
        arg_type, result = checked
        compile_reachable_bindings(arg_type)

        wire = to_wire_name(attr)
        if (prev := methods.get(wire)) is not None:
            if cfg.on_collision == "reject":
                raise RegistrationError(
                    f"methods '{prev.method_name}' and '{attr}' both map to '{wire}'",
                    details={"wire_name": wire, "methods": [prev.method_name, attr]},
                )
            log.warning(
                "method %s overwrites %s under wire name %s", attr, prev.method_name, wire
            )
        methods[wire] = MethodDescriptor(wire, attr, arg_type, result, getattr(service, attr))
    return methods


def register_service(
    name: str,
    service: Any,
    *,
    settings: BinderSettings | None = None,
) -> ServiceDescriptor:
    """
    Discover the eligible methods of service and publish them under name.

    Raises:
        RegistrationError: empty name, no eligible methods, or a method that
            maps to the reserved signature wire name.
    """
    cfg = settings or get_settings()
    log = logging.getLogger(f"{cfg.logger_name}.registry")
    if not name:
        raise RegistrationError("empty name")

    methods = discover(service, settings=cfg)
    if not methods:
        msg = f"{name} has no exported methods of suitable type"
        log.error(msg)
        raise RegistrationError(msg, details={"service": name})
    if cfg.signature_method in methods:
        raise RegistrationError(
            f"method '{methods[cfg.signature_method].method_name}' collides with "
            f"the reserved wire name '{cfg.signature_method}'",
            details={"service": name, "wire_name": cfg.signature_method},
        )

    for wire in sorted(methods):
        log.info("registered %s.%s", name, wire)
    return ServiceDescriptor(name=name, receiver=service, methods=MappingProxyType(methods))
