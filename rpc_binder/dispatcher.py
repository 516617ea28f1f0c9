"""
Invocation dispatcher: turns a MethodDescriptor into a transport handler.

handler(ctx, data, content_type) -> Content | None

Steps:
  a) Decode data into a fresh argument instance (DecodeError).
  b) Check Binding rules (ValidationError).
  c) Allocate the result: NO_VALUE for void methods, else a zero value.
  d) Call the method synchronously with (ctx, arg, result).
  e) A raised or returned exception becomes InvocationError.
  f) Void methods answer None; others answer the JSON-encoded result.

Every call is counted on the descriptor and logged as one JSON-ish line
with keys: method, event, duration_ms, ok (+ input, content_type, error).
"""

from __future__ import annotations

import json
import logging
import time
from typing import Any

from .codec import JSON_CONTENT_TYPE, decode_argument, encode_result, new_result
from .config import BinderSettings, get_settings
from .errors import BinderError, InvocationError, MethodNotFound
from .registry import MethodDescriptor, ServiceDescriptor
from .transports.base import InvocationHandler
from .types import NO_VALUE, Content, Context
from .validation import validate_bindings

__all__ = ["InvocationDispatcher", "InvocationHandler"]


def _elapsed_ms(started: float) -> int:
    return int(round((time.monotonic() - started) * 1000))


class InvocationDispatcher:
    """
    Builds per-method handlers for one service.

    Handlers hold no shared state apart from the descriptor statistics, so
    transports may call them concurrently from several threads.
    """

    def __init__(
        self,
        service: ServiceDescriptor,
        settings: BinderSettings | None = None,
        *,
        logger: logging.Logger | None = None,
    ) -> None:
        self._service = service
        self._settings = settings or get_settings()
        self._logger: logging.Logger = logger or logging.getLogger(
            f"{self._settings.logger_name}.dispatcher"
        )

    @property
    def service(self) -> ServiceDescriptor:
        return self._service

    def build_handler(self, method: MethodDescriptor) -> InvocationHandler:
        def _handle(
            ctx: Context, data: bytes, content_type: str = JSON_CONTENT_TYPE
        ) -> Content | None:
            return self.invoke(method, ctx, data, content_type)

        _handle.__name__ = f"invoke_{method.wire_name}"
        return _handle

    def handler(self, wire_name: str) -> InvocationHandler:
        """
        Handler for one wire name.

        Raises:
            MethodNotFound: wire_name is not registered on this service.
        """
        method = self._service.get(wire_name)
        if method is None:
            raise MethodNotFound(
                f"method '{wire_name}' is not registered",
                details={"service": self._service.name, "method": wire_name},
            )
        return self.build_handler(method)

    def handlers(self) -> dict[str, InvocationHandler]:
        """One handler per registered method, keyed by wire name."""
        return {wire: self.build_handler(m) for wire, m in self._service.methods.items()}

    def invoke(
        self,
        method: MethodDescriptor,
        ctx: Context,
        data: bytes,
        content_type: str | None = JSON_CONTENT_TYPE,
    ) -> Content | None:
        """
        Run one call of method.

        Raises:
            DecodeError: payload does not decode into the argument type.
            ValidationError: decoded argument violates its Binding rules.
            InvocationError: the method raised or returned an exception.
        """
        started = time.monotonic()
        try:
            arg = decode_argument(method.arg_type, data or b"{}", content_type)
            validate_bindings(arg)
        except BinderError as exc:
            self._finish(method, started, data, content_type, exc)
            raise

        result: Any = NO_VALUE if method.result.model is None else new_result(method.result.model)
        try:
            returned = method.func(ctx, arg, result)
        except Exception as exc:
            self._finish(method, started, data, content_type, exc)
            raise InvocationError(str(exc), method=method.wire_name) from exc

        if isinstance(returned, BaseException):
            self._finish(method, started, data, content_type, returned)
            raise InvocationError(str(returned), method=method.wire_name) from returned

        if result is NO_VALUE:
            self._finish(method, started, data, content_type, None)
            return None
        try:
            encoded = encode_result(result)
        except Exception as exc:
            self._finish(method, started, data, content_type, exc)
            raise InvocationError(
                f"cannot encode result of {method.wire_name}: {exc}", method=method.wire_name
            ) from exc
        self._finish(method, started, data, content_type, None)
        return Content(data=encoded, content_type=JSON_CONTENT_TYPE)

    def _finish(
        self,
        method: MethodDescriptor,
        started: float,
        data: bytes,
        content_type: str | None,
        error: BaseException | None,
    ) -> None:
        duration_ms = _elapsed_ms(started)
        method.record(error is None, duration_ms)
        self._log_event(
            method=method.wire_name,
            event="invoke",
            duration_ms=duration_ms,
            ok=error is None,
            data=data,
            content_type=content_type,
            error=error,
        )

    def _log_event(
        self,
        *,
        method: str,
        event: str,
        duration_ms: int,
        ok: bool,
        data: bytes | None = None,
        content_type: str | None = None,
        error: BaseException | None = None,
    ) -> None:
        """
        Emit JSON-ish single-line log with required keys and optional
        input/content_type/error.
        """
        payload: dict[str, Any] = {
            "service": self._service.name,
            "method": method,
            "event": event,
            "duration_ms": duration_ms,
            "ok": ok,
        }
        if self._settings.log_payloads and data is not None:
            payload["input"] = data.decode("utf-8", errors="replace")
        if content_type is not None:
            payload["content_type"] = content_type
        if error is not None:
            payload["error"] = str(error) or type(error).__name__

        line = json.dumps(payload, ensure_ascii=False)
        if ok:
            self._logger.info(line)
        else:
            self._logger.error(line)
