"""
FastAPI transport: exposes bound handlers as `POST /{method}` (GET allowed
for argument-less calls such as get_signature).

Status mapping (canonical ErrorResponse envelope):
- unknown wire name  -> 404 ERR_NOT_FOUND (no handler is called)
- DecodeError        -> 400 ERR_DECODE
- ValidationError    -> 422 ERR_VALIDATION
- InvocationError    -> 500 ERR_INVOCATION
- void success       -> 200 with an empty body
"""

from __future__ import annotations

import logging
import threading

from fastapi import FastAPI, Request
from fastapi.responses import Response
from starlette import status
from starlette.concurrency import run_in_threadpool

from ..codec import JSON_CONTENT_TYPE
from ..errors import (
    BinderError,
    DecodeError,
    InvocationError,
    MethodNotFound,
    ValidationError,
    error_response,
    method_not_found,
)
from ..types import Context
from .base import InvocationHandler

__all__ = ["HttpTransport"]

log = logging.getLogger("rpc_binder.transports.http")

REQUEST_ID_HEADER = "x-request-id"

_FAILURES: tuple[tuple[type[BinderError], int, str, str], ...] = (
    (MethodNotFound, 404, "ERR_NOT_FOUND", "Not Found"),
    (DecodeError, 400, "ERR_DECODE", "Bad Request"),
    (ValidationError, 422, "ERR_VALIDATION", "Validation Error"),
    (InvocationError, 500, "ERR_INVOCATION", "Invocation Error"),
)


def _classify(exc: BinderError) -> tuple[int, str, str]:
    for kind, code_status, code, category in _FAILURES:
        if isinstance(exc, kind):
            return code_status, code, category
    return 500, "ERR_INTERNAL", "Internal Error"


class HttpTransport:
    """
    InvocationTransport backed by a FastAPI application.

    Handlers are synchronous and run in Starlette's threadpool; request
    headers become Context.metadata.
    """

    def __init__(self, app: FastAPI | None = None, *, prefix: str = "") -> None:
        self.app: FastAPI = app or FastAPI(title="rpc_binder service", version="0.1.0")
        self._prefix = prefix.rstrip("/")
        self._lock = threading.Lock()
        self._handlers: dict[str, InvocationHandler] = {}
        self.app.add_api_route(
            f"{self._prefix}/{{method}}",
            self._endpoint,
            methods=["GET", "POST"],
            response_model=None,
            tags=["invoke"],
        )

    def add_service_invocation_handler(self, name: str, handler: InvocationHandler) -> None:
        """
        Route calls for wire name `name` to handler.

        Raises:
            BinderError: empty name or a name that is already routed.
        """
        if not name:
            raise BinderError("method name required for service invocation")
        with self._lock:
            if name in self._handlers:
                raise BinderError(f"handler for '{name}' already registered")
            self._handlers[name] = handler
        log.info("add method [%s] to invoke", name)

    def handler_names(self) -> list[str]:
        with self._lock:
            return sorted(self._handlers)

    async def _endpoint(self, method: str, request: Request) -> Response:
        path = request.url.path
        endpoint = f"{request.method} {path}"
        request_id = request.headers.get(REQUEST_ID_HEADER)

        with self._lock:
            handler = self._handlers.get(method)
        if handler is None:
            log.warning("no handler for method %s", method)
            return method_not_found(
                method, path, requestId=request_id, http_method=request.method
            )

        data = await request.body()
        content_type = request.headers.get("content-type") or JSON_CONTENT_TYPE
        ctx = Context(metadata=dict(request.headers))
        try:
            out = await run_in_threadpool(handler, ctx, data, content_type)
        except BinderError as error:
            code_status, code, category = _classify(error)
            return error_response(
                status=code_status,
                code=code,
                message=str(error),
                error=category,
                details=error.details,
                endpoint=endpoint,
                operationId=method,
                requestId=request_id,
            )

        if out is None:
            return Response(content=b"", status_code=status.HTTP_200_OK)
        return Response(content=out.data, media_type=out.content_type)
