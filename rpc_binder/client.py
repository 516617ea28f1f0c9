"""
Outbound invocation client (sidecar-style HTTP API).

Configuration resolution (first match wins):
- constructor base_url
- RPC_BINDER_CLIENT_BASE_URL
- http://127.0.0.1:${DAPR_HTTP_PORT:-3500}

invoke(app_id, method, payload, out_type=None) posts JSON to
    {base_url}/v1.0/invoke/{app_id}/method/{method}
and decodes the response into out_type when given.

Raises InvocationError on transport failures and non-2xx answers, and
DecodeError when the answer does not fit out_type.
"""

from __future__ import annotations

import json
import logging
import os
import threading
from collections.abc import Mapping
from typing import Any, TypeVar, cast

import httpx
import pydantic_core
from pydantic import BaseModel

from .codec import JSON_CONTENT_TYPE, decode_argument
from .errors import InvocationError

__all__ = ["ServiceClient", "get_client", "set_client"]

M = TypeVar("M", bound=BaseModel)

DEFAULT_TIMEOUT_S = 15.0


def _default_base_url() -> str:
    explicit = os.getenv("RPC_BINDER_CLIENT_BASE_URL", "").strip()
    if explicit:
        return explicit.rstrip("/")
    port = os.getenv("DAPR_HTTP_PORT", "").strip() or "3500"
    return f"http://127.0.0.1:{port}"


def _encode_payload(payload: BaseModel | Mapping[str, Any] | None) -> bytes:
    if payload is None:
        return b""
    if isinstance(payload, BaseModel):
        return payload.model_dump_json(by_alias=True).encode("utf-8")
    return pydantic_core.to_json(dict(payload))


class ServiceClient:
    """
    Synchronous client for calling methods of other services.

    Holds one httpx.Client; use as a context manager or call close().
    """

    def __init__(
        self,
        base_url: str | None = None,
        *,
        timeout_s: float = DEFAULT_TIMEOUT_S,
        headers: Mapping[str, str] | None = None,
        transport: httpx.BaseTransport | None = None,
        logger: logging.Logger | None = None,
    ) -> None:
        self._base = (base_url or _default_base_url()).rstrip("/")
        self._headers: dict[str, str] = {str(k): str(v) for k, v in (headers or {}).items()}
        self._client = httpx.Client(timeout=httpx.Timeout(timeout_s), transport=transport)
        self._logger: logging.Logger = logger or logging.getLogger("rpc_binder.client")

    @property
    def base_url(self) -> str:
        return self._base

    def url_for(self, app_id: str, method: str) -> str:
        return f"{self._base}/v1.0/invoke/{app_id}/method/{method}"

    def invoke(
        self,
        app_id: str,
        method: str,
        payload: BaseModel | Mapping[str, Any] | None = None,
        out_type: type[M] | None = None,
    ) -> M | None:
        """
        POST payload to method of app_id.

        Returns:
            out_type instance decoded from the answer, or None without out_type.
        """
        data = _encode_payload(payload)
        headers = {"Content-Type": JSON_CONTENT_TYPE} | self._headers
        url = self.url_for(app_id, method)
        operation = f"{app_id}.{method}"

        try:
            resp = self._client.post(url, content=data, headers=headers)
        except httpx.RequestError as exc:
            self._log_call(operation, data, b"", exc)
            raise InvocationError(f"invoke {operation}: {exc}", method=method) from exc

        if not 200 <= resp.status_code < 300:
            err = InvocationError(
                f"invoke {operation}: HTTP {resp.status_code}",
                method=method,
                details={"status": resp.status_code, "body": resp.text[:2000]},
            )
            self._log_call(operation, data, resp.content, err)
            raise err

        self._log_call(operation, data, resp.content, None)
        if out_type is None:
            return None
        content_type = resp.headers.get("content-type") or JSON_CONTENT_TYPE
        return cast("M", decode_argument(out_type, resp.content or b"{}", content_type))

    def _log_call(self, operation: str, data: bytes, out: bytes, error: Exception | None) -> None:
        payload: dict[str, Any] = {
            "operation": operation,
            "event": "invoke",
            "ok": error is None,
            "in": data.decode("utf-8", errors="replace"),
            "out": out.decode("utf-8", errors="replace"),
        }
        if error is not None:
            payload["error"] = str(error)
        line = json.dumps(payload, ensure_ascii=False)
        if error is None:
            self._logger.info(line)
        else:
            self._logger.error(line)

    def close(self) -> None:
        self._client.close()

    def __enter__(self) -> ServiceClient:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()


# Module-level client singleton helpers
_client_singleton: ServiceClient | None = None
_client_lock = threading.Lock()


def get_client() -> ServiceClient:
    """
    Lazily create and return the process-wide ServiceClient.
    """
    global _client_singleton
    if _client_singleton is None:
        with _client_lock:
            if _client_singleton is None:
                _client_singleton = ServiceClient()
    return _client_singleton


def set_client(client: ServiceClient | None) -> None:
    """
    Set or reset the process-wide client (allow None for tests).
    """
    global _client_singleton
    with _client_lock:
        _client_singleton = client
