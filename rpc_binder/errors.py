"""
Error types used across the rpc_binder package.

Three tiers:
- registration time, per method: eligibility problems are logged, not raised
- registration time, whole service: RegistrationError / SchemaError
- request time, per call: DecodeError / ValidationError / InvocationError
"""

from __future__ import annotations

from datetime import UTC, datetime
from typing import Any
from uuid import uuid4

from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field


class BinderError(Exception):
    """
    Base class for rpc_binder errors.

    Attributes:
        details: Optional structured details (dict, list or str).
    """

    def __init__(
        self,
        message: str,
        details: dict[str, Any] | list[Any] | str | None = None,
    ) -> None:
        super().__init__(message)
        self.details: dict[str, Any] | list[Any] | str | None = details


class RegistrationError(BinderError):
    """Raised when a service cannot be registered (empty name, no eligible methods)."""


class SchemaError(BinderError):
    """
    Raised when a structured type cannot be described.

    A configuration bug: disallowed datetime fields or mappings without str keys.
    Registration must not continue after this error.
    """


class MethodNotFound(BinderError):
    """Raised when a wire name is not bound to any handler."""


class DecodeError(BinderError):
    """Raised when a request payload cannot be decoded into the argument type."""


class ValidationError(BinderError):
    """Raised when a decoded argument violates its binding constraints."""


class InvocationError(BinderError):
    """
    Raised when the business method reports an error.

    Attributes:
        method: Wire name of the failing method.
    """

    def __init__(
        self,
        message: str | None = None,
        *,
        method: str | None = None,
        details: dict[str, Any] | list[Any] | str | None = None,
    ) -> None:
        if not message:
            message = f"{method}: invocation failed" if method else "invocation failed"
        super().__init__(message, details=details)
        self.method: str | None = method


# === Canonical ErrorResponse model and helpers (normalized transport errors) ===


class ErrorResponse(BaseModel):
    # Short, human category (e.g. "Not Found", "Validation Error")
    error: str = Field(...)
    # HTTP status code
    status: int = Field(...)
    # Machine-usable code (e.g., "ERR_NOT_FOUND", "ERR_VALIDATION", "ERR_INVOCATION")
    code: str = Field(...)
    # Human-readable message
    message: str = Field(...)
    # Optional details for decode/validation issues
    details: Any | None = Field(default=None)
    # Optional request ID; generate if missing
    requestId: str | None = Field(default=None)
    # "METHOD PATH"
    endpoint: str = Field(...)
    # Wire name of the invoked method when known
    operationId: str | None = Field(default=None)
    # RFC3339 timestamp
    timestamp: str = Field(...)

    model_config = {"populate_by_name": True}


def _now_rfc3339() -> str:
    return datetime.now(UTC).isoformat()


def error_response(
    status: int,
    code: str,
    message: str,
    *,
    error: str,
    details: Any | None = None,
    endpoint: str,
    operationId: str | None = None,
    requestId: str | None = None,
) -> JSONResponse:
    rid = requestId or str(uuid4())
    body = ErrorResponse(
        error=error,
        status=status,
        code=code,
        message=message,
        details=details,
        requestId=rid,
        endpoint=endpoint,
        operationId=operationId,
        timestamp=_now_rfc3339(),
    )
    return JSONResponse(
        content=body.model_dump(by_alias=True, exclude_none=True), status_code=status
    )


def method_not_found(
    method: str,
    path: str,
    requestId: str | None = None,
    *,
    http_method: str = "POST",
) -> JSONResponse:
    """
    Canonical 404 payload for a wire name that no handler is bound to.
    """
    return error_response(
        status=404,
        code="ERR_NOT_FOUND",
        message=f"method '{method}' is not registered",
        error="Not Found",
        details=None,
        endpoint=f"{http_method} {path}",
        operationId=method,
        requestId=requestId,
    )
