"""
Value types shared by the registry, the dispatcher and the transports.

- Context: caller-supplied request context passed through to service methods
- JSONTime: datetime that travels as "YYYY-MM-DD HH:MM:SS" (local time)
- Binding: declarative validation rules attached via typing.Annotated
- ResultKind / NO_VALUE: explicit void-or-typed result of a method
- Content: encoded handler output
"""

from __future__ import annotations

import threading
import time
from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import datetime
from typing import TYPE_CHECKING, Any, Final

from pydantic_core import core_schema

if TYPE_CHECKING:
    from pydantic import BaseModel, GetCoreSchemaHandler, GetJsonSchemaHandler
    from pydantic.json_schema import JsonSchemaValue

__all__ = [
    "NO_VALUE",
    "Binding",
    "Content",
    "Context",
    "JSONTime",
    "ResultKind",
]


@dataclass
class Context:
    """
    Request context handed to every service method unchanged.

    The binder never enforces the deadline or cancellation itself; service
    methods and transports decide what to do with them.
    """

    metadata: Mapping[str, str] = field(default_factory=dict)
    deadline: float | None = None  # time.monotonic() based
    _cancelled: threading.Event = field(default_factory=threading.Event, repr=False)

    @classmethod
    def background(cls) -> Context:
        """Empty context: no metadata, no deadline."""
        return cls()

    @classmethod
    def with_timeout(cls, seconds: float, metadata: Mapping[str, str] | None = None) -> Context:
        return cls(metadata=dict(metadata or {}), deadline=time.monotonic() + seconds)

    def remaining(self) -> float | None:
        """Seconds left before the deadline, or None when there is none."""
        if self.deadline is None:
            return None
        return max(0.0, self.deadline - time.monotonic())

    def cancel(self) -> None:
        self._cancelled.set()

    def done(self) -> bool:
        if self._cancelled.is_set():
            return True
        return self.deadline is not None and time.monotonic() >= self.deadline


class JSONTime(datetime):
    """
    Wrapped time for service payloads.

    Serializes as "YYYY-MM-DD HH:MM:SS" in local time instead of ISO-8601.
    Plain datetime fields are rejected by the schema extractor; use this type.
    """

    WIRE_FORMAT: Final = "%Y-%m-%d %H:%M:%S"

    @classmethod
    def from_datetime(cls, value: datetime) -> JSONTime:
        return cls(
            value.year,
            value.month,
            value.day,
            value.hour,
            value.minute,
            value.second,
            value.microsecond,
            value.tzinfo,
            fold=value.fold,
        )

    @classmethod
    def zero(cls) -> JSONTime:
        return cls(1, 1, 1)

    @classmethod
    def parse(cls, text: str) -> JSONTime:
        return cls.from_datetime(datetime.strptime(text, cls.WIRE_FORMAT))

    def to_wire(self) -> str:
        # aware values are shown in the local zone, naive ones are already local
        t = self.astimezone() if self.tzinfo is not None else self
        return (
            f"{t.year:04d}-{t.month:02d}-{t.day:02d} "
            f"{t.hour:02d}:{t.minute:02d}:{t.second:02d}"
        )

    @classmethod
    def _validate(cls, value: Any) -> JSONTime:
        if isinstance(value, JSONTime):
            return value
        if isinstance(value, datetime):
            return cls.from_datetime(value)
        if isinstance(value, str):
            try:
                return cls.parse(value)
            except ValueError as exc:
                raise ValueError(
                    f"time must match 'YYYY-MM-DD HH:MM:SS', got {value!r}"
                ) from exc
        raise ValueError(f"time must be a string, got {type(value).__name__}")

    @classmethod
    def __get_pydantic_core_schema__(
        cls, source_type: Any, handler: GetCoreSchemaHandler
    ) -> core_schema.CoreSchema:
        return core_schema.no_info_plain_validator_function(
            cls._validate,
            serialization=core_schema.plain_serializer_function_ser_schema(
                lambda v: v.to_wire(),
                when_used="always",
            ),
        )

    @classmethod
    def __get_pydantic_json_schema__(
        cls, schema: core_schema.CoreSchema, handler: GetJsonSchemaHandler
    ) -> JsonSchemaValue:
        return {"type": "string", "format": "YYYY-MM-DD HH:MM:SS"}


@dataclass(frozen=True, slots=True)
class Binding:
    """
    Validation rules for one field, e.g. Binding("required,oneof=web app").

    Attach with typing.Annotated:
        channel: Annotated[str, Binding("required,oneof=web app")] = ""
    """

    rules: str


class _NoValue:
    """Result placeholder handed to methods that declare no output."""

    _instance: _NoValue | None = None

    def __new__(cls) -> _NoValue:
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "NO_VALUE"

    def __bool__(self) -> bool:
        return False


NO_VALUE: Final = _NoValue()


@dataclass(frozen=True, slots=True)
class ResultKind:
    """Void or Typed(model): what a method writes its output into."""

    model: type[BaseModel] | None = None

    @classmethod
    def void(cls) -> ResultKind:
        return cls(None)

    @classmethod
    def typed(cls, model: type[BaseModel]) -> ResultKind:
        return cls(model)

    @property
    def is_void(self) -> bool:
        return self.model is None


@dataclass(frozen=True, slots=True)
class Content:
    """Encoded payload returned by an invocation handler."""

    data: bytes
    content_type: str
