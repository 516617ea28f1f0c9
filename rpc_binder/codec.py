"""
Payload codec for service arguments and results.

- decode_argument(model, data, content_type): bytes -> model instance
  (JSON by default, YAML for yaml content types). Fields missing from the
  payload start from their zero value, like an unmarshal into a fresh value.
- new_result(model): zero-valued result with empty containers
- encode_result(instance): model instance -> JSON bytes

Type mismatches and malformed payloads raise DecodeError.
"""

from __future__ import annotations

import collections.abc as cabc
import types
from decimal import Decimal
from enum import Enum
from typing import Any, Literal, Union, cast, get_args, get_origin

import pydantic_core
import yaml
from pydantic import BaseModel, ValidationError as PydanticValidationError

from .errors import DecodeError
from .schemas import is_structured, unwrap_optional
from .types import JSONTime

__all__ = [
    "JSON_CONTENT_TYPE",
    "YAML_CONTENT_TYPE",
    "decode_argument",
    "encode_result",
    "new_result",
    "zero_value",
]

JSON_CONTENT_TYPE = "application/json"
YAML_CONTENT_TYPE = "application/yaml"

_YAML_TYPES = frozenset({"application/yaml", "application/x-yaml", "text/yaml", "text/x-yaml"})

_EMPTY_SEQUENCES: dict[Any, Any] = {
    list: list,
    tuple: tuple,
    set: set,
    frozenset: frozenset,
    cabc.Sequence: list,
    cabc.MutableSequence: list,
    cabc.Set: set,
    cabc.MutableSet: set,
}
_MAPPINGS = frozenset({dict, cabc.Mapping, cabc.MutableMapping})


def _media_type(content_type: str | None) -> str:
    return (content_type or "").split(";", 1)[0].strip().lower()


def _is_optional(annotation: Any) -> bool:
    origin = get_origin(annotation)
    return origin in (Union, types.UnionType) and type(None) in get_args(annotation)


def _is_container(annotation: Any) -> bool:
    tp = unwrap_optional(annotation)
    origin = get_origin(tp) or tp
    return origin in _EMPTY_SEQUENCES or origin in _MAPPINGS


def zero_value(annotation: Any, *, fill_containers: bool = True) -> Any:
    """
    Zero value for a field annotation.

    Optional fields are None, except containers when fill_containers is set.
    Models are built recursively without validation.
    """
    optional = _is_optional(annotation)
    tp = unwrap_optional(annotation)
    origin = get_origin(tp) or tp

    if origin in _EMPTY_SEQUENCES:
        return None if optional and not fill_containers else _EMPTY_SEQUENCES[origin]()
    if origin in _MAPPINGS:
        return None if optional and not fill_containers else {}
    if optional:
        return None

    if get_origin(tp) is Literal:
        return get_args(tp)[0]
    if isinstance(tp, type):
        if issubclass(tp, JSONTime):
            return JSONTime.zero()
        if issubclass(tp, Enum):
            return next(iter(tp), None)
        if issubclass(tp, bool):
            return False
        if issubclass(tp, int | float | Decimal | str):
            return tp()
        if is_structured(tp):
            return new_result(tp)
    return None


def new_result(model: type[BaseModel]) -> BaseModel:
    """
    Allocate a zero-valued instance of model.

    Fields with defaults keep them; sequence and mapping fields that would
    otherwise be None start as empty containers so they serialize as [] / {}.
    """
    values: dict[str, Any] = {}
    for name, info in model.model_fields.items():
        if info.is_required():
            values[name] = zero_value(info.annotation)
            continue
        default = info.get_default(call_default_factory=True)
        if default is None and _is_container(info.annotation):
            default = zero_value(info.annotation)
        values[name] = default
    return model.model_construct(**values)


def _field_key(info: Any, name: str) -> str:
    return info.alias or name


def _fill_missing(model: type[BaseModel], data: dict[str, Any]) -> dict[str, Any]:
    """Return data with zero values for required fields the payload left out."""
    out = dict(data)
    for name, info in model.model_fields.items():
        key = _field_key(info, name)
        if key not in out:
            if info.is_required():
                out[key] = zero_value(info.annotation, fill_containers=False)
            continue

        value = out[key]
        tp = unwrap_optional(info.annotation)
        if is_structured(tp) and isinstance(value, dict):
            out[key] = _fill_missing(tp, cast("dict[str, Any]", value))
        elif get_origin(tp) in _EMPTY_SEQUENCES and isinstance(value, list):
            args = get_args(tp)
            elem = unwrap_optional(args[0]) if args else None
            if is_structured(elem):
                out[key] = [
                    _fill_missing(elem, v) if isinstance(v, dict) else v
                    for v in cast("list[Any]", value)
                ]
    return out


def _parse(data: bytes, content_type: str | None) -> Any:
    if _media_type(content_type) in _YAML_TYPES:
        return yaml.safe_load(data.decode("utf-8"))
    return pydantic_core.from_json(data)


def decode_argument(
    model: type[BaseModel],
    data: bytes,
    content_type: str | None = JSON_CONTENT_TYPE,
) -> BaseModel:
    """
    Decode a request payload into a fresh instance of model.

    Raises:
        DecodeError: on malformed input, a non-object payload or type errors.
    """
    try:
        parsed = _parse(data, content_type)
    except (ValueError, yaml.YAMLError) as exc:
        raise DecodeError(
            f"cannot decode {model.__name__} payload: {exc}",
            details=str(exc),
        ) from exc
    if parsed is None:
        # null and empty YAML documents decode like an empty object
        parsed = {}
    if not isinstance(parsed, dict):
        raise DecodeError(
            f"{model.__name__} payload must be an object, got {type(parsed).__name__}"
        )
    try:
        return model.model_validate(_fill_missing(model, cast("dict[str, Any]", parsed)))
    except PydanticValidationError as exc:
        details = exc.errors(include_url=False, include_context=False, include_input=False)
        raise DecodeError(
            f"cannot decode {model.__name__} payload",
            details=cast("Any", details),
        ) from exc


def encode_result(instance: BaseModel) -> bytes:
    """Encode a result model as JSON (field aliases on the wire)."""
    return instance.model_dump_json(by_alias=True).encode("utf-8")
