"""
Structural description of pydantic models for the signature document.

Each model becomes an ordered list of single-key dicts (field descriptors):

    {"name": "string"}                     primitive: bool | number | string
    {"create": "time"}                     JSONTime
    {"sub": [ {...}, ... ]}                nested model
    {"kinds": [[ {...}, ... ]]}            list of models
    {"tags": ["string"]}                   list of primitives
    {"children": []}                       cycle back to a model being described
    {"meta": {"string": "string"}}         str-keyed mapping

Fields inherited from structured base classes come first, in the order
pydantic resolves them (embedding); a redeclared field keeps its subclass
type. Unsupported field types are left out.
Plain datetime fields and mappings with non-str keys raise SchemaError.

Exports:
- extract_fields(model)
- is_structured(tp), is_exported(tp), unwrap_optional(tp)
"""

from __future__ import annotations

import collections.abc as cabc
import types
from datetime import datetime
from decimal import Decimal
from typing import Annotated, Any, Literal, Union, get_args, get_origin

from pydantic import BaseModel, RootModel

from .errors import SchemaError
from .types import JSONTime
from .validation import wire_name

__all__ = [
    "FieldDescriptor",
    "extract_fields",
    "is_exported",
    "is_structured",
    "primitive_tag",
    "unwrap_optional",
]

FieldDescriptor = dict[str, Any]

MAP_PLACEHOLDER: dict[str, str] = {"string": "string"}

_SEQUENCE_ORIGINS = frozenset(
    {
        list,
        tuple,
        set,
        frozenset,
        cabc.Sequence,
        cabc.MutableSequence,
        cabc.Set,
        cabc.MutableSet,
    }
)
_MAPPING_ORIGINS = frozenset({dict, cabc.Mapping, cabc.MutableMapping})


# -------------------------
# Type helpers (shared with registry and dispatcher)
# -------------------------


def _strip_annotated(tp: Any) -> Any:
    while get_origin(tp) is Annotated:
        tp = get_args(tp)[0]
    return tp


def unwrap_optional(tp: Any) -> Any:
    """Return T for `T | None` / Optional[T] (and strip Annotated); else tp."""
    tp = _strip_annotated(tp)
    if get_origin(tp) in (Union, types.UnionType):
        args = [a for a in get_args(tp) if a is not type(None)]
        if len(args) == 1:
            return _strip_annotated(args[0])
    return tp


def is_structured(tp: Any) -> bool:
    """True for pydantic model classes (RootModel excluded)."""
    return (
        isinstance(tp, type)
        and issubclass(tp, BaseModel)
        and tp is not BaseModel
        and not issubclass(tp, RootModel)
    )


def is_exported(tp: Any) -> bool:
    return isinstance(tp, type) and not tp.__name__.startswith("_")


def primitive_tag(tp: Any) -> str | None:
    """'bool' | 'number' | 'string' for primitive types, else None."""
    if get_origin(tp) is Literal:
        values = get_args(tp)
        return primitive_tag(type(values[0])) if values else None
    if not isinstance(tp, type):
        return None
    if issubclass(tp, bool):
        return "bool"
    if issubclass(tp, int | float | Decimal):
        return "number"
    if issubclass(tp, str):
        return "string"
    return None


def _sequence_element(tp: Any) -> Any | None:
    args = get_args(tp)
    if not args:
        return None
    if get_origin(tp) is tuple and not (len(args) == 2 and args[1] is Ellipsis):
        # heterogeneous tuples have no single element type
        return None
    return unwrap_optional(args[0])


# -------------------------
# Extraction
# -------------------------


def _describe_time(tp: Any, where: str) -> str | None:
    if isinstance(tp, type) and issubclass(tp, JSONTime):
        return "time"
    if isinstance(tp, type) and issubclass(tp, datetime):
        raise SchemaError(
            f"{where}: datetime is not supported, use rpc_binder.types.JSONTime"
        )
    return None


def _describe_sequence(
    tp: Any, where: str, stack: tuple[type[BaseModel], ...]
) -> list[Any] | None:
    elem = _sequence_element(tp)
    if elem is None:
        return None
    if is_structured(elem):
        if elem in stack:
            return []
        return [_extract(elem, stack + (elem,))]
    tag = primitive_tag(elem) or _describe_time(elem, where)
    return [tag] if tag else None


def _describe_mapping(tp: Any, where: str) -> dict[str, str]:
    args = get_args(tp)
    key = unwrap_optional(args[0]) if args else str
    if key is Any or not (isinstance(key, type) and issubclass(key, str)):
        raise SchemaError(f"{where}: mapping keys must be str, got {key!r}")
    return dict(MAP_PLACEHOLDER)


def _describe(annotation: Any, where: str, stack: tuple[type[BaseModel], ...]) -> Any:
    tp = unwrap_optional(annotation)

    tag = primitive_tag(tp)
    if tag:
        return tag
    time_tag = _describe_time(tp, where)
    if time_tag:
        return time_tag

    if is_structured(tp):
        if tp in stack:
            return []
        return _extract(tp, stack + (tp,))

    origin = get_origin(tp)
    if origin in _SEQUENCE_ORIGINS:
        return _describe_sequence(tp, where, stack)
    if origin in _MAPPING_ORIGINS or tp in (dict, cabc.Mapping):
        return _describe_mapping(tp, where)
    return None


def _extract(
    model: type[BaseModel], stack: tuple[type[BaseModel], ...]
) -> list[FieldDescriptor]:
    # model_fields already lists inherited fields first, with overrides applied
    fields: list[FieldDescriptor] = []
    for name, info in model.model_fields.items():
        where = f"{model.__name__}.{name}"
        entry = _describe(info.annotation, where, stack)
        if entry is None:
            continue
        fields.append({wire_name(model, name): entry})
    return fields


def extract_fields(model: type[BaseModel]) -> list[FieldDescriptor]:
    """
    Describe a model as an ordered list of field descriptors.

    Raises:
        SchemaError: when model is not structured, or a field uses datetime
            or a mapping with non-str keys.
    """
    if not is_structured(model):
        raise SchemaError(f"{model!r} is not a structured type")
    return _extract(model, (model,))
