"""
Declarative argument validation driven by Binding annotations.

Rule vocabulary (comma separated, evaluated left to right):
- required      value must differ from its type's zero value
- omitempty     skip the remaining rules when the value is zero
- oneof=a b c   str(value) must be one of the space separated alternatives
- min=N/max=N   numbers compare by value; str/list/dict compare by length
- len=N         exact length (numbers: exact value)

Nested structured fields are validated recursively. Unknown rules are a
configuration bug and raise SchemaError when the model is compiled, which
the registry does at registration time.

Exports:
- compile_bindings(model), compile_reachable_bindings(model)
- validate_bindings(instance)
"""

from __future__ import annotations

from collections.abc import Sized
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from functools import lru_cache
from typing import Any, get_args

from pydantic import BaseModel

from .errors import SchemaError, ValidationError
from .types import Binding, JSONTime

__all__ = [
    "Rule",
    "compile_bindings",
    "compile_reachable_bindings",
    "validate_bindings",
    "wire_name",
]

_KNOWN_TAGS = frozenset({"required", "omitempty", "oneof", "min", "max", "len"})
_PARAM_TAGS = frozenset({"oneof", "min", "max", "len"})


@dataclass(frozen=True, slots=True)
class Rule:
    tag: str
    param: str | None = None


def wire_name(model: type[BaseModel], field_name: str) -> str:
    """Name of a model field on the wire: its alias when set."""
    info = model.model_fields[field_name]
    return info.alias or field_name


def _parse_rules(text: str, where: str) -> tuple[Rule, ...]:
    rules: list[Rule] = []
    for raw in text.split(","):
        part = raw.strip()
        if not part:
            continue
        tag, sep, param = part.partition("=")
        tag = tag.strip()
        if tag not in _KNOWN_TAGS:
            raise SchemaError(f"unknown binding rule {tag!r} on {where}")
        if tag in _PARAM_TAGS and not sep:
            raise SchemaError(f"binding rule {tag!r} on {where} needs a parameter")
        if tag in {"min", "max", "len"}:
            try:
                Decimal(param)
            except InvalidOperation as exc:
                raise SchemaError(
                    f"binding rule {tag!r} on {where} needs a number, got {param!r}"
                ) from exc
        rules.append(Rule(tag, param if sep else None))
    return tuple(rules)


@lru_cache(maxsize=None)
def compile_bindings(model: type[BaseModel]) -> dict[str, tuple[Rule, ...]]:
    """
    Parse the Binding annotations of a model.

    Returns {python field name: rules} for fields carrying a Binding.

    Raises:
        SchemaError: on unknown or malformed rules.
    """
    compiled: dict[str, tuple[Rule, ...]] = {}
    for name, info in model.model_fields.items():
        bindings = [m for m in info.metadata if isinstance(m, Binding)]
        if not bindings:
            continue
        where = f"{model.__name__}.{name}"
        rules: tuple[Rule, ...] = ()
        for b in bindings:
            rules += _parse_rules(b.rules, where)
        compiled[name] = rules
    return compiled


def _nested_models(annotation: Any) -> list[type[BaseModel]]:
    if isinstance(annotation, type) and issubclass(annotation, BaseModel):
        return [annotation]
    found: list[type[BaseModel]] = []
    for arg in get_args(annotation):
        found.extend(_nested_models(arg))
    return found


def compile_reachable_bindings(model: type[BaseModel]) -> None:
    """
    Compile the Binding rules of model and of every model its fields reach
    (nested, optional, sequence elements, mapping values).

    Raises:
        SchemaError: on unknown or malformed rules anywhere in the tree.
    """
    seen: set[type[BaseModel]] = set()
    pending = [model]
    while pending:
        current = pending.pop()
        if current in seen:
            continue
        seen.add(current)
        compile_bindings(current)
        for info in current.model_fields.values():
            pending.extend(_nested_models(info.annotation))


def _is_zero(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, JSONTime):
        return value == JSONTime.zero()
    if isinstance(value, BaseModel):
        return False
    if isinstance(value, bool | int | float | Decimal):
        return value == 0
    if isinstance(value, Sized):
        return len(value) == 0
    return False


def _measure(value: Any) -> Decimal | None:
    if isinstance(value, bool):
        return None
    if isinstance(value, int | float | Decimal):
        return Decimal(str(value))
    if isinstance(value, Sized):
        return Decimal(len(value))
    return None


def _check(rule: Rule, value: Any) -> bool:
    if rule.tag == "required":
        return not _is_zero(value)
    if rule.tag == "oneof":
        options = (rule.param or "").split()
        if isinstance(value, bool) or value is None:
            return False
        return str(value) in options
    measured = _measure(value)
    if measured is None:
        return False
    limit = Decimal(rule.param or "0")
    if rule.tag == "min":
        return measured >= limit
    if rule.tag == "max":
        return measured <= limit
    return measured == limit  # len


def _collect(instance: BaseModel, prefix: str, violations: list[dict[str, Any]]) -> None:
    model = type(instance)
    rules_by_field = compile_bindings(model)
    for name in model.model_fields:
        value = getattr(instance, name, None)
        path = f"{prefix}{wire_name(model, name)}"
        for rule in rules_by_field.get(name, ()):
            if rule.tag == "omitempty":
                if _is_zero(value):
                    break
                continue
            if not _check(rule, value):
                violations.append(
                    {
                        "field": path,
                        "tag": rule.tag if rule.param is None else f"{rule.tag}={rule.param}",
                        "value": value if isinstance(value, str | int | float | bool) else None,
                    }
                )
                break
        if isinstance(value, BaseModel):
            _collect(value, f"{path}.", violations)


def validate_bindings(instance: BaseModel) -> None:
    """
    Check a decoded argument against its Binding rules.

    Raises:
        ValidationError: with details listing each violated field.
    """
    violations: list[dict[str, Any]] = []
    _collect(instance, "", violations)
    if violations:
        fields = ", ".join(v["field"] for v in violations)
        raise ValidationError(
            f"validation failed for '{type(instance).__name__}': {fields}",
            details=violations,
        )
