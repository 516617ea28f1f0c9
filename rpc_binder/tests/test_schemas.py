from __future__ import annotations

from collections.abc import Mapping
from decimal import Decimal
from typing import Any, Literal

import pytest
from pydantic import BaseModel, Field

from rpc_binder.errors import SchemaError
from rpc_binder.schemas import extract_fields, is_exported, is_structured, unwrap_optional
from rpc_binder.types import JSONTime

from .sample_services import (
    Base,
    EchoRequest,
    LegacyTime,
    Left,
    LoginKinds,
    Node,
    _Hidden,
)


class Primitives(BaseModel):
    flag: bool = False
    count: int = 0
    ratio: float = 0.0
    amount: Decimal = Decimal(0)
    label: str = ""
    mode: Literal["a", "b"] = "a"


class Aliased(BaseModel):
    user_name: str = Field(default="", alias="userName")


class Collections(BaseModel):
    tags: list[str] = Field(default_factory=list)
    stamps: list[JSONTime] = Field(default_factory=list)
    scores: tuple[int, ...] = ()
    pair: tuple[int, str] = (0, "")
    meta: Mapping[str, Any] = Field(default_factory=dict)
    raw: dict = Field(default_factory=dict)
    blob: bytes = b""


class IntKeys(BaseModel):
    by_id: dict[int, str] = Field(default_factory=dict)


class NestedLegacy(BaseModel):
    legacy: LegacyTime | None = None


class Narrow(BaseModel):
    v: int = 0


class Widened(Narrow):
    v: str = ""
    w: bool = False


class Root(BaseModel):
    a: int = 0


class LeftBranch(Root):
    b: str = ""


class RightBranch(Root):
    c: bool = False


class Diamond(LeftBranch, RightBranch):
    d: int = 0


def _names(fields: list[dict[str, Any]]) -> list[str]:
    return [next(iter(f)) for f in fields]


class TestPrimitives:
    def test_length_and_tags_match_fields(self):
        fields = extract_fields(Primitives)
        assert len(fields) == len(Primitives.model_fields)
        assert fields == [
            {"flag": "bool"},
            {"count": "number"},
            {"ratio": "number"},
            {"amount": "number"},
            {"label": "string"},
            {"mode": "string"},
        ]
        for f in fields:
            assert next(iter(f.values())) in {"bool", "number", "string"}

    def test_alias_is_wire_name(self):
        assert extract_fields(Aliased) == [{"userName": "string"}]


class TestComposite:
    def test_nested_and_time_fields(self):
        assert extract_fields(EchoRequest) == [
            {"message": "string"},
            {"count": "number"},
            {"at": "time"},
            {"meta": {"string": "string"}},
            {"kind": [{"name": "string"}, {"weight": "number"}]},
        ]

    def test_sequences_and_mappings(self):
        assert extract_fields(Collections) == [
            {"tags": ["string"]},
            {"stamps": ["time"]},
            {"scores": ["number"]},
            {"meta": {"string": "string"}},
            {"raw": {"string": "string"}},
        ]

    def test_embedded_base_is_flattened_first(self):
        fields = extract_fields(LoginKinds)
        assert _names(fields) == ["id", "created", "kinds", "labels"]
        assert fields[0] == {"id": "number"}
        assert fields[1] == {"created": "time"}
        assert fields[2] == {"kinds": [[{"name": "string"}, {"weight": "number"}]]}
        assert "Base" not in _names(fields)

    def test_embedded_base_alone(self):
        assert extract_fields(Base) == [{"id": "number"}, {"created": "time"}]

    def test_redeclared_field_uses_subclass_type(self):
        assert extract_fields(Widened) == [{"v": "string"}, {"w": "bool"}]

    def test_shared_base_fields_listed_once_in_wire_order(self):
        fields = extract_fields(Diamond)
        assert _names(fields) == list(Diamond.model_fields)
        assert sorted(_names(fields)) == ["a", "b", "c", "d"]
        assert {"b": "string"} in fields
        assert {"c": "bool"} in fields


class TestCycles:
    def test_self_reference_yields_empty_marker(self):
        assert extract_fields(Node) == [{"name": "string"}, {"children": []}]

    def test_indirect_cycle_terminates(self):
        assert extract_fields(Left) == [{"right": [{"lefts": []}, {"left": []}]}]


class TestErrors:
    def test_datetime_is_rejected(self):
        with pytest.raises(SchemaError, match="LegacyTime.at"):
            extract_fields(LegacyTime)

    def test_nested_datetime_is_rejected(self):
        with pytest.raises(SchemaError):
            extract_fields(NestedLegacy)

    def test_non_str_keys_are_rejected(self):
        with pytest.raises(SchemaError, match="mapping keys"):
            extract_fields(IntKeys)

    @pytest.mark.parametrize("tp", [int, dict, BaseModel, "EchoRequest"])
    def test_non_structured_type_is_rejected(self, tp: Any):
        with pytest.raises(SchemaError):
            extract_fields(tp)


def test_type_helpers():
    assert unwrap_optional(EchoRequest | None) is EchoRequest
    assert unwrap_optional(int) is int
    assert is_structured(EchoRequest)
    assert not is_structured(dict)
    assert is_exported(EchoRequest)
    assert not is_exported(_Hidden)
