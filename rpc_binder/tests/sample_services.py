"""Models and service objects shared by the rpc_binder tests."""

from __future__ import annotations

from collections.abc import Mapping
from datetime import datetime
from typing import Annotated, Any

from pydantic import BaseModel, Field

from rpc_binder.transports.base import InvocationHandler
from rpc_binder.types import Binding, Context, JSONTime

# -------------------------
# Models
# -------------------------


class Kind(BaseModel):
    name: str = ""
    weight: float = 0.0


class Base(BaseModel):
    id: int = 0
    created: JSONTime = Field(default_factory=JSONTime.zero)


class EchoRequest(BaseModel):
    message: Annotated[str, Binding("required")] = ""
    count: Annotated[int, Binding("omitempty,min=1,max=10")] = 0
    at: JSONTime = Field(default_factory=JSONTime.zero)
    meta: dict[str, str] = Field(default_factory=dict)
    kind: Kind | None = None


class EchoResponse(Base):
    message: str = ""
    repeated: list[str] | None = None
    meta: dict[str, str] | None = None
    kind: Kind | None = None


class LoginRequest(BaseModel):
    user: Annotated[str, Binding("required")] = ""
    channel: Annotated[str, Binding("required,oneof=web app")] = ""


class LoginKinds(Base):
    kinds: list[Kind] | None = None
    labels: dict[str, str] | None = None


class NotifyRequest(BaseModel):
    topic: Annotated[str, Binding("required")] = ""


class Node(BaseModel):
    name: str = ""
    children: list[Node] = Field(default_factory=list)


class Left(BaseModel):
    right: Right | None = None


class Right(BaseModel):
    lefts: list[Left] = Field(default_factory=list)
    left: Left | None = None


Node.model_rebuild()
Left.model_rebuild()
Right.model_rebuild()


class _Hidden(BaseModel):
    value: str = ""


class BadTagRequest(BaseModel):
    mode: Annotated[str, Binding("required,bogus")] = ""


class Address(BaseModel):
    city: Annotated[str, Binding("requird")] = ""


class NestedBadTagRequest(BaseModel):
    name: str = ""
    address: Address | None = None


class ListedBadTagRequest(BaseModel):
    addresses: list[Address] = Field(default_factory=list)


class LegacyTime(BaseModel):
    at: datetime = Field(default_factory=datetime.now)


# -------------------------
# Transports
# -------------------------


class RecordingTransport:
    """In-memory InvocationTransport that keeps handlers by wire name."""

    def __init__(self) -> None:
        self.handlers: dict[str, InvocationHandler] = {}

    def add_service_invocation_handler(self, name: str, handler: InvocationHandler) -> None:
        if name in self.handlers:
            raise ValueError(f"duplicate handler {name}")
        self.handlers[name] = handler


# -------------------------
# Services
# -------------------------


class EchoService:
    """Eligible methods: echo, get_login_kind, notify, fail, explode."""

    def __init__(self) -> None:
        self.notified: list[str] = []
        self.seen_metadata: list[Mapping[str, str]] = []

    def echo(self, ctx: Context, arg: EchoRequest, result: EchoResponse) -> Exception | None:
        result.message = arg.message
        result.repeated = [arg.message] * arg.count
        result.meta = dict(arg.meta)
        result.kind = arg.kind
        result.created = arg.at
        self.seen_metadata.append(dict(ctx.metadata))
        return None

    def GetLoginKind(  # noqa: N802
        self, ctx: Context, arg: LoginRequest, result: LoginKinds
    ) -> Exception | None:
        assert result.kinds is not None
        result.kinds.append(Kind(name=arg.channel, weight=1.0))
        return None

    def notify(self, ctx: Context, arg: NotifyRequest, result: Any) -> Exception | None:
        self.notified.append(arg.topic)
        return None

    def fail(self, ctx: Context, arg: NotifyRequest, result: Any) -> Exception | None:
        return ValueError(f"cannot notify {arg.topic}")

    def explode(self, ctx: Context, arg: NotifyRequest, result: Any) -> None:
        raise RuntimeError("exploded")

    def helper(self, value: int) -> int:
        return value

    def _internal(self, ctx: Context, arg: NotifyRequest, result: Any) -> None:
        return None


class NoMethods:
    def helper(self, value: int) -> int:
        return value


class WrongContext:
    def run(self, ctx: dict, arg: NotifyRequest, result: Any) -> None:
        return None


class PlainArgument:
    def run(self, ctx: Context, arg: dict, result: Any) -> None:
        return None


class HiddenArgument:
    def run(self, ctx: Context, arg: _Hidden, result: Any) -> None:
        return None


class PrimitiveResult:
    def run(self, ctx: Context, arg: NotifyRequest, result: int) -> None:
        return None


class WrongReturn:
    def run(self, ctx: Context, arg: NotifyRequest, result: Any) -> str:
        return ""


class KeywordOnly:
    def run(self, ctx: Context, arg: NotifyRequest, *, result: Any) -> None:
        return None


class Colliding:
    def GetItem(self, ctx: Context, arg: NotifyRequest, result: Any) -> None:  # noqa: N802
        return None

    def get_item(self, ctx: Context, arg: NotifyRequest, result: Any) -> None:
        return None


class ReservedName:
    def get_signature(self, ctx: Context, arg: NotifyRequest, result: Any) -> None:
        return None


class BadBinding:
    def run(self, ctx: Context, arg: BadTagRequest, result: Any) -> None:
        return None


class NestedBadBinding:
    def run(self, ctx: Context, arg: NestedBadTagRequest, result: Any) -> None:
        return None


class ListedBadBinding:
    def run(self, ctx: Context, arg: ListedBadTagRequest, result: Any) -> None:
        return None


class AsyncMethod:
    async def run(self, ctx: Context, arg: NotifyRequest, result: Any) -> Exception | None:
        return RuntimeError("never awaited")


class AsyncGenerator:
    async def run(self, ctx: Context, arg: NotifyRequest, result: Any):
        yield None


class TimeResult:
    def run(self, ctx: Context, arg: NotifyRequest, result: LegacyTime) -> None:
        return None


class CycleService:
    def walk(self, ctx: Context, arg: Node, result: Left) -> None:
        return None
