#!/usr/bin/env python3
"""
Run a demo echo service over HTTP.

    python run_echo_service.py            # listens on 127.0.0.1:2000
    curl -X POST localhost:2000/echo -d '{"message": "hi"}'
    curl localhost:2000/get_signature
"""

from __future__ import annotations

import sys
from datetime import datetime
from typing import Any

from fastapi import FastAPI
from pydantic import BaseModel, Field

from rpc_binder import Context, HttpTransport, JSONTime, new_service
from rpc_binder.logging_config import setup_logging


class EchoIn(BaseModel):
    message: str = ""
    create_at: JSONTime = Field(default_factory=JSONTime.zero)


class Extension(BaseModel):
    id: str = ""
    name: str = ""


class EchoOut(BaseModel):
    message: str = ""
    extensions: list[Extension] | None = Field(default=None, alias="extention")
    echo_at: JSONTime = Field(default_factory=JSONTime.zero)


class UpdateIn(BaseModel):
    is_new_user: bool = Field(default=False, alias="is_new")
    age: int = 0
    body_heights: int = 0
    name: str = ""
    login_date: int = 0


class EchoServer:
    def echo(self, ctx: Context, arg: EchoIn, result: EchoOut) -> Exception | None:
        result.message = f"FYI: {arg.message}"
        result.echo_at = JSONTime.from_datetime(datetime.now())
        return None

    def update_info(self, ctx: Context, arg: UpdateIn, result: Any) -> Exception | None:
        # no result model: success is reported by the absence of an error
        return None


def create_app() -> FastAPI:
    transport = HttpTransport()
    new_service(transport, "demo.echo/v1", EchoServer())
    return transport.app


def main() -> int:
    setup_logging("INFO")
    try:
        import uvicorn
    except ImportError:
        print("uvicorn is required: pip install 'rpc-binder[server]'", file=sys.stderr)
        return 1

    config = uvicorn.Config(
        app="run_echo_service:create_app",
        factory=True,
        host="127.0.0.1",
        port=2000,
        log_level="info",
        access_log=True,
        reload=False,
    )
    uvicorn.Server(config).run()
    return 0


if __name__ == "__main__":
    sys.exit(main())
