"""
Settings loader for rpc_binder.

- BinderSettings: pydantic model holding the process-wide binder options.
- Load from YAML or JSON: top-level mapping or object with "binder".
- Apply RPC_BINDER_{FIELD} env overrides (values parsed as JSON when possible).
- get_settings()/set_settings(): explicit process-wide default, created once
  and read-only afterwards (resettable for tests).
"""

from __future__ import annotations

import json
import os
import threading
from collections.abc import Mapping
from pathlib import Path
from typing import Any, Literal, cast

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError as PydanticValidationError

from .errors import BinderError

__all__ = [
    "ENV_PREFIX",
    "BinderSettings",
    "get_settings",
    "load_settings",
    "set_settings",
]

ENV_PREFIX = "RPC_BINDER_"


class BinderSettings(BaseModel):
    """
    Options shared by registration and dispatch.

    on_collision decides what happens when two methods convert to the same
    wire name: "overwrite" keeps the later one and logs a warning, "reject"
    fails registration.
    """

    signature_method: str = Field(default="get_signature", min_length=1)
    on_collision: Literal["overwrite", "reject"] = "overwrite"
    log_payloads: bool = True
    logger_name: str = "rpc_binder"

    model_config = ConfigDict(frozen=True, extra="ignore")


def _coerce_env_value(value: str) -> Any:
    """Parse env override value via JSON; otherwise return raw string."""
    try:
        return json.loads(value)
    except (ValueError, TypeError):
        return value


def _env_overrides(env: Mapping[str, str]) -> dict[str, Any]:
    """
    Collect RPC_BINDER_* overrides for known fields.
    Example:
        RPC_BINDER_ON_COLLISION=reject
        RPC_BINDER_LOG_PAYLOADS=false
    """
    out: dict[str, Any] = {}
    for name in BinderSettings.model_fields:
        key = f"{ENV_PREFIX}{name.upper()}"
        if key in env:
            raw = env[key]
            out[name] = raw if name in {"signature_method", "logger_name"} else _coerce_env_value(raw)
    return out


def _read_file(path: Path) -> dict[str, Any]:
    text = path.read_text(encoding="utf-8")
    if path.suffix.lower() == ".json":
        data: Any = json.loads(text)
    else:
        data = yaml.safe_load(text)
    if data is None:
        return {}
    if not isinstance(data, Mapping):
        raise BinderError(f"config file {path} must hold a mapping")
    section = cast("Mapping[str, Any]", data)
    if isinstance(section.get("binder"), Mapping):
        section = cast("Mapping[str, Any]", section["binder"])
    return dict(section)


def load_settings(
    path: str | os.PathLike[str] | None = None,
    env: Mapping[str, str] | None = None,
) -> BinderSettings:
    """
    Build BinderSettings from an optional file plus environment overrides.

    Raises:
        BinderError: when the file is unreadable or values are invalid.
    """
    raw: dict[str, Any] = {}
    if path is not None:
        try:
            raw = _read_file(Path(path))
        except (OSError, ValueError, yaml.YAMLError) as exc:
            raise BinderError(f"cannot load binder config from {path}: {exc}") from exc
    raw |= _env_overrides(os.environ if env is None else env)
    try:
        return BinderSettings(**raw)
    except PydanticValidationError as exc:
        raise BinderError(
            "invalid binder settings",
            details=cast("Any", exc.errors(include_url=False, include_context=False)),
        ) from exc


# Module-level settings singleton helpers
_settings_singleton: BinderSettings | None = None
_settings_lock = threading.Lock()


def get_settings() -> BinderSettings:
    """
    Lazily create and return the process-wide BinderSettings.
    Reads RPC_BINDER_CONFIG (file path) and RPC_BINDER_* overrides once.
    """
    global _settings_singleton
    if _settings_singleton is None:
        with _settings_lock:
            if _settings_singleton is None:
                _settings_singleton = load_settings(os.getenv(f"{ENV_PREFIX}CONFIG"))
    return _settings_singleton


def set_settings(settings: BinderSettings | None) -> None:
    """
    Set or reset the process-wide settings (allow None for tests).
    """
    global _settings_singleton
    with _settings_lock:
        _settings_singleton = settings
