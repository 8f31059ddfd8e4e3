"""orjson helpers shared by header decoding and the CLI output."""

from __future__ import annotations

from decimal import Decimal
from pathlib import Path
from typing import Any

import orjson
from pydantic import BaseModel

JSONDecodeError = orjson.JSONDecodeError


def _fallback(obj: Any) -> Any:
    if isinstance(obj, BaseModel):
        return obj.model_dump(mode="json")
    if isinstance(obj, Decimal):
        return float(obj)
    if isinstance(obj, Path):
        return str(obj)
    raise TypeError(f"Object of type {type(obj).__name__} is not JSON serializable")


def dumps(obj: Any, *, option: int | None = None) -> str:
    """Serialize ``obj``; pydantic models, Decimals and paths are accepted."""
    if option is None:
        return orjson.dumps(obj, default=_fallback).decode("utf-8")
    return orjson.dumps(obj, default=_fallback, option=option).decode("utf-8")


def loads(data: str | bytes) -> Any:
    return orjson.loads(data)
