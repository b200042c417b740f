from __future__ import annotations

from typing import Any, Dict

from fastapi import Request

from geyser.api.errors import ApiError
from geyser.ledger.types import LedgerState

Json = Dict[str, Any]


def _executor(request: Request):
    ex = getattr(request.app.state, "executor", None)
    if ex is None:
        raise ApiError.internal("not_ready", "executor not attached to app.state", {})
    return ex


def _ledger(request: Request) -> LedgerState:
    """A private copy of the live ledger; safe to read without holding the executor lock."""
    return _executor(request).snapshot_ledger()


def _account_param(v: Any, *, field: str = "account") -> str:
    s = str(v or "").strip()
    if not s:
        raise ApiError.bad_request("bad_request", f"{field} must be non-empty", {field: s})
    return s
