from __future__ import annotations

import time
from typing import Any, Optional

from fastapi import APIRouter, Request

router = APIRouter()


def _now_ms() -> int:
    return int(time.time() * 1000)


def _try_executor_state(ex: Any) -> Optional[dict[str, Any]]:
    if ex is None:
        return None
    try:
        st = ex.read_state()
        return st if isinstance(st, dict) else None
    except Exception:
        return None


@router.get("/health")
def health(request: Request) -> dict[str, object]:
    # health must never crash; best-effort telemetry only
    ex = getattr(request.app.state, "executor", None)
    st = _try_executor_state(ex)

    return {
        "ok": True,
        "service": "token-geyser",
        "version": "v1",
        "ts_ms": _now_ms(),
        "ready": st is not None,
        "instance_id": (st or {}).get("instance_id") or None,
        "height": int((st or {}).get("height") or 0),
    }
