from __future__ import annotations

import os
from typing import Any, Dict

from fastapi import APIRouter, Request

from geyser.api.routes_public_parts.common import _executor, _ledger

router = APIRouter()

Json = Dict[str, Any]


@router.get("/status")
def status(request: Request) -> Json:
    """
    Public geyser status summary.

    Mounted under /v1 by routes_public.py, so the full path is:
      GET /v1/status
    """
    ex = _executor(request)
    ledger = _ledger(request)
    gs = ledger.geyser

    return {
        "ok": True,
        "instance_id": ledger.instance_id,
        "mode": (os.environ.get("GEYSER_MODE") or "prod").strip().lower(),
        "height": ledger.height,
        "ledger_time": ledger.time,
        "clock": ex.now(),
        "staking_token": gs.staking_token,
        "distribution_token": gs.distribution_token,
        "owner": gs.owner,
        "stakers": sum(1 for t in gs.totals.values() if t.shares > 0),
        "unlock_schedule_count": len(gs.unlock_schedules),
    }
