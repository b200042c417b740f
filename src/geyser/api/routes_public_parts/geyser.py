from __future__ import annotations

import copy
from typing import Any, Dict, Optional

from fastapi import APIRouter, Request

from geyser.api.errors import ApiError
from geyser.api.routes_public_parts.common import _account_param, _executor, _ledger
from geyser.ledger import unlock as scheduler
from geyser.ledger.constants import GEYSER_ADDRESS
from geyser.runtime import engine

router = APIRouter()

Json = Dict[str, Any]


@router.get("/geyser/totals")
def geyser_totals(request: Request) -> Json:
    ledger = _ledger(request)
    out = engine.totals_view(ledger)
    out["ok"] = True
    out["height"] = ledger.height
    out["ledger_time"] = ledger.time
    return out


@router.get("/geyser/accounts/{account}")
def geyser_account(request: Request, account: str, projected: Optional[bool] = False) -> Json:
    """Per-account staking view.

    With ?projected=true the rewards and share-seconds are also projected to
    the executor's current clock (simulated on a copy; nothing is applied).
    """
    acct = _account_param(account)
    ledger = _ledger(request)
    now = _executor(request).now() if projected else None
    out = engine.account_view(ledger, acct, now=now)
    out["ok"] = True
    out["ledger_time"] = ledger.time
    return out


@router.get("/geyser/schedules")
def geyser_schedules(request: Request) -> Json:
    ledger = _ledger(request)
    now = _executor(request).now()
    gs = ledger.geyser
    pools = ledger.pools()
    items = []
    for i, s in enumerate(gs.unlock_schedules):
        item = s.to_json()
        item["index"] = i
        # unlock_schedule_shares advances the schedule; evaluate it on a copy
        item["unlockable_shares"] = scheduler.unlock_schedule_shares(copy.copy(s), now)
        items.append(item)
    return {
        "ok": True,
        "total_locked": scheduler.total_locked(pools),
        "total_locked_shares": gs.total_locked_shares,
        "max_unlock_schedules": gs.max_unlock_schedules,
        "items": items,
    }


@router.get("/tokens/{token}/balances/{holder}")
def token_balance(request: Request, token: str, holder: str) -> Json:
    ledger = _ledger(request)
    tok = str(token or "").strip()
    if tok not in {ledger.geyser.staking_token, ledger.geyser.distribution_token}:
        raise ApiError.not_found("unknown_token", "token is not managed by this geyser", {"token": tok})
    h = _account_param(holder, field="holder")
    return {
        "ok": True,
        "token": tok,
        "holder": h,
        "balance": ledger.tokens.balance_of(tok, h),
        "allowance_to_geyser": ledger.tokens.allowance(tok, h, GEYSER_ADDRESS),
    }
