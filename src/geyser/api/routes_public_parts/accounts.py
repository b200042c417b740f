from __future__ import annotations

from typing import Any, Dict

from fastapi import APIRouter, Request

from geyser.api.routes_public_parts.common import _account_param, _ledger
from geyser.ledger import accounts

router = APIRouter()

Json = Dict[str, Any]


@router.get("/accounts/{account}")
def account_keys(request: Request, account: str) -> Json:
    """Signer registry entry: active keys and the nonce the next signed tx must use."""
    acct = _account_param(account)
    ledger = _ledger(request)
    return {
        "ok": True,
        "account": acct,
        "registered": acct in ledger.accounts,
        "pubkeys": accounts.active_pubkeys(ledger.accounts, acct),
        "next_nonce": accounts.expected_nonce(ledger.accounts, acct),
    }
