from __future__ import annotations

from typing import Any, Dict

from fastapi import APIRouter, Request

from geyser.api.errors import ApiError
from geyser.api.routes_public_parts.common import _executor
from geyser.api.schemas import TxSubmitRequest
from geyser.ledger.constants import SYSTEM_SIGNER

router = APIRouter()

Json = Dict[str, Any]


@router.post("/tx/submit")
def tx_submit(request: Request, body: TxSubmitRequest) -> Json:
    """Submit a signed participant tx envelope and apply it immediately.

    The envelope must carry the signer's next nonce and an ed25519 signature
    by one of the signer's registered keys. Returns the receipt on success.
    Unregistered signers and bad signatures map to 401, other rejections to
    400; system envelopes are refused with 403 before they reach the executor.
    """
    ex = _executor(request)

    # Hard fail-closed: system-only txs must not come from public HTTP.
    if body.system or body.signer.strip() == SYSTEM_SIGNER:
        raise ApiError.forbidden(
            "system_tx_forbidden",
            "system txs cannot be submitted through the public tx endpoint",
            {"tx_type": body.tx_type, "signer": body.signer},
        )

    receipt = ex.submit_tx(body.to_envelope(), context="public")
    if not isinstance(receipt, dict) or not receipt.get("ok"):
        raise ApiError.from_rejection(receipt if isinstance(receipt, dict) else {})
    return receipt


@router.get("/tx/receipts")
def tx_receipts(request: Request, limit: int = 50, signer: str = "") -> Json:
    ex = _executor(request)
    items = ex.receipts(limit=limit, signer=signer.strip() or None)
    return {"ok": True, "items": items}
