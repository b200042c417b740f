# src/geyser/runtime/apply/accounts.py
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Optional

from geyser.crypto.sig import normalize_pubkey
from geyser.ledger import accounts
from geyser.ledger.constants import SYSTEM_SIGNER
from geyser.ledger.types import LedgerState
from geyser.runtime.errors import ApplyError
from geyser.runtime.tx_types import ACCOUNT_REGISTER_KEY, ACCOUNT_ROTATE_KEY, TxEnvelope

Json = Dict[str, Any]


@dataclass
class AccountApplyError(ApplyError):
    """Signer-registry rejections."""


def _as_dict(v: Any) -> Json:
    return v if isinstance(v, dict) else {}


def _pubkey(payload: Json, tx_type: str) -> str:
    raw = payload.get("pubkey")
    if raw is None:
        raise AccountApplyError("invalid_payload", "missing_pubkey", {"tx_type": tx_type})
    try:
        return normalize_pubkey(raw)
    except ValueError as e:
        raise AccountApplyError("invalid_payload", "bad_pubkey", {"tx_type": tx_type, "error": str(e)})


def _apply_register_key(ledger: LedgerState, env: TxEnvelope) -> Json:
    """Host onboarding: attach a key to an account id."""
    if not (env.system or env.signer == SYSTEM_SIGNER):
        raise AccountApplyError("forbidden", "system_tx_required", {"tx_type": env.tx_type})
    payload = _as_dict(env.payload)
    account_id = str(payload.get("account") or "").strip()
    pk = _pubkey(payload, env.tx_type)
    acct = accounts.register_key(ledger.accounts, account_id, pk)
    return {
        "applied": ACCOUNT_REGISTER_KEY,
        "account": account_id,
        "pubkey": pk,
        "key_count": len(acct.pubkeys),
        "events": [],
    }


def _apply_rotate_key(ledger: LedgerState, env: TxEnvelope) -> Json:
    pk = _pubkey(_as_dict(env.payload), env.tx_type)
    accounts.rotate_key(ledger.accounts, env.signer, pk)
    return {"applied": ACCOUNT_ROTATE_KEY, "account": env.signer, "pubkey": pk, "events": []}


def apply_accounts(ledger: LedgerState, env: TxEnvelope) -> Optional[Json]:
    t = env.tx_type
    if t == ACCOUNT_REGISTER_KEY:
        return _apply_register_key(ledger, env)
    if t == ACCOUNT_ROTATE_KEY:
        return _apply_rotate_key(ledger, env)
    return None


__all__ = ["AccountApplyError", "apply_accounts"]
