# src/geyser/runtime/apply/admin.py
from __future__ import annotations

from typing import Any, Dict, Optional

from geyser.ledger.types import LedgerState
from geyser.runtime import engine
from geyser.runtime.errors import GeyserError
from geyser.runtime.tx_types import LOCK_TOKENS, TRANSFER_OWNERSHIP, TxEnvelope

Json = Dict[str, Any]


def _as_dict(v: Any) -> Json:
    return v if isinstance(v, dict) else {}


def _strict_int(v: Any) -> Optional[int]:
    """Integer value of v, or None when v is not an exact integer.

    Accepts ints, integral floats and plain decimal strings; never truncates.
    """
    if v is None or isinstance(v, bool):
        return None
    if isinstance(v, int):
        return v
    if isinstance(v, float):
        return int(v) if v.is_integer() else None
    if isinstance(v, str):
        s = v.strip()
        digits = s[1:] if s[:1] in {"+", "-"} else s
        if digits.isascii() and digits.isdigit():
            return int(s)
    return None


def _req_int(payload: Json, key: str, tx_type: str) -> int:
    raw = payload.get(key)
    if raw is None:
        raise GeyserError("invalid_payload", f"missing_{key}", {"tx_type": tx_type})
    v = _strict_int(raw)
    if v is None:
        raise GeyserError("invalid_payload", f"{key}_not_int", {"tx_type": tx_type, key: str(raw)})
    return v


def _apply_lock_tokens(ledger: LedgerState, env: TxEnvelope) -> Json:
    """Owner funds a new linear unlock schedule."""
    payload = _as_dict(env.payload)
    amount = _req_int(payload, "amount", env.tx_type)
    duration_sec = _req_int(payload, "duration_sec", env.tx_type)
    return engine.lock(ledger, env.signer, amount, duration_sec, ledger.time)


def _apply_transfer_ownership(ledger: LedgerState, env: TxEnvelope) -> Json:
    payload = _as_dict(env.payload)
    new_owner = str(payload.get("new_owner") or "").strip()
    return engine.transfer_ownership(ledger, env.signer, new_owner)


def apply_admin(ledger: LedgerState, env: TxEnvelope) -> Optional[Json]:
    t = env.tx_type
    if t == LOCK_TOKENS:
        return _apply_lock_tokens(ledger, env)
    if t == TRANSFER_OWNERSHIP:
        return _apply_transfer_ownership(ledger, env)
    return None


__all__ = ["apply_admin"]
