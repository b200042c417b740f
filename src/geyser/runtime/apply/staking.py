# src/geyser/runtime/apply/staking.py
from __future__ import annotations

from typing import Any, Dict, Optional

from geyser.ledger.types import LedgerState
from geyser.runtime import engine
from geyser.runtime.errors import GeyserError
from geyser.runtime.tx_types import (
    ACCRUE_AND_UNLOCK,
    STAKE,
    STAKE_FOR,
    UNSTAKE,
    UPDATE_ACCOUNTING,
    TxEnvelope,
)

Json = Dict[str, Any]


def _as_str(v: Any) -> str:
    return str(v).strip() if isinstance(v, (str, int)) else ""


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


def _amount(payload: Json, tx_type: str) -> int:
    raw = payload.get("amount")
    if raw is None:
        raise GeyserError("invalid_payload", "missing_amount", {"tx_type": tx_type})
    v = _strict_int(raw)
    if v is None:
        raise GeyserError("invalid_payload", "amount_not_int", {"tx_type": tx_type, "amount": str(raw)})
    return v


def _memo(payload: Json) -> str:
    # Opaque caller data; carried into events, never interpreted.
    return _as_str(payload.get("data"))


def _apply_stake(ledger: LedgerState, env: TxEnvelope) -> Json:
    payload = _as_dict(env.payload)
    return engine.stake(
        ledger,
        env.signer,
        env.signer,
        _amount(payload, env.tx_type),
        ledger.time,
        memo=_memo(payload),
    )


def _apply_stake_for(ledger: LedgerState, env: TxEnvelope) -> Json:
    payload = _as_dict(env.payload)
    beneficiary = _as_str(payload.get("beneficiary") or payload.get("user"))
    if not beneficiary:
        raise GeyserError("invalid_payload", "missing_beneficiary", {"tx_type": env.tx_type})
    return engine.stake(
        ledger,
        env.signer,
        beneficiary,
        _amount(payload, env.tx_type),
        ledger.time,
        memo=_memo(payload),
    )


def _apply_unstake(ledger: LedgerState, env: TxEnvelope) -> Json:
    payload = _as_dict(env.payload)
    return engine.unstake(ledger, env.signer, _amount(payload, env.tx_type), ledger.time, memo=_memo(payload))


def apply_staking(ledger: LedgerState, env: TxEnvelope) -> Optional[Json]:
    t = env.tx_type
    if t == STAKE:
        return _apply_stake(ledger, env)
    if t == STAKE_FOR:
        return _apply_stake_for(ledger, env)
    if t == UNSTAKE:
        return _apply_unstake(ledger, env)
    if t == UPDATE_ACCOUNTING:
        return engine.update_accounting(ledger, env.signer, ledger.time)
    if t == ACCRUE_AND_UNLOCK:
        return engine.accrue_and_unlock(ledger, ledger.time)
    return None


__all__ = ["apply_staking"]
