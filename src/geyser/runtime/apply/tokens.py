# src/geyser/runtime/apply/tokens.py
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Optional

from geyser.ledger.constants import RESERVED_ADDRESSES, SYSTEM_SIGNER
from geyser.ledger.types import LedgerState
from geyser.runtime.errors import ApplyError
from geyser.runtime.tx_types import TOKEN_APPROVE, TOKEN_MINT, TOKEN_TRANSFER, TxEnvelope

Json = Dict[str, Any]


@dataclass
class TokenApplyError(ApplyError):
    """Custody-book rejections."""


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
        raise TokenApplyError("invalid_payload", "missing_amount", {"tx_type": tx_type})
    v = _strict_int(raw)
    if v is None:
        raise TokenApplyError("invalid_payload", "amount_not_int", {"tx_type": tx_type, "amount": str(raw)})
    return v


def _require_system_env(env: TxEnvelope) -> None:
    if env.system or env.signer == SYSTEM_SIGNER:
        return
    raise TokenApplyError("forbidden", "system_tx_required", {"tx_type": env.tx_type, "signer": env.signer})


def _recipient(payload: Json, tx_type: str) -> str:
    to = _as_str(payload.get("to"))
    if not to:
        raise TokenApplyError("invalid_payload", "missing_recipient", {"tx_type": tx_type})
    if to in RESERVED_ADDRESSES:
        # Pool balances only move through geyser operations.
        raise TokenApplyError("forbidden", "reserved_recipient", {"tx_type": tx_type, "to": to})
    return to


def _known_token(ledger: LedgerState, token: str, tx_type: str) -> str:
    t = token.strip()
    if t not in {ledger.geyser.staking_token, ledger.geyser.distribution_token}:
        raise TokenApplyError("invalid_payload", "unknown_token", {"tx_type": tx_type, "token": t})
    return t


def _apply_token_mint(ledger: LedgerState, env: TxEnvelope) -> Json:
    _require_system_env(env)
    payload = _as_dict(env.payload)
    token = _known_token(ledger, _as_str(payload.get("token")), env.tx_type)
    to = _recipient(payload, env.tx_type)
    amount = _amount(payload, env.tx_type)
    if amount <= 0:
        raise TokenApplyError("invalid_amount", "mint_amount_must_be_positive", {"amount": amount})
    ledger.tokens.mint(token, to, amount)
    return {"applied": TOKEN_MINT, "token": token, "to": to, "amount": amount, "events": []}


def _apply_token_approve(ledger: LedgerState, env: TxEnvelope) -> Json:
    payload = _as_dict(env.payload)
    token = _known_token(ledger, _as_str(payload.get("token")), env.tx_type)
    spender = _as_str(payload.get("spender"))
    amount = _amount(payload, env.tx_type)
    if not spender:
        raise TokenApplyError("invalid_payload", "missing_spender", {"tx_type": env.tx_type})
    if amount < 0:
        raise TokenApplyError("invalid_amount", "allowance_must_be_non_negative", {"amount": amount})
    ledger.tokens.approve(token, env.signer, spender, amount)
    return {"applied": TOKEN_APPROVE, "token": token, "spender": spender, "amount": amount, "events": []}


def _apply_token_transfer(ledger: LedgerState, env: TxEnvelope) -> Json:
    payload = _as_dict(env.payload)
    token = _known_token(ledger, _as_str(payload.get("token")), env.tx_type)
    to = _recipient(payload, env.tx_type)
    amount = _amount(payload, env.tx_type)
    if amount <= 0:
        raise TokenApplyError("invalid_amount", "transfer_amount_must_be_positive", {"amount": amount})
    if not ledger.tokens.transfer(token, env.signer, to, amount):
        raise TokenApplyError(
            "insufficient_balance",
            "token_transfer_failed",
            {"token": token, "from": env.signer, "amount": amount},
        )
    return {"applied": TOKEN_TRANSFER, "token": token, "to": to, "amount": amount, "events": []}


def apply_tokens(ledger: LedgerState, env: TxEnvelope) -> Optional[Json]:
    t = env.tx_type
    if t == TOKEN_MINT:
        return _apply_token_mint(ledger, env)
    if t == TOKEN_APPROVE:
        return _apply_token_approve(ledger, env)
    if t == TOKEN_TRANSFER:
        return _apply_token_transfer(ledger, env)
    return None


__all__ = ["TokenApplyError", "apply_tokens"]
