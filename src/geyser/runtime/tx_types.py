from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Optional

# Participant-facing txs.
STAKE = "STAKE"
STAKE_FOR = "STAKE_FOR"
UNSTAKE = "UNSTAKE"
UPDATE_ACCOUNTING = "UPDATE_ACCOUNTING"
ACCRUE_AND_UNLOCK = "ACCRUE_AND_UNLOCK"

# Owner-only.
LOCK_TOKENS = "LOCK_TOKENS"
TRANSFER_OWNERSHIP = "TRANSFER_OWNERSHIP"

# Custody book.
TOKEN_APPROVE = "TOKEN_APPROVE"
TOKEN_TRANSFER = "TOKEN_TRANSFER"
TOKEN_MINT = "TOKEN_MINT"  # system only

# Signer registry.
ACCOUNT_REGISTER_KEY = "ACCOUNT_REGISTER_KEY"  # system only
ACCOUNT_ROTATE_KEY = "ACCOUNT_ROTATE_KEY"

SUPPORTED_TX_TYPES = frozenset(
    {
        STAKE,
        STAKE_FOR,
        UNSTAKE,
        UPDATE_ACCOUNTING,
        ACCRUE_AND_UNLOCK,
        LOCK_TOKENS,
        TRANSFER_OWNERSHIP,
        TOKEN_APPROVE,
        TOKEN_TRANSFER,
        TOKEN_MINT,
        ACCOUNT_REGISTER_KEY,
        ACCOUNT_ROTATE_KEY,
    }
)

SYSTEM_ONLY_TX_TYPES = frozenset({TOKEN_MINT, ACCOUNT_REGISTER_KEY})


def _as_nonce(v: Any) -> int:
    if v is None or isinstance(v, bool):
        return 0
    try:
        n = int(v)
    except Exception:
        return 0
    return n if n > 0 else 0


@dataclass(frozen=True)
class TxVerdict:
    ok: bool
    code: str
    reason: str
    details: Optional[Dict[str, Any]] = None

    @staticmethod
    def admit() -> "TxVerdict":
        return TxVerdict(True, "ok", "admitted", None)

    @staticmethod
    def reject(code: str, reason: str, details: Optional[Dict[str, Any]] = None) -> "TxVerdict":
        return TxVerdict(False, code, reason, details)


@dataclass(frozen=True)
class TxEnvelope:
    tx_type: str
    signer: str
    payload: Dict[str, Any]
    system: bool = False
    # Signed envelopes: nonce must be the signer's next nonce, sig covers
    # crypto.sig.canonical_tx_message. Both unused for host-side txs.
    nonce: int = 0
    sig: str = ""

    @staticmethod
    def from_json(j: Any) -> "TxEnvelope":
        if isinstance(j, TxEnvelope):
            return j
        if not isinstance(j, dict):
            j = dict(j)  # type: ignore[arg-type]
        return TxEnvelope(
            tx_type=str(j.get("tx_type", "")).strip().upper(),
            signer=str(j.get("signer", "") or "").strip(),
            payload=dict(j.get("payload", {}) or {}),
            system=bool(j.get("system", False)),
            nonce=_as_nonce(j.get("nonce")),
            sig=str(j.get("sig") or "").strip(),
        )

    def to_json(self) -> Dict[str, Any]:
        return {
            "tx_type": self.tx_type,
            "signer": self.signer,
            "payload": self.payload,
            "system": self.system,
            "nonce": self.nonce,
            "sig": self.sig,
        }
