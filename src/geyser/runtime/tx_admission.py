# src/geyser/runtime/tx_admission.py
from __future__ import annotations

from typing import Any, Optional

from geyser.ledger import accounts
from geyser.ledger.constants import RESERVED_ADDRESSES, SYSTEM_SIGNER
from geyser.ledger.types import LedgerState
from geyser.runtime.sigverify import verify_tx_signature
from geyser.runtime.tx_types import SUPPORTED_TX_TYPES, SYSTEM_ONLY_TX_TYPES, TxEnvelope, TxVerdict


def _admit_signed(env: TxEnvelope, ledger: Optional[LedgerState]) -> TxVerdict:
    if ledger is None:
        return TxVerdict.reject("not_ready", "ledger_required_for_signed_admission", {})

    if not accounts.active_pubkeys(ledger.accounts, env.signer):
        return TxVerdict.reject("unknown_signer", "signer_has_no_keys", {"signer": env.signer})

    ok, why = verify_tx_signature(ledger, env)
    if not ok:
        return TxVerdict.reject(
            "bad_sig",
            "signature_verification_failed",
            {"signer": env.signer, "tx_type": env.tx_type, "why": why},
        )

    # The signature covers the nonce, so a mismatch here is a replay.
    expected = accounts.expected_nonce(ledger.accounts, env.signer)
    if env.nonce != expected:
        return TxVerdict.reject("bad_nonce", "nonce_must_be_next", {"expected": expected, "got": env.nonce})

    return TxVerdict.admit()


def admit_tx(tx: Any, *, context: str = "local", ledger: Optional[LedgerState] = None) -> TxVerdict:
    """Admission check run before a tx reaches apply.

    context:
      - "public": envelope came over HTTP; system envelopes are refused and
        the envelope must carry the signer's next nonce and a valid signature
        (needs `ledger` for the signer registry)
      - "local":  host-side submission (tests, tooling, dev faucets); the
        host is trusted and signatures are not checked
    """
    if not isinstance(tx, (dict, TxEnvelope)):
        return TxVerdict.reject("bad_env", "not_object", {"type": type(tx).__name__})

    try:
        env = TxEnvelope.from_json(tx)
    except Exception as e:
        return TxVerdict.reject("bad_env", "unparseable", {"error": str(e)})

    if not env.tx_type:
        return TxVerdict.reject("invalid_tx", "missing_tx_type", {})
    if env.tx_type not in SUPPORTED_TX_TYPES:
        return TxVerdict.reject("tx_unimplemented", "tx_type_not_implemented", {"tx_type": env.tx_type})
    if not env.signer:
        return TxVerdict.reject("invalid_tx", "missing_signer", {"tx_type": env.tx_type})

    if env.signer in RESERVED_ADDRESSES:
        return TxVerdict.reject("forbidden", "reserved_signer", {"signer": env.signer})

    is_system = env.system or env.signer == SYSTEM_SIGNER
    if context == "public" and is_system:
        return TxVerdict.reject(
            "forbidden",
            "system_tx_forbidden",
            {"tx_type": env.tx_type, "signer": env.signer},
        )
    if env.tx_type in SYSTEM_ONLY_TX_TYPES and not is_system:
        return TxVerdict.reject("forbidden", "system_tx_required", {"tx_type": env.tx_type})

    if context == "public":
        return _admit_signed(env, ledger)

    return TxVerdict.admit()


__all__ = ["admit_tx"]
