# src/geyser/runtime/sigverify.py

from __future__ import annotations

from typing import Tuple

from geyser.crypto.sig import canonical_tx_message, verify_ed25519_signature
from geyser.ledger import accounts
from geyser.ledger.types import LedgerState
from geyser.runtime.tx_types import TxEnvelope


def verify_tx_signature(ledger: LedgerState, env: TxEnvelope) -> Tuple[bool, str]:
    """Verify env.sig against the signer's active keys.

    Returns (ok, reason). Fails closed: a signer without keys, or an
    envelope without a sig, never verifies.

    NOTE: This function is pure (no I/O).
    """
    keys = accounts.active_pubkeys(ledger.accounts, env.signer)
    if not keys:
        return False, "no_active_keys"
    if not env.sig:
        return False, "missing_sig"

    msg = canonical_tx_message(
        instance_id=ledger.instance_id,
        tx_type=env.tx_type,
        signer=env.signer,
        nonce=env.nonce,
        payload=env.payload,
    )
    for pk in keys:
        if verify_ed25519_signature(message=msg, sig=env.sig, pubkey=pk):
            return True, "ok"
    return False, "invalid_signature"


__all__ = ["verify_tx_signature"]
