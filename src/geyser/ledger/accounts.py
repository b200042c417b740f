# src/geyser/ledger/accounts.py
from __future__ import annotations

"""Signer registry.

Participants are plain string ids. An id becomes able to submit signed txs
once a public key is registered for it; every signed tx consumes the next
nonce so a signature is only ever good for one tx.
"""

from typing import Dict, List

from geyser.ledger.constants import RESERVED_ADDRESSES, SYSTEM_SIGNER
from geyser.ledger.errors import LedgerError
from geyser.ledger.types import Account

Accounts = Dict[str, Account]


def _require_registrable(account_id: str) -> str:
    a = str(account_id or "").strip()
    if not a:
        raise LedgerError("invalid_payload", "missing_account", {})
    if a in RESERVED_ADDRESSES or a == SYSTEM_SIGNER:
        raise LedgerError("forbidden", "reserved_account", {"account": a})
    return a


def active_pubkeys(accounts: Accounts, account_id: str) -> List[str]:
    acct = accounts.get(account_id)
    return list(acct.pubkeys) if acct is not None else []


def expected_nonce(accounts: Accounts, account_id: str) -> int:
    acct = accounts.get(account_id)
    return (acct.nonce if acct is not None else 0) + 1


def register_key(accounts: Accounts, account_id: str, pubkey: str) -> Account:
    """Add an active key, creating the account on first registration."""
    a = _require_registrable(account_id)
    acct = accounts.setdefault(a, Account())
    if pubkey not in acct.pubkeys:
        acct.pubkeys.append(pubkey)
    return acct


def rotate_key(accounts: Accounts, account_id: str, pubkey: str) -> Account:
    """Replace every active key of an existing account with `pubkey`."""
    acct = accounts.get(account_id)
    if acct is None or not acct.pubkeys:
        raise LedgerError("unknown_signer", "account_has_no_keys", {"account": account_id})
    acct.pubkeys = [pubkey]
    return acct


def consume_nonce(accounts: Accounts, account_id: str, nonce: int) -> None:
    want = expected_nonce(accounts, account_id)
    got = int(nonce)
    acct = accounts.get(account_id)
    if acct is None:
        raise LedgerError("unknown_signer", "signer_not_found", {"signer": account_id})
    if got != want:
        raise LedgerError("bad_nonce", "nonce_must_be_next", {"expected": want, "got": got})
    acct.nonce = got


__all__ = [
    "active_pubkeys",
    "consume_nonce",
    "expected_nonce",
    "register_key",
    "rotate_key",
]
