from __future__ import annotations

import sys
from pathlib import Path
from typing import Callable

import pytest
from cryptography.hazmat.primitives.asymmetric.ed25519 import Ed25519PrivateKey
from cryptography.hazmat.primitives.serialization import Encoding, NoEncryption, PrivateFormat, PublicFormat

# Ensure local "src/" takes precedence over any globally-installed "geyser" package.
ROOT = Path(__file__).resolve().parents[1]
SRC = ROOT / "src"

src_str = str(SRC)
if src_str not in sys.path:
    sys.path.insert(0, src_str)

from geyser.ledger.constants import GEYSER_ADDRESS  # noqa: E402
from geyser.ledger.types import LedgerState  # noqa: E402

STAKE = "STAKE"
DIST = "DIST"
OWNER = "owner"

_UNLIMITED = 10**30


def make_keypair_hex() -> tuple[str, str]:
    """Fresh ed25519 keypair as (pubkey_hex, privkey_hex)."""
    sk = Ed25519PrivateKey.generate()
    sk_b = sk.private_bytes(Encoding.Raw, PrivateFormat.Raw, NoEncryption())
    pk_b = sk.public_key().public_bytes(Encoding.Raw, PublicFormat.Raw)
    return pk_b.hex(), sk_b.hex()


def fund(ledger: LedgerState, who: str, *, stake: int = 0, dist: int = 0, approve: bool = True) -> None:
    """Mint test balances and (by default) approve the geyser to pull them."""
    if stake:
        ledger.tokens.mint(STAKE, who, stake)
    if dist:
        ledger.tokens.mint(DIST, who, dist)
    if approve:
        ledger.tokens.approve(STAKE, who, GEYSER_ADDRESS, _UNLIMITED)
        ledger.tokens.approve(DIST, who, GEYSER_ADDRESS, _UNLIMITED)


@pytest.fixture
def make_ledger() -> Callable[..., LedgerState]:
    def _make(*, now: int = 0, max_unlock_schedules: int = 10) -> LedgerState:
        return LedgerState.genesis(
            instance_id="geyser-test",
            staking_token=STAKE,
            distribution_token=DIST,
            owner=OWNER,
            max_unlock_schedules=max_unlock_schedules,
            now=now,
        )

    return _make
