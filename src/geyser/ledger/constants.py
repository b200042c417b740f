# src/geyser/ledger/constants.py
from __future__ import annotations

"""Geyser ledger constants.

Custody addresses are plain strings inside the token ledger. The three pool
addresses hold balances on behalf of the geyser; GEYSER_ADDRESS is the
spender that participants approve before staking or locking.
"""

GEYSER_ADDRESS: str = "geyser"

STAKING_POOL: str = "pool:staking"
LOCKED_POOL: str = "pool:locked"
UNLOCKED_POOL: str = "pool:unlocked"

POOL_ADDRESSES = (STAKING_POOL, LOCKED_POOL, UNLOCKED_POOL)

# Operated by the geyser itself: never sign txs, never receive direct transfers.
RESERVED_ADDRESSES = frozenset((GEYSER_ADDRESS, *POOL_ADDRESSES))

# Schedules are never deleted, so every unlock pass walks all of them.
DEFAULT_MAX_UNLOCK_SCHEDULES: int = 10

DEFAULT_STAKING_TOKEN: str = "STAKE"
DEFAULT_DISTRIBUTION_TOKEN: str = "DIST"

# Signer used for host-originated txs (token minting in dev/test deployments).
SYSTEM_SIGNER: str = "SYSTEM"
