# src/geyser/ledger/shares.py
from __future__ import annotations

"""Global clock and staking-share ledger.

Shares are always valued against the live staking custody balance, so the
share price can only rise if the pool ever receives non-stake inflows.
All division is integer floor division; rounding favors the pool.
"""

from geyser.ledger.errors import LedgerError
from geyser.ledger.tokens import Pools
from geyser.ledger.types import GeyserState


def accrue_global(state: GeyserState, now: int) -> int:
    """Fold elapsed time into total share-seconds. Returns the amount added."""
    now_i = int(now)
    last = int(state.last_accounting_time)
    if now_i < last:
        raise LedgerError("invalid_time", "clock_regression", {"now": now_i, "last_accounting_time": last})
    added = (now_i - last) * int(state.total_staking_shares)
    state.total_staking_share_seconds += added
    state.last_accounting_time = now_i
    return added


def total_staked(pools: Pools) -> int:
    return pools.staking.balance()


def shares_for_deposit(state: GeyserState, amount: int, staked: int) -> int:
    amt = int(amount)
    if int(staked) <= 0:
        # Bootstrap: 1 share per token. Also taken when shares exist but the
        # pool balance has been drained to zero.
        return amt
    return int(state.total_staking_shares) * amt // int(staked)


def shares_for_withdrawal(state: GeyserState, amount: int, staked: int) -> int:
    if int(staked) <= 0:
        return 0
    return int(state.total_staking_shares) * int(amount) // int(staked)


def mint_shares(state: GeyserState, shares: int) -> None:
    n = int(shares)
    if n < 0:
        raise LedgerError("invalid_amount", "negative_share_mint", {"shares": n})
    state.total_staking_shares += n


def burn_shares(state: GeyserState, shares: int, share_seconds: int) -> None:
    n = int(shares)
    ss = int(share_seconds)
    if n < 0 or ss < 0:
        raise LedgerError("invalid_amount", "negative_share_burn", {"shares": n, "share_seconds": ss})
    if n > state.total_staking_shares or ss > state.total_staking_share_seconds:
        raise LedgerError(
            "insufficient_shares",
            "global_burn_exceeds_totals",
            {
                "shares": n,
                "share_seconds": ss,
                "total_staking_shares": state.total_staking_shares,
                "total_staking_share_seconds": state.total_staking_share_seconds,
            },
        )
    state.total_staking_shares -= n
    state.total_staking_share_seconds -= ss


__all__ = [
    "accrue_global",
    "burn_shares",
    "mint_shares",
    "shares_for_deposit",
    "shares_for_withdrawal",
    "total_staked",
]
