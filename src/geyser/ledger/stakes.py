# src/geyser/ledger/stakes.py
from __future__ import annotations

from typing import List

from geyser.ledger.errors import LedgerError
from geyser.ledger.types import GeyserState, Stake


def accrue_user(state: GeyserState, participant: str, now: int) -> int:
    """Fold a participant's elapsed time into their share-seconds.

    Participants without a totals record hold nothing to accrue; no record is
    created for them.
    """
    now_i = int(now)
    totals = state.totals.get(participant)
    if totals is None:
        return 0
    last = int(totals.last_accrual_time)
    if now_i < last:
        raise LedgerError(
            "invalid_time",
            "clock_regression",
            {"participant": participant, "now": now_i, "last_accrual_time": last},
        )
    added = (now_i - last) * int(totals.shares)
    totals.share_seconds += added
    totals.last_accrual_time = now_i
    return added


def _require_accrued(state: GeyserState, participant: str, now: int) -> None:
    totals = state.peek_totals(participant)
    if totals.shares > 0 and totals.last_accrual_time != int(now):
        raise LedgerError(
            "invalid_state",
            "accrual_required",
            {"participant": participant, "now": int(now), "last_accrual_time": totals.last_accrual_time},
        )


def deposit(state: GeyserState, participant: str, now: int, minted_shares: int) -> Stake:
    """Record a new stake entry. New shares carry zero share-seconds."""
    minted = int(minted_shares)
    if minted <= 0:
        raise LedgerError("invalid_amount", "minted_shares_must_be_positive", {"minted_shares": minted})
    _require_accrued(state, participant, now)

    entry = Stake(shares=minted, timestamp=int(now))
    state.user_stakes(participant).append(entry)

    totals = state.user_totals(participant)
    totals.shares += minted
    totals.last_accrual_time = int(now)
    return entry


def withdraw(state: GeyserState, participant: str, now: int, shares_to_burn: int) -> int:
    """Burn shares newest-first and return the share-seconds burned with them.

    The most recent entries carry the fewest share-seconds per share, so LIFO
    keeps the participant's oldest stakes alive for as long as possible.
    """
    burn = int(shares_to_burn)
    now_i = int(now)
    if burn <= 0:
        raise LedgerError("invalid_amount", "shares_to_burn_must_be_positive", {"shares_to_burn": burn})

    held = state.peek_totals(participant).shares
    if burn > held:
        raise LedgerError(
            "insufficient_shares",
            "burn_exceeds_participant_shares",
            {"participant": participant, "shares_to_burn": burn, "shares": held},
        )
    _require_accrued(state, participant, now_i)

    entries = state.user_stakes(participant)
    burned_share_seconds = 0
    left = burn
    while left > 0:
        last = entries[-1]
        age = now_i - int(last.timestamp)
        if last.shares <= left:
            burned_share_seconds += last.shares * age
            left -= last.shares
            entries.pop()
        else:
            burned_share_seconds += left * age
            last.shares -= left
            left = 0

    if not entries:
        del state.stakes[participant]

    totals = state.user_totals(participant)
    totals.shares -= burn
    totals.share_seconds -= burned_share_seconds
    if totals.shares == 0 and totals.share_seconds == 0:
        del state.totals[participant]
    return burned_share_seconds


def total_staked_for(state: GeyserState, participant: str, staked: int) -> int:
    if state.total_staking_shares <= 0:
        return 0
    return int(staked) * state.peek_totals(participant).shares // state.total_staking_shares


def reward_for(share_seconds: int, total_share_seconds: int, unlocked: int) -> int:
    if int(total_share_seconds) <= 0:
        return 0
    return int(unlocked) * int(share_seconds) // int(total_share_seconds)


def rewards_for(state: GeyserState, participant: str, unlocked: int) -> int:
    return reward_for(state.peek_totals(participant).share_seconds, state.total_staking_share_seconds, unlocked)


def projected_share_seconds(state: GeyserState, participant: str, now: int) -> int:
    """Share-seconds the participant would hold if accrued at `now`. Pure."""
    totals = state.peek_totals(participant)
    elapsed = max(int(now) - int(totals.last_accrual_time), 0)
    return int(totals.share_seconds) + elapsed * int(totals.shares)


def stakes_for(state: GeyserState, participant: str) -> List[Stake]:
    return [Stake(s.shares, s.timestamp) for s in state.stakes.get(participant, [])]


__all__ = [
    "accrue_user",
    "deposit",
    "projected_share_seconds",
    "reward_for",
    "rewards_for",
    "stakes_for",
    "total_staked_for",
    "withdraw",
]
