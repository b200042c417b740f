# src/geyser/ledger/invariants.py
from __future__ import annotations

"""Conservation checks for GeyserState.

Users accrue lazily, so a participant's stored share-seconds can lag the
global figure. The share-second check therefore projects every participant
to last_accounting_time before summing:

    total_staking_share_seconds
        == sum(share_seconds + shares * (last_accounting_time - last_accrual_time))

Callers that want a hard failure use assert_invariants(); check_invariants()
returns the list of violations for reporting.
"""

from typing import List

from geyser.ledger.errors import LedgerError
from geyser.ledger.types import GeyserState


def check_invariants(state: GeyserState) -> List[str]:
    problems: List[str] = []

    share_sum = 0
    projected_ss = 0
    t = int(state.last_accounting_time)

    for participant, totals in state.totals.items():
        if totals.shares < 0 or totals.share_seconds < 0:
            problems.append(f"negative_totals:{participant}")
        if totals.last_accrual_time > t:
            problems.append(f"user_accrual_ahead_of_global:{participant}")

        entries = state.stakes.get(participant, [])
        entry_sum = sum(int(s.shares) for s in entries)
        if entry_sum != totals.shares:
            problems.append(f"stake_sum_mismatch:{participant}:{entry_sum}!={totals.shares}")
        if any(s.shares <= 0 for s in entries):
            problems.append(f"empty_stake_entry:{participant}")

        share_sum += int(totals.shares)
        projected_ss += int(totals.share_seconds) + max(t - int(totals.last_accrual_time), 0) * int(totals.shares)

    for participant in state.stakes:
        if participant not in state.totals:
            problems.append(f"stakes_without_totals:{participant}")

    if share_sum != state.total_staking_shares:
        problems.append(f"share_sum_mismatch:{share_sum}!={state.total_staking_shares}")
    if projected_ss != state.total_staking_share_seconds:
        problems.append(f"share_seconds_mismatch:{projected_ss}!={state.total_staking_share_seconds}")

    if len(state.unlock_schedules) > int(state.max_unlock_schedules):
        problems.append(f"too_many_schedules:{len(state.unlock_schedules)}>{state.max_unlock_schedules}")
    for i, s in enumerate(state.unlock_schedules):
        if s.duration_sec <= 0:
            problems.append(f"schedule_zero_duration:{i}")
        if s.last_unlock_time > s.end_time:
            problems.append(f"schedule_past_end:{i}")

    if state.total_staking_shares < 0 or state.total_staking_share_seconds < 0 or state.total_locked_shares < 0:
        problems.append("negative_global_totals")

    return problems


def assert_invariants(state: GeyserState) -> None:
    problems = check_invariants(state)
    if problems:
        raise LedgerError("invariant_violation", "ledger_invariants_broken", {"problems": problems})


__all__ = ["assert_invariants", "check_invariants"]
