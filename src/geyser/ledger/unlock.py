# src/geyser/ledger/unlock.py
from __future__ import annotations

"""Unlock scheduler.

Locked distribution tokens are tracked as locked shares. Each schedule
releases its initial shares linearly between creation and end_time; an
unlock pass converts the released shares back to tokens against the live
locked balance and moves them to the unlocked pool.

Floor division per schedule can under-release by a few units. Those units
stay in the locked pool until every locked share is gone, at which point the
whole remaining balance is released in one step.
"""

from geyser.ledger.errors import LedgerError
from geyser.ledger.tokens import Pools
from geyser.ledger.types import GeyserState, UnlockSchedule


def total_locked(pools: Pools) -> int:
    return pools.locked.balance()


def total_unlocked(pools: Pools) -> int:
    return pools.unlocked.balance()


def check_lock_preconditions(state: GeyserState, amount: int, duration_sec: int) -> None:
    if len(state.unlock_schedules) >= int(state.max_unlock_schedules):
        raise LedgerError(
            "limit_reached",
            "max_unlock_schedules_reached",
            {"count": len(state.unlock_schedules), "max": int(state.max_unlock_schedules)},
        )
    if int(duration_sec) <= 0:
        raise LedgerError("invalid_duration", "duration_must_be_positive", {"duration_sec": int(duration_sec)})
    if int(amount) <= 0:
        raise LedgerError("invalid_amount", "lock_amount_must_be_positive", {"amount": int(amount)})


def lock(state: GeyserState, pools: Pools, amount: int, duration_sec: int, now: int) -> UnlockSchedule:
    """Append a schedule for `amount` tokens. Token custody is the caller's job."""
    check_lock_preconditions(state, amount, duration_sec)
    amt = int(amount)
    dur = int(duration_sec)
    now_i = int(now)

    locked = total_locked(pools)
    minted = state.total_locked_shares * amt // locked if locked > 0 else amt
    if minted <= 0:
        raise LedgerError("invalid_amount", "lock_amount_too_small", {"amount": amt, "total_locked": locked})

    schedule = UnlockSchedule(
        initial_shares=minted,
        last_unlock_time=now_i,
        end_time=now_i + dur,
        duration_sec=dur,
    )
    state.unlock_schedules.append(schedule)
    state.total_locked_shares += minted
    return schedule


def unlock_schedule_shares(schedule: UnlockSchedule, now: int) -> int:
    if schedule.inert:
        return 0
    t = min(int(now), schedule.end_time)
    if t <= schedule.last_unlock_time:
        return 0
    shares = (t - schedule.last_unlock_time) * schedule.initial_shares // schedule.duration_sec
    schedule.last_unlock_time = t
    return shares


def unlock_all(state: GeyserState, pools: Pools, now: int) -> int:
    """Release everything due at `now`. Returns the token amount moved (may be 0)."""
    locked = total_locked(pools)
    if state.total_locked_shares == 0:
        amount = locked
    else:
        unlocked_shares = sum(unlock_schedule_shares(s, now) for s in state.unlock_schedules)
        amount = unlocked_shares * locked // state.total_locked_shares
        state.total_locked_shares -= unlocked_shares

    if amount > 0 and not pools.locked.transfer(pools.unlocked.address, amount):
        raise LedgerError("transfer_failed", "locked_to_unlocked_transfer_failed", {"amount": amount})
    return amount


__all__ = [
    "check_lock_preconditions",
    "lock",
    "total_locked",
    "total_unlocked",
    "unlock_all",
    "unlock_schedule_shares",
]
