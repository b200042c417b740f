# src/geyser/runtime/engine.py
from __future__ import annotations

"""Distribution engine.

Public geyser operations over a LedgerState. Every mutating operation runs
the accounting step first (unlock due tokens, accrue global share-seconds,
accrue the caller), then its own share mint/burn, then custody transfers.

These functions mutate the ledger they are given and raise GeyserError on
rejection. They do not unwind on their own: callers go through
geyser.runtime.domain_apply, which applies on a copy and only commits when
the whole operation succeeded.

Each operation returns a receipt dict; receipt["events"] lists the
notifications the operation emitted, in order.
"""

import copy
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Any, Dict, Iterator, List, Optional

from geyser.ledger import shares as share_ledger
from geyser.ledger import stakes as stake_ledger
from geyser.ledger import unlock as scheduler
from geyser.ledger.errors import LedgerError
from geyser.ledger.tokens import Pools
from geyser.ledger.types import LedgerState
from geyser.runtime.errors import GeyserError

Json = Dict[str, Any]


@dataclass(frozen=True)
class AccountingSnapshot:
    total_locked: int
    total_unlocked: int
    user_share_seconds: int
    total_share_seconds: int
    user_rewards: int
    now: int

    def to_json(self) -> Json:
        return {
            "total_locked": self.total_locked,
            "total_unlocked": self.total_unlocked,
            "user_share_seconds": self.user_share_seconds,
            "total_share_seconds": self.total_share_seconds,
            "user_rewards": self.user_rewards,
            "now": self.now,
        }


@contextmanager
def _ledger_errors() -> Iterator[None]:
    try:
        yield
    except LedgerError as e:
        raise GeyserError(e.code, e.reason, e.details) from e


def _event(name: str, **fields: Any) -> Json:
    out: Json = {"event": name}
    out.update(fields)
    return out


def _require_participant(participant: str, *, field: str = "participant") -> str:
    p = str(participant or "").strip()
    if not p:
        raise GeyserError("invalid_payload", f"missing_{field}", {})
    return p


def _require_owner(ledger: LedgerState, caller: str) -> None:
    if str(caller) != ledger.geyser.owner:
        raise GeyserError("forbidden", "not_owner", {"caller": caller})


def _unlock(ledger: LedgerState, pools: Pools, now: int, events: List[Json]) -> int:
    amount = scheduler.unlock_all(ledger.geyser, pools, now)
    if amount > 0:
        events.append(_event("TokensUnlocked", amount=amount, total=scheduler.total_locked(pools)))
    return amount


def _update_accounting(
    ledger: LedgerState,
    pools: Pools,
    participant: str,
    now: int,
    events: List[Json],
) -> AccountingSnapshot:
    gs = ledger.geyser
    _unlock(ledger, pools, now, events)
    share_ledger.accrue_global(gs, now)
    stake_ledger.accrue_user(gs, participant, now)

    unlocked = scheduler.total_unlocked(pools)
    user_ss = gs.peek_totals(participant).share_seconds
    return AccountingSnapshot(
        total_locked=scheduler.total_locked(pools),
        total_unlocked=unlocked,
        user_share_seconds=user_ss,
        total_share_seconds=gs.total_staking_share_seconds,
        user_rewards=stake_ledger.reward_for(user_ss, gs.total_staking_share_seconds, unlocked),
        now=int(now),
    )


# ----------------------------
# Mutating operations
# ----------------------------


def update_accounting(ledger: LedgerState, participant: str, now: int) -> Json:
    p = _require_participant(participant)
    events: List[Json] = []
    with _ledger_errors():
        snap = _update_accounting(ledger, ledger.pools(), p, now, events)
    return {"applied": "UPDATE_ACCOUNTING", "participant": p, "accounting": snap.to_json(), "events": events}


def accrue_and_unlock(ledger: LedgerState, now: int) -> Json:
    events: List[Json] = []
    with _ledger_errors():
        amount = _unlock(ledger, ledger.pools(), now, events)
        share_ledger.accrue_global(ledger.geyser, now)
    return {"applied": "ACCRUE_AND_UNLOCK", "unlocked": amount, "events": events}


def stake(
    ledger: LedgerState,
    participant: str,
    beneficiary: str,
    amount: int,
    now: int,
    *,
    memo: str = "",
) -> Json:
    caller = _require_participant(participant)
    owner = _require_participant(beneficiary, field="beneficiary")
    amt = int(amount)
    if amt <= 0:
        raise GeyserError("invalid_amount", "stake_amount_must_be_positive", {"amount": amt})

    gs = ledger.geyser
    pools = ledger.pools()
    events: List[Json] = []

    with _ledger_errors():
        _update_accounting(ledger, pools, caller, now, events)
        if owner != caller:
            # deposit() moves the beneficiary's accrual time to now; fold
            # their elapsed share-seconds in first.
            stake_ledger.accrue_user(gs, owner, now)

        staked = share_ledger.total_staked(pools)
        minted = share_ledger.shares_for_deposit(gs, amt, staked)
        if minted <= 0:
            raise GeyserError("invalid_amount", "stake_too_small", {"amount": amt, "total_staked": staked})

        stake_ledger.deposit(gs, owner, now, minted)
        share_ledger.mint_shares(gs, minted)

        if not pools.staking.transfer_from(caller, pools.staking.address, amt):
            raise GeyserError(
                "transfer_failed",
                "staking_transfer_from_failed",
                {"from": caller, "amount": amt, "token": pools.staking.token},
            )

    total_for = stake_ledger.total_staked_for(gs, owner, share_ledger.total_staked(pools))
    events.append(_event("Staked", user=owner, amount=amt, total=total_for, data=str(memo or "")))
    return {
        "applied": "STAKE" if owner == caller else "STAKE_FOR",
        "participant": caller,
        "beneficiary": owner,
        "amount": amt,
        "minted_shares": minted,
        "events": events,
    }


def unstake(ledger: LedgerState, participant: str, amount: int, now: int, *, memo: str = "") -> Json:
    caller = _require_participant(participant)
    amt = int(amount)
    if amt <= 0:
        raise GeyserError("invalid_amount", "unstake_amount_must_be_positive", {"amount": amt})

    gs = ledger.geyser
    pools = ledger.pools()

    # The staking balance is unaffected by the accounting step, so the
    # ownership check can run before anything is touched.
    held = stake_ledger.total_staked_for(gs, caller, share_ledger.total_staked(pools))
    if amt > held:
        raise GeyserError("insufficient_balance", "unstake_exceeds_staked", {"amount": amt, "staked": held})

    events: List[Json] = []
    with _ledger_errors():
        _update_accounting(ledger, pools, caller, now, events)

        staked = share_ledger.total_staked(pools)
        to_burn = share_ledger.shares_for_withdrawal(gs, amt, staked)
        if to_burn <= 0:
            raise GeyserError("invalid_amount", "unstake_too_small", {"amount": amt, "total_staked": staked})

        burned_ss = stake_ledger.withdraw(gs, caller, now, to_burn)
        reward = stake_ledger.reward_for(
            burned_ss,
            gs.total_staking_share_seconds,
            scheduler.total_unlocked(pools),
        )
        share_ledger.burn_shares(gs, to_burn, burned_ss)

        if not pools.staking.transfer(caller, amt):
            raise GeyserError("transfer_failed", "staking_transfer_failed", {"to": caller, "amount": amt})
        if not pools.unlocked.transfer(caller, reward):
            raise GeyserError("transfer_failed", "reward_transfer_failed", {"to": caller, "amount": reward})

    total_for = stake_ledger.total_staked_for(gs, caller, share_ledger.total_staked(pools))
    events.append(_event("Unstaked", user=caller, amount=amt, total=total_for, data=str(memo or "")))
    events.append(_event("TokensClaimed", user=caller, amount=reward))
    return {
        "applied": "UNSTAKE",
        "participant": caller,
        "amount": amt,
        "burned_shares": to_burn,
        "burned_share_seconds": burned_ss,
        "reward": reward,
        "events": events,
    }


def lock(ledger: LedgerState, caller: str, amount: int, duration_sec: int, now: int) -> Json:
    who = _require_participant(caller, field="caller")
    _require_owner(ledger, who)
    amt = int(amount)
    dur = int(duration_sec)

    gs = ledger.geyser
    pools = ledger.pools()
    events: List[Json] = []

    with _ledger_errors():
        scheduler.check_lock_preconditions(gs, amt, dur)
        _update_accounting(ledger, pools, who, now, events)
        schedule = scheduler.lock(gs, pools, amt, dur, now)

        if not pools.locked.transfer_from(who, pools.locked.address, amt):
            raise GeyserError(
                "transfer_failed",
                "locked_transfer_from_failed",
                {"from": who, "amount": amt, "token": pools.locked.token},
            )

    events.append(_event("TokensLocked", amount=amt, duration_sec=dur, total=scheduler.total_locked(pools)))
    return {
        "applied": "LOCK_TOKENS",
        "amount": amt,
        "duration_sec": dur,
        "schedule_index": len(gs.unlock_schedules) - 1,
        "schedule": schedule.to_json(),
        "events": events,
    }


def transfer_ownership(ledger: LedgerState, caller: str, new_owner: str) -> Json:
    _require_owner(ledger, caller)
    nxt = _require_participant(new_owner, field="new_owner")
    previous = ledger.geyser.owner
    ledger.geyser.owner = nxt
    return {
        "applied": "TRANSFER_OWNERSHIP",
        "events": [_event("OwnershipTransferred", previous_owner=previous, new_owner=nxt)],
    }


# ----------------------------
# Read-only views
# ----------------------------


def total_staked(ledger: LedgerState) -> int:
    return share_ledger.total_staked(ledger.pools())


def total_locked(ledger: LedgerState) -> int:
    return scheduler.total_locked(ledger.pools())


def total_unlocked(ledger: LedgerState) -> int:
    return scheduler.total_unlocked(ledger.pools())


def total_staked_for(ledger: LedgerState, participant: str) -> int:
    return stake_ledger.total_staked_for(ledger.geyser, participant, total_staked(ledger))


def total_rewards_for(ledger: LedgerState, participant: str, now: Optional[int] = None) -> int:
    """Reward the participant's share-seconds currently entitle them to.

    With `now`, the accounting step is simulated on a copy first, so pending
    unlocks and elapsed time are included. The given ledger is never touched.
    """
    if now is None:
        return stake_ledger.rewards_for(ledger.geyser, participant, total_unlocked(ledger))
    working = copy.deepcopy(ledger)
    t = max(int(now), working.geyser.last_accounting_time)
    with _ledger_errors():
        snap = _update_accounting(working, working.pools(), participant, t, [])
    return snap.user_rewards


def get_staking_token(ledger: LedgerState) -> str:
    return ledger.geyser.staking_token


def get_distribution_token(ledger: LedgerState) -> str:
    return ledger.geyser.distribution_token


def supports_history() -> bool:
    return False


def unlock_schedule_count(ledger: LedgerState) -> int:
    return len(ledger.geyser.unlock_schedules)


def totals_view(ledger: LedgerState) -> Json:
    gs = ledger.geyser
    return {
        "staking_token": gs.staking_token,
        "distribution_token": gs.distribution_token,
        "owner": gs.owner,
        "total_staked": total_staked(ledger),
        "total_locked": total_locked(ledger),
        "total_unlocked": total_unlocked(ledger),
        "total_staking_shares": gs.total_staking_shares,
        "total_staking_share_seconds": gs.total_staking_share_seconds,
        "total_locked_shares": gs.total_locked_shares,
        "last_accounting_time": gs.last_accounting_time,
        "unlock_schedule_count": unlock_schedule_count(ledger),
        "max_unlock_schedules": gs.max_unlock_schedules,
        "supports_history": supports_history(),
    }


def account_view(ledger: LedgerState, participant: str, now: Optional[int] = None) -> Json:
    gs = ledger.geyser
    totals = gs.peek_totals(participant)
    out: Json = {
        "account": participant,
        "total_staked_for": total_staked_for(ledger, participant),
        "total_rewards_for": total_rewards_for(ledger, participant),
        "shares": totals.shares,
        "share_seconds": totals.share_seconds,
        "last_accrual_time": totals.last_accrual_time,
        "stakes": [s.to_json() for s in stake_ledger.stakes_for(gs, participant)],
    }
    if now is not None:
        out["projected_share_seconds"] = stake_ledger.projected_share_seconds(gs, participant, now)
        out["projected_rewards"] = total_rewards_for(ledger, participant, now)
    return out


__all__ = [
    "AccountingSnapshot",
    "accrue_and_unlock",
    "account_view",
    "get_distribution_token",
    "get_staking_token",
    "lock",
    "stake",
    "supports_history",
    "total_locked",
    "total_rewards_for",
    "total_staked",
    "total_staked_for",
    "total_unlocked",
    "totals_view",
    "transfer_ownership",
    "unlock_schedule_count",
    "unstake",
    "update_accounting",
]
