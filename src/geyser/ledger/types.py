"""geyser.ledger.types

Ledger object model.

  - Stake / UserTotals / UnlockSchedule: the per-record types
  - GeyserState: global share accounting, schedules and per-user books
  - Account: signing keys and nonce for one participant
  - LedgerState: the single state object every tx handler receives
    (geyser accounting + token custody + accounts + clock)

Every type round-trips through plain JSON so the executor can persist a
canonical snapshot. Integers stay Python ints end to end.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List

from geyser.ledger.constants import DEFAULT_MAX_UNLOCK_SCHEDULES
from geyser.ledger.tokens import Pools, TokenLedger

Json = Dict[str, Any]


def _coerce_int(v: Any, *, field: str) -> int:
    # bool is an int subclass; disallow it explicitly
    if isinstance(v, bool):
        raise ValueError(f"ledger schema error: field '{field}' must be int (got bool)")
    try:
        out = int(v)
    except Exception as e:
        raise ValueError(f"ledger schema error: field '{field}' must be int-coercible (got {type(v).__name__})") from e
    if out < 0:
        raise ValueError(f"ledger schema error: field '{field}' must be non-negative (got {out})")
    return out


def _as_dict(x: Any) -> Json:
    return x if isinstance(x, dict) else {}


def _as_list(x: Any) -> List[Any]:
    return x if isinstance(x, list) else []


@dataclass
class Stake:
    shares: int
    timestamp: int

    def to_json(self) -> Json:
        return {"shares": int(self.shares), "timestamp": int(self.timestamp)}

    @staticmethod
    def from_json(j: Any) -> "Stake":
        d = _as_dict(j)
        return Stake(
            shares=_coerce_int(d.get("shares", 0), field="stake.shares"),
            timestamp=_coerce_int(d.get("timestamp", 0), field="stake.timestamp"),
        )


@dataclass
class UserTotals:
    shares: int = 0
    share_seconds: int = 0
    last_accrual_time: int = 0

    def to_json(self) -> Json:
        return {
            "shares": int(self.shares),
            "share_seconds": int(self.share_seconds),
            "last_accrual_time": int(self.last_accrual_time),
        }

    @staticmethod
    def from_json(j: Any) -> "UserTotals":
        d = _as_dict(j)
        return UserTotals(
            shares=_coerce_int(d.get("shares", 0), field="totals.shares"),
            share_seconds=_coerce_int(d.get("share_seconds", 0), field="totals.share_seconds"),
            last_accrual_time=_coerce_int(d.get("last_accrual_time", 0), field="totals.last_accrual_time"),
        )


@dataclass
class UnlockSchedule:
    initial_shares: int
    last_unlock_time: int
    end_time: int
    duration_sec: int

    @property
    def inert(self) -> bool:
        return self.last_unlock_time >= self.end_time

    def to_json(self) -> Json:
        return {
            "initial_shares": int(self.initial_shares),
            "last_unlock_time": int(self.last_unlock_time),
            "end_time": int(self.end_time),
            "duration_sec": int(self.duration_sec),
        }

    @staticmethod
    def from_json(j: Any) -> "UnlockSchedule":
        d = _as_dict(j)
        return UnlockSchedule(
            initial_shares=_coerce_int(d.get("initial_shares", 0), field="schedule.initial_shares"),
            last_unlock_time=_coerce_int(d.get("last_unlock_time", 0), field="schedule.last_unlock_time"),
            end_time=_coerce_int(d.get("end_time", 0), field="schedule.end_time"),
            duration_sec=_coerce_int(d.get("duration_sec", 0), field="schedule.duration_sec"),
        )


@dataclass
class GeyserState:
    staking_token: str
    distribution_token: str
    owner: str
    max_unlock_schedules: int = DEFAULT_MAX_UNLOCK_SCHEDULES

    total_staking_shares: int = 0
    total_staking_share_seconds: int = 0
    last_accounting_time: int = 0
    total_locked_shares: int = 0

    unlock_schedules: List[UnlockSchedule] = field(default_factory=list)
    totals: Dict[str, UserTotals] = field(default_factory=dict)
    stakes: Dict[str, List[Stake]] = field(default_factory=dict)

    def user_totals(self, participant: str) -> UserTotals:
        """Return the mutable totals record, creating it on first touch."""
        return self.totals.setdefault(participant, UserTotals())

    def user_stakes(self, participant: str) -> List[Stake]:
        return self.stakes.setdefault(participant, [])

    def peek_totals(self, participant: str) -> UserTotals:
        """Read-only variant of user_totals(): never inserts."""
        return self.totals.get(participant) or UserTotals()

    def to_json(self) -> Json:
        return {
            "staking_token": self.staking_token,
            "distribution_token": self.distribution_token,
            "owner": self.owner,
            "max_unlock_schedules": int(self.max_unlock_schedules),
            "total_staking_shares": int(self.total_staking_shares),
            "total_staking_share_seconds": int(self.total_staking_share_seconds),
            "last_accounting_time": int(self.last_accounting_time),
            "total_locked_shares": int(self.total_locked_shares),
            "unlock_schedules": [s.to_json() for s in self.unlock_schedules],
            "totals": {k: v.to_json() for k, v in self.totals.items()},
            "stakes": {k: [s.to_json() for s in v] for k, v in self.stakes.items()},
        }

    @staticmethod
    def from_json(j: Any) -> "GeyserState":
        d = _as_dict(j)
        staking_token = str(d.get("staking_token") or "").strip()
        distribution_token = str(d.get("distribution_token") or "").strip()
        if not staking_token or not distribution_token:
            raise ValueError("ledger schema error: staking_token and distribution_token are required")
        return GeyserState(
            staking_token=staking_token,
            distribution_token=distribution_token,
            owner=str(d.get("owner") or ""),
            max_unlock_schedules=_coerce_int(
                d.get("max_unlock_schedules", DEFAULT_MAX_UNLOCK_SCHEDULES), field="max_unlock_schedules"
            ),
            total_staking_shares=_coerce_int(d.get("total_staking_shares", 0), field="total_staking_shares"),
            total_staking_share_seconds=_coerce_int(
                d.get("total_staking_share_seconds", 0), field="total_staking_share_seconds"
            ),
            last_accounting_time=_coerce_int(d.get("last_accounting_time", 0), field="last_accounting_time"),
            total_locked_shares=_coerce_int(d.get("total_locked_shares", 0), field="total_locked_shares"),
            unlock_schedules=[UnlockSchedule.from_json(s) for s in _as_list(d.get("unlock_schedules"))],
            totals={str(k): UserTotals.from_json(v) for k, v in _as_dict(d.get("totals")).items()},
            stakes={str(k): [Stake.from_json(s) for s in _as_list(v)] for k, v in _as_dict(d.get("stakes")).items()},
        )


@dataclass
class Account:
    """Signing keys and replay counter for one participant.

    Serialized as {"keys": [{"pubkey", "active"}], "nonce"}; only active keys
    are kept in memory.
    """

    pubkeys: List[str] = field(default_factory=list)
    nonce: int = 0

    def to_json(self) -> Json:
        return {
            "keys": [{"pubkey": pk, "active": True} for pk in self.pubkeys],
            "nonce": int(self.nonce),
        }

    @staticmethod
    def from_json(j: Any) -> "Account":
        d = _as_dict(j)
        pubkeys: List[str] = []
        for rec in _as_list(d.get("keys")):
            if not isinstance(rec, dict) or not rec.get("active", True):
                continue
            pk = str(rec.get("pubkey") or "").strip()
            if pk and pk not in pubkeys:
                pubkeys.append(pk)
        return Account(pubkeys=pubkeys, nonce=_coerce_int(d.get("nonce", 0), field="account.nonce"))


@dataclass
class LedgerState:
    """Everything a tx handler may touch, as one copyable object."""

    geyser: GeyserState
    tokens: TokenLedger = field(default_factory=TokenLedger)
    accounts: Dict[str, Account] = field(default_factory=dict)
    instance_id: str = ""
    height: int = 0
    time: int = 0

    @classmethod
    def genesis(
        cls,
        *,
        instance_id: str,
        staking_token: str,
        distribution_token: str,
        owner: str,
        max_unlock_schedules: int = DEFAULT_MAX_UNLOCK_SCHEDULES,
        now: int = 0,
    ) -> "LedgerState":
        return cls(
            geyser=GeyserState(
                staking_token=staking_token,
                distribution_token=distribution_token,
                owner=owner,
                max_unlock_schedules=int(max_unlock_schedules),
                last_accounting_time=int(now),
            ),
            tokens=TokenLedger(),
            instance_id=instance_id,
            height=0,
            time=int(now),
        )

    def pools(self) -> Pools:
        return Pools.for_tokens(
            self.tokens,
            staking_token=self.geyser.staking_token,
            distribution_token=self.geyser.distribution_token,
        )

    def to_json(self) -> Json:
        return {
            "instance_id": self.instance_id,
            "height": int(self.height),
            "time": int(self.time),
            "geyser": self.geyser.to_json(),
            "tokens": self.tokens.to_json(),
            "accounts": {k: v.to_json() for k, v in self.accounts.items()},
        }

    @staticmethod
    def from_json(j: Any) -> "LedgerState":
        d = _as_dict(j)
        return LedgerState(
            geyser=GeyserState.from_json(d.get("geyser")),
            tokens=TokenLedger.from_json(d.get("tokens")),
            accounts={str(k): Account.from_json(v) for k, v in _as_dict(d.get("accounts")).items()},
            instance_id=str(d.get("instance_id") or ""),
            height=_coerce_int(d.get("height", 0), field="height"),
            time=_coerce_int(d.get("time", 0), field="time"),
        )


__all__ = ["Account", "GeyserState", "LedgerState", "Stake", "UnlockSchedule", "UserTotals"]
