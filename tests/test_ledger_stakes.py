from __future__ import annotations

import pytest

from geyser.ledger import stakes
from geyser.ledger.errors import LedgerError
from geyser.ledger.types import GeyserState, Stake


def _state() -> GeyserState:
    return GeyserState(staking_token="STAKE", distribution_token="DIST", owner="owner")


def _deposit(st: GeyserState, who: str, now: int, minted: int) -> None:
    stakes.accrue_user(st, who, now)
    stakes.deposit(st, who, now, minted)


def test_partial_withdraw_shrinks_only_the_newest_entry() -> None:
    st = _state()
    _deposit(st, "alice", 0, 100)
    _deposit(st, "alice", 10, 50)

    stakes.accrue_user(st, "alice", 20)
    burned_ss = stakes.withdraw(st, "alice", 20, 20)

    assert st.stakes["alice"] == [Stake(100, 0), Stake(30, 10)]
    assert burned_ss == 20 * (20 - 10)
    t = st.totals["alice"]
    assert t.shares == 130
    # 100*20 + 50*10 accrued, minus what left with the burned shares
    assert t.share_seconds == 2000 + 500 - 200


def test_withdraw_spanning_entries_pops_newest_first() -> None:
    st = _state()
    _deposit(st, "alice", 0, 100)
    _deposit(st, "alice", 5, 10)
    _deposit(st, "alice", 8, 10)

    stakes.accrue_user(st, "alice", 10)
    burned_ss = stakes.withdraw(st, "alice", 10, 25)

    assert st.stakes["alice"] == [Stake(95, 0)]
    assert burned_ss == 10 * 2 + 10 * 5 + 5 * 10


def test_full_withdraw_removes_the_participant_records() -> None:
    st = _state()
    _deposit(st, "bob", 3, 40)
    stakes.accrue_user(st, "bob", 9)
    stakes.withdraw(st, "bob", 9, 40)

    assert "bob" not in st.stakes
    assert "bob" not in st.totals


def test_accrue_does_not_create_records_for_non_stakers() -> None:
    st = _state()
    assert stakes.accrue_user(st, "carol", 50) == 0
    assert st.totals == {}


def test_withdraw_more_than_held_is_rejected_untouched() -> None:
    st = _state()
    _deposit(st, "alice", 0, 10)
    stakes.accrue_user(st, "alice", 4)

    with pytest.raises(LedgerError) as e:
        stakes.withdraw(st, "alice", 4, 11)
    assert e.value.code == "insufficient_shares"
    assert st.stakes["alice"] == [Stake(10, 0)]
    assert st.totals["alice"].share_seconds == 40


def test_withdraw_requires_user_accrued_to_now() -> None:
    st = _state()
    _deposit(st, "alice", 0, 10)
    with pytest.raises(LedgerError) as e:
        stakes.withdraw(st, "alice", 5, 1)
    assert e.value.reason == "accrual_required"


def test_reward_is_zero_without_share_seconds() -> None:
    assert stakes.reward_for(0, 0, 1000) == 0
    assert stakes.reward_for(10, 30, 100) == 33


def test_projected_share_seconds_does_not_mutate() -> None:
    st = _state()
    _deposit(st, "alice", 0, 10)
    assert stakes.projected_share_seconds(st, "alice", 7) == 70
    assert st.totals["alice"].share_seconds == 0
    assert stakes.projected_share_seconds(st, "nobody", 7) == 0
    assert "nobody" not in st.totals


def test_stakes_for_returns_copies() -> None:
    st = _state()
    _deposit(st, "alice", 0, 10)
    view = stakes.stakes_for(st, "alice")
    view[0].shares = 999
    assert st.stakes["alice"][0].shares == 10
