from __future__ import annotations

import pytest

from conftest import DIST, OWNER, STAKE, fund
from geyser.ledger.constants import STAKING_POOL, UNLOCKED_POOL
from geyser.ledger.invariants import check_invariants
from geyser.runtime import engine
from geyser.runtime.errors import GeyserError


def test_bootstrap_stake_mints_one_share_per_token(make_ledger) -> None:
    ledger = make_ledger()
    fund(ledger, "alice", stake=1000)

    r = engine.stake(ledger, "alice", "alice", 1000, 0)

    assert r["minted_shares"] == 1000
    assert ledger.geyser.total_staking_shares == 1000
    assert ledger.tokens.balance_of(STAKE, STAKING_POOL) == 1000
    assert engine.total_staked_for(ledger, "alice") == 1000


def test_rewards_are_zero_without_unlocked_tokens(make_ledger) -> None:
    ledger = make_ledger(now=0)
    fund(ledger, "alice", stake=100)
    engine.stake(ledger, "alice", "alice", 100, 10)

    assert engine.total_rewards_for(ledger, "alice", now=20) == 0
    engine.update_accounting(ledger, "alice", 20)
    assert engine.total_rewards_for(ledger, "alice") == 0
    assert ledger.geyser.totals["alice"].share_seconds == 100 * 10


def test_equal_stakes_earn_equal_rewards(make_ledger) -> None:
    ledger = make_ledger()
    fund(ledger, OWNER, dist=1000)
    fund(ledger, "alice", stake=100)
    fund(ledger, "bob", stake=100)

    engine.lock(ledger, OWNER, 1000, 100, 0)
    engine.stake(ledger, "alice", "alice", 100, 0)
    engine.stake(ledger, "bob", "bob", 100, 0)

    engine.update_accounting(ledger, "alice", 100)
    engine.update_accounting(ledger, "bob", 100)

    a = engine.total_rewards_for(ledger, "alice")
    b = engine.total_rewards_for(ledger, "bob")
    assert abs(a - b) <= 1
    assert a == 500
    assert engine.total_unlocked(ledger) == 1000


def test_unlock_releases_half_then_remainder(make_ledger) -> None:
    ledger = make_ledger()
    fund(ledger, OWNER, dist=1000)
    engine.lock(ledger, OWNER, 1000, 100, 0)

    r1 = engine.accrue_and_unlock(ledger, 50)
    assert r1["unlocked"] == 500
    assert engine.total_locked(ledger) == 500

    r2 = engine.accrue_and_unlock(ledger, 100)
    assert r2["unlocked"] == 500
    assert engine.total_locked(ledger) == 0
    assert engine.total_unlocked(ledger) == 1000
    assert [e["event"] for e in r2["events"]] == ["TokensUnlocked"]


def test_partial_unstake_touches_only_newest_entry(make_ledger) -> None:
    ledger = make_ledger()
    fund(ledger, "alice", stake=150)
    engine.stake(ledger, "alice", "alice", 100, 0)
    engine.stake(ledger, "alice", "alice", 50, 10)

    r = engine.unstake(ledger, "alice", 20, 20)

    assert r["burned_shares"] == 20
    entries = ledger.geyser.stakes["alice"]
    assert (entries[0].shares, entries[0].timestamp) == (100, 0)
    assert (entries[1].shares, entries[1].timestamp) == (30, 10)
    assert check_invariants(ledger.geyser) == []


def test_unstake_more_than_staked_is_rejected_before_any_change(make_ledger) -> None:
    ledger = make_ledger()
    fund(ledger, "alice", stake=100)
    engine.stake(ledger, "alice", "alice", 100, 0)
    before = ledger.to_json()

    with pytest.raises(GeyserError) as e:
        engine.unstake(ledger, "alice", 101, 30)
    assert e.value.code == "insufficient_balance"
    assert ledger.to_json() == before


def test_unstake_pays_stake_back_with_reward(make_ledger) -> None:
    ledger = make_ledger()
    fund(ledger, OWNER, dist=1000)
    fund(ledger, "alice", stake=100)
    engine.lock(ledger, OWNER, 1000, 100, 0)
    engine.stake(ledger, "alice", "alice", 100, 0)

    r = engine.unstake(ledger, "alice", 100, 50, memo="bye")

    assert r["reward"] == 500
    assert ledger.tokens.balance_of(STAKE, "alice") == 100
    assert ledger.tokens.balance_of(DIST, "alice") == 500
    assert ledger.tokens.balance_of(DIST, UNLOCKED_POOL) == 0
    assert ledger.geyser.total_staking_shares == 0
    assert "alice" not in ledger.geyser.stakes

    names = [e["event"] for e in r["events"]]
    assert names == ["TokensUnlocked", "Unstaked", "TokensClaimed"]
    assert r["events"][1]["data"] == "bye"
    assert r["events"][2] == {"event": "TokensClaimed", "user": "alice", "amount": 500}


def test_stake_for_credits_beneficiary_and_debits_caller(make_ledger) -> None:
    ledger = make_ledger()
    fund(ledger, "alice", stake=100)
    fund(ledger, "bob", stake=40)
    engine.stake(ledger, "bob", "bob", 40, 0)

    r = engine.stake(ledger, "alice", "bob", 60, 5)

    assert r["applied"] == "STAKE_FOR"
    assert ledger.tokens.balance_of(STAKE, "alice") == 40
    assert engine.total_staked_for(ledger, "bob") == 100
    assert engine.total_staked_for(ledger, "alice") == 0
    assert ledger.geyser.totals["bob"].share_seconds == 40 * 5
    assert check_invariants(ledger.geyser) == []


def test_stake_without_allowance_fails_transfer(make_ledger) -> None:
    ledger = make_ledger()
    fund(ledger, "alice", stake=100, approve=False)
    with pytest.raises(GeyserError) as e:
        engine.stake(ledger, "alice", "alice", 100, 0)
    assert e.value.code == "transfer_failed"


def test_zero_amounts_are_rejected(make_ledger) -> None:
    ledger = make_ledger()
    with pytest.raises(GeyserError) as e:
        engine.stake(ledger, "alice", "alice", 0, 0)
    assert e.value.code == "invalid_amount"
    with pytest.raises(GeyserError) as e:
        engine.unstake(ledger, "alice", 0, 0)
    assert e.value.code == "invalid_amount"


def test_lock_is_owner_only(make_ledger) -> None:
    ledger = make_ledger()
    fund(ledger, "mallory", dist=10)
    with pytest.raises(GeyserError) as e:
        engine.lock(ledger, "mallory", 10, 10, 0)
    assert e.value.code == "forbidden"
    assert ledger.geyser.unlock_schedules == []


def test_transfer_ownership_hands_over_lock_rights(make_ledger) -> None:
    ledger = make_ledger()
    fund(ledger, "carol", dist=10)

    r = engine.transfer_ownership(ledger, OWNER, "carol")
    assert r["events"] == [{"event": "OwnershipTransferred", "previous_owner": OWNER, "new_owner": "carol"}]

    engine.lock(ledger, "carol", 10, 10, 0)
    assert engine.unlock_schedule_count(ledger) == 1
    with pytest.raises(GeyserError):
        engine.transfer_ownership(ledger, OWNER, OWNER)


def test_projected_rewards_do_not_mutate(make_ledger) -> None:
    ledger = make_ledger()
    fund(ledger, OWNER, dist=1000)
    fund(ledger, "alice", stake=100)
    engine.lock(ledger, OWNER, 1000, 100, 0)
    engine.stake(ledger, "alice", "alice", 100, 0)
    before = ledger.to_json()

    assert engine.total_rewards_for(ledger, "alice", now=100) == 1000
    assert ledger.to_json() == before


def test_views_and_token_getters(make_ledger) -> None:
    ledger = make_ledger()
    assert engine.get_staking_token(ledger) == STAKE
    assert engine.get_distribution_token(ledger) == DIST
    assert engine.supports_history() is False

    view = engine.totals_view(ledger)
    assert view["total_staked"] == 0
    assert view["unlock_schedule_count"] == 0

    acct = engine.account_view(ledger, "nobody", now=10)
    assert acct["total_staked_for"] == 0
    assert acct["projected_rewards"] == 0
    assert acct["stakes"] == []
