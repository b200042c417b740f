from __future__ import annotations

import pytest

from geyser.ledger import shares
from geyser.ledger.errors import LedgerError
from geyser.ledger.types import GeyserState


def _state(**kw) -> GeyserState:
    return GeyserState(staking_token="STAKE", distribution_token="DIST", owner="owner", **kw)


def test_bootstrap_deposit_mints_one_share_per_token() -> None:
    st = _state()
    assert shares.shares_for_deposit(st, 1000, 0) == 1000


def test_deposit_shares_are_proportional_and_floored() -> None:
    st = _state(total_staking_shares=1000)
    # 1000 shares over 1500 staked: 100 tokens buy 66.66.. -> 66
    assert shares.shares_for_deposit(st, 100, 1500) == 66
    assert shares.shares_for_withdrawal(st, 100, 1500) == 66


def test_drained_pool_with_live_shares_mints_at_bootstrap_rate() -> None:
    st = _state(total_staking_shares=500)
    assert shares.shares_for_deposit(st, 40, 0) == 40


def test_withdrawal_against_empty_pool_burns_nothing() -> None:
    st = _state(total_staking_shares=500)
    assert shares.shares_for_withdrawal(st, 40, 0) == 0


def test_accrue_global_is_idempotent_at_same_timestamp() -> None:
    st = _state(total_staking_shares=10, last_accounting_time=5)
    assert shares.accrue_global(st, 8) == 30
    assert shares.accrue_global(st, 8) == 0
    assert st.total_staking_share_seconds == 30
    assert st.last_accounting_time == 8


def test_accrue_global_is_monotone_over_increasing_time() -> None:
    st = _state(total_staking_shares=7)
    seen = []
    for t in (0, 1, 1, 4, 9, 9, 20):
        shares.accrue_global(st, t)
        seen.append(st.total_staking_share_seconds)
    assert seen == sorted(seen)
    assert st.total_staking_share_seconds == 7 * 20


def test_accrue_global_rejects_clock_regression_without_mutation() -> None:
    st = _state(total_staking_shares=3, total_staking_share_seconds=9, last_accounting_time=10)
    with pytest.raises(LedgerError) as e:
        shares.accrue_global(st, 9)
    assert e.value.code == "invalid_time"
    assert st.total_staking_share_seconds == 9
    assert st.last_accounting_time == 10


def test_burn_shares_rejects_more_than_outstanding() -> None:
    st = _state(total_staking_shares=5, total_staking_share_seconds=50)
    with pytest.raises(LedgerError) as e:
        shares.burn_shares(st, 6, 0)
    assert e.value.code == "insufficient_shares"
    assert st.total_staking_shares == 5

    shares.burn_shares(st, 5, 50)
    assert st.total_staking_shares == 0
    assert st.total_staking_share_seconds == 0
