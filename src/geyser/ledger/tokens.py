# src/geyser/ledger/tokens.py
from __future__ import annotations

"""Asset custody.

The geyser core only needs three custodial balances (staking, locked,
unlocked) with balance/transfer/transfer_from semantics. TokenLedger is the
host-side token book that backs them: balances and allowances for any number
of token ids, keyed by plain string addresses.

transfer() and transfer_from() follow token-contract conventions: they return
False on failure and never move a partial amount.
"""

from dataclasses import dataclass, field
from typing import Any, Dict

from geyser.ledger.constants import GEYSER_ADDRESS, LOCKED_POOL, STAKING_POOL, UNLOCKED_POOL
from geyser.ledger.errors import LedgerError

Json = Dict[str, Any]


def _as_int(x: Any, default: int = 0) -> int:
    try:
        return int(x)
    except Exception:
        return int(default)


def _int_map(x: Any) -> Dict[str, int]:
    if not isinstance(x, dict):
        return {}
    return {str(k): _as_int(v) for k, v in x.items()}


@dataclass
class TokenLedger:
    balances: Dict[str, Dict[str, int]] = field(default_factory=dict)
    allowances: Dict[str, Dict[str, Dict[str, int]]] = field(default_factory=dict)
    supply: Dict[str, int] = field(default_factory=dict)

    # ---- reads ----

    def balance_of(self, token: str, holder: str) -> int:
        return int(self.balances.get(token, {}).get(holder, 0))

    def allowance(self, token: str, owner: str, spender: str) -> int:
        return int(self.allowances.get(token, {}).get(owner, {}).get(spender, 0))

    def total_supply(self, token: str) -> int:
        return int(self.supply.get(token, 0))

    # ---- writes ----

    def mint(self, token: str, to: str, amount: int) -> None:
        amt = int(amount)
        if amt <= 0:
            raise LedgerError("invalid_amount", "mint_amount_must_be_positive", {"token": token, "amount": amt})
        if not str(to).strip():
            raise LedgerError("invalid_payload", "missing_recipient", {"token": token})
        book = self.balances.setdefault(token, {})
        book[to] = int(book.get(to, 0)) + amt
        self.supply[token] = int(self.supply.get(token, 0)) + amt

    def approve(self, token: str, owner: str, spender: str, amount: int) -> None:
        amt = int(amount)
        if amt < 0:
            raise LedgerError("invalid_amount", "allowance_must_be_non_negative", {"token": token, "amount": amt})
        self.allowances.setdefault(token, {}).setdefault(owner, {})[spender] = amt

    def transfer(self, token: str, src: str, dst: str, amount: int) -> bool:
        amt = int(amount)
        if amt < 0 or not str(dst).strip():
            return False
        if amt == 0:
            return True
        book = self.balances.setdefault(token, {})
        have = int(book.get(src, 0))
        if have < amt:
            return False
        book[src] = have - amt
        book[dst] = int(book.get(dst, 0)) + amt
        return True

    def transfer_from(self, token: str, spender: str, src: str, dst: str, amount: int) -> bool:
        amt = int(amount)
        if amt < 0:
            return False
        allowed = self.allowance(token, src, spender)
        if allowed < amt or self.balance_of(token, src) < amt:
            return False
        if not self.transfer(token, src, dst, amt):
            return False
        if amt:
            self.allowances[token][src][spender] = allowed - amt
        return True

    # ---- serialization ----

    def to_json(self) -> Json:
        return {
            "balances": {t: dict(b) for t, b in self.balances.items()},
            "allowances": {t: {o: dict(s) for o, s in owners.items()} for t, owners in self.allowances.items()},
            "supply": dict(self.supply),
        }

    @staticmethod
    def from_json(j: Any) -> "TokenLedger":
        if isinstance(j, TokenLedger):
            return j
        j = j if isinstance(j, dict) else {}
        balances = j.get("balances") if isinstance(j.get("balances"), dict) else {}
        allowances = j.get("allowances") if isinstance(j.get("allowances"), dict) else {}
        return TokenLedger(
            balances={str(t): _int_map(b) for t, b in balances.items()},
            allowances={
                str(t): {str(o): _int_map(s) for o, s in owners.items()}
                for t, owners in allowances.items()
                if isinstance(owners, dict)
            },
            supply=_int_map(j.get("supply")),
        )


@dataclass(frozen=True)
class TokenPool:
    """One custodial balance the geyser core operates on."""

    tokens: TokenLedger
    token: str
    address: str
    operator: str = GEYSER_ADDRESS

    def balance(self) -> int:
        return self.tokens.balance_of(self.token, self.address)

    def transfer(self, to: str, amount: int) -> bool:
        return self.tokens.transfer(self.token, self.address, to, amount)

    def transfer_from(self, src: str, to: str, amount: int) -> bool:
        return self.tokens.transfer_from(self.token, self.operator, src, to, amount)


@dataclass(frozen=True)
class Pools:
    staking: TokenPool
    locked: TokenPool
    unlocked: TokenPool

    @classmethod
    def for_tokens(cls, tokens: TokenLedger, *, staking_token: str, distribution_token: str) -> "Pools":
        return cls(
            staking=TokenPool(tokens, staking_token, STAKING_POOL),
            locked=TokenPool(tokens, distribution_token, LOCKED_POOL),
            unlocked=TokenPool(tokens, distribution_token, UNLOCKED_POOL),
        )


__all__ = ["Pools", "TokenLedger", "TokenPool"]
