# src/geyser/ledger/__init__.py
"""
Token Geyser ledger package

Pure accounting, no I/O:
  - types: Stake, UserTotals, UnlockSchedule, GeyserState, Account, LedgerState
  - tokens: custody book (TokenLedger) and the pool views the core uses
  - shares: global clock + staking-share mint/burn arithmetic
  - stakes: per-participant stake list, LIFO withdrawal, reward views
  - unlock: linear unlock schedules over the locked pool
  - invariants: conservation checks
  - accounts: signer keys and nonces

Orchestration (accounting step, transfers, atomicity) lives in
geyser.runtime.engine.
"""

from __future__ import annotations

__all__ = [
    "types",
    "tokens",
    "shares",
    "stakes",
    "unlock",
    "invariants",
    "accounts",
]
