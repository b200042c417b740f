# src/geyser/runtime/domain_apply.py
# ---------------------------------------------------------------------------
# Public, stable import path for applying tx envelopes.
# ---------------------------------------------------------------------------

from __future__ import annotations

import copy
from dataclasses import fields
from typing import Any, Dict, Optional, Tuple

from geyser.ledger.types import LedgerState
from geyser.runtime.domain_dispatch import apply_tx
from geyser.runtime.errors import ApplyError

Json = Dict[str, Any]


def apply_tx_staged(ledger: LedgerState, env: Any, *, now: Optional[int] = None) -> Tuple[LedgerState, Json]:
    """Apply a tx to a deep copy of `ledger` and return (new_ledger, receipt).

    `ledger` itself is never mutated. `now` becomes the copy's clock; it may
    not move backwards.
    """
    working = copy.deepcopy(ledger)

    if now is not None:
        t = int(now)
        if t < working.time:
            raise ApplyError("invalid_time", "clock_regression", {"now": t, "ledger_time": working.time})
        working.time = t

    meta = apply_tx(working, env)
    working.height += 1
    return working, meta


def apply_tx_atomic(ledger: LedgerState, env: Any, *, now: Optional[int] = None) -> Json:
    """Apply a tx with all-or-nothing semantics.

    On success the ledger is updated as if the tx ran directly. On ApplyError
    (precondition failure or a refused custody transfer) the ledger is left
    exactly as it was.
    """
    working, meta = apply_tx_staged(ledger, env, now=now)

    # Commit in place so callers holding a reference to `ledger` see the
    # updated view.
    for f in fields(ledger):
        setattr(ledger, f.name, getattr(working, f.name))
    return meta


__all__ = ["ApplyError", "apply_tx", "apply_tx_atomic", "apply_tx_staged", "Json"]
