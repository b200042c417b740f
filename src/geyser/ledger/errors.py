# src/geyser/ledger/errors.py
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Optional

Json = Dict[str, Any]


@dataclass
class LedgerError(RuntimeError):
    """Raised by ledger primitives when a precondition does not hold.

    Ledger functions check before they mutate, so a LedgerError never leaves
    a half-applied change behind in the structure it was called on.
    """

    code: str
    reason: str
    details: Optional[Json] = None

    def __str__(self) -> str:
        if self.details is None:
            return f"{self.code}:{self.reason}"
        return f"{self.code}:{self.reason}:{self.details}"


__all__ = ["LedgerError"]
