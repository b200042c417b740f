# src/geyser/runtime/apply/__init__.py
"""Domain-specific apply modules.

Each module handles a subset of tx types against a working LedgerState and
returns a receipt dict, or None when the tx type is not its own.
"""

from __future__ import annotations

__all__ = [
    "staking",
    "admin",
    "tokens",
    "accounts",
]
