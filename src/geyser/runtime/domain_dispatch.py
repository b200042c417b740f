# src/geyser/runtime/domain_dispatch.py

from __future__ import annotations

from typing import Any, Callable, Dict, Optional

from geyser.ledger import accounts
from geyser.ledger.constants import RESERVED_ADDRESSES, SYSTEM_SIGNER
from geyser.ledger.errors import LedgerError
from geyser.ledger.types import LedgerState
from geyser.runtime.apply.accounts import apply_accounts
from geyser.runtime.apply.admin import apply_admin
from geyser.runtime.apply.staking import apply_staking
from geyser.runtime.apply.tokens import apply_tokens
from geyser.runtime.errors import ApplyError
from geyser.runtime.tx_types import SYSTEM_ONLY_TX_TYPES, TxEnvelope

Json = Dict[str, Any]
ApplyFn = Callable[[LedgerState, TxEnvelope], Optional[Json]]


def _enforce_apply_time_rules(env: TxEnvelope) -> None:
    """Defense-in-depth checks at apply-time.

    Admission already enforces these, but apply_tx() may be invoked directly
    in tests/tools.
    """
    if not env.signer:
        raise ApplyError("invalid_tx", "missing_signer", {"tx_type": env.tx_type})
    if env.signer in RESERVED_ADDRESSES:
        raise ApplyError("forbidden", "reserved_signer", {"tx_type": env.tx_type, "signer": env.signer})
    if env.tx_type in SYSTEM_ONLY_TX_TYPES and not (env.system or env.signer == SYSTEM_SIGNER):
        raise ApplyError("forbidden", "system_flag_required", {"tx_type": env.tx_type})


_APPLIERS: tuple[ApplyFn, ...] = (
    apply_staking,
    apply_admin,
    apply_tokens,
    apply_accounts,
)


def apply_tx(ledger: LedgerState, env: Any) -> Json:
    """Dispatch a TxEnvelope to the first domain applier that claims it."""

    # Tests and some tools pass raw dict envelopes. Normalize to TxEnvelope so
    # domain appliers can rely on attribute access.
    env_norm = TxEnvelope.from_json(env)

    t = env_norm.tx_type
    if not t:
        raise ApplyError("invalid_tx", "missing_tx_type", {"tx_type": t})

    _enforce_apply_time_rules(env_norm)

    if env_norm.nonce:
        # Signed envelope: the nonce is spent together with the tx's effects.
        try:
            accounts.consume_nonce(ledger.accounts, env_norm.signer, env_norm.nonce)
        except LedgerError as e:
            raise ApplyError(e.code, e.reason, e.details) from e

    for fn in _APPLIERS:
        try:
            out = fn(ledger, env_norm)
        except ApplyError:
            raise
        except Exception as e:
            code = getattr(e, "code", None)
            reason = getattr(e, "reason", None)
            details = getattr(e, "details", None)

            if code is not None or reason is not None:
                raise ApplyError(
                    str(code or "domain_error"),
                    str(reason or type(e).__name__),
                    details if details is not None else {"tx_type": t, "domain": fn.__name__},
                ) from e

            raise ApplyError(
                "domain_error",
                type(e).__name__,
                {"tx_type": t, "domain": fn.__name__, "error": str(e)},
            ) from e

        if out is not None:
            return out

    raise ApplyError("tx_unimplemented", "tx_type_not_implemented", {"tx_type": t})


__all__ = ["ApplyError", "apply_tx"]
