from __future__ import annotations

import copy
import threading
import time
from typing import Any, Callable, Dict, List, Optional

from geyser.crypto.sig import normalize_pubkey
from geyser.ledger import accounts
from geyser.ledger.types import LedgerState
from geyser.runtime import metrics
from geyser.runtime.config import GeyserConfig
from geyser.runtime.domain_apply import ApplyError, apply_tx_staged
from geyser.runtime.event_log import log_receipt, log_rejection
from geyser.runtime.sqlite_db import SqliteDB, SqliteLedgerStore
from geyser.runtime.tx_admission import admit_tx
from geyser.runtime.tx_types import TxEnvelope

Json = Dict[str, Any]
Clock = Callable[[], int]


def _wall_clock() -> int:
    return int(time.time())


def _envelope_ids(env: Any) -> tuple[str, str]:
    """Best-effort (tx_type, signer) for logging envelopes that failed admission."""
    if isinstance(env, TxEnvelope):
        return env.tx_type, env.signer
    if isinstance(env, dict):
        return str(env.get("tx_type") or "").strip().upper(), str(env.get("signer") or "").strip()
    return "", ""


class ExecutorError(RuntimeError):
    pass


class GeyserExecutor:
    """Serializes tx application against one persisted geyser ledger.

    Each tx is applied to a copy of the ledger; the copy replaces the live
    ledger only after the snapshot and receipt are durably written.
    """

    def __init__(self, *, db_path: str, config: GeyserConfig, clock: Optional[Clock] = None) -> None:
        self.config = config
        self.db_path = str(db_path)
        self._clock: Clock = clock or _wall_clock
        self._lock = threading.Lock()

        self._db = SqliteDB(path=self.db_path)
        self._store = SqliteLedgerStore(db=self._db)

        if self._store.exists():
            self.ledger = LedgerState.from_json(self._store.read())
        else:
            self.ledger = LedgerState.genesis(
                instance_id=config.instance_id,
                staking_token=config.staking_token,
                distribution_token=config.distribution_token,
                owner=config.owner,
                max_unlock_schedules=config.max_unlock_schedules,
                now=self._clock(),
            )
            if config.owner_pubkey:
                accounts.register_key(self.ledger.accounts, config.owner, normalize_pubkey(config.owner_pubkey))
            self._store.write(self.ledger.to_json())

        # Fail-closed on instance mismatch once state is present.
        if self.ledger.instance_id != config.instance_id:
            raise ExecutorError(
                f"instance_id mismatch: db={self.ledger.instance_id!r} config={config.instance_id!r}. Refuse to start."
            )

        metrics.record_ledger_gauges(self.ledger)

    # ----------------------------
    # Public accessors
    # ----------------------------

    @property
    def instance_id(self) -> str:
        return self.ledger.instance_id

    def now(self) -> int:
        """Wall clock clamped so it never runs behind the ledger."""
        wall = int(self._clock())
        last = int(self.ledger.time)
        return wall if wall >= last else last

    def snapshot_ledger(self) -> LedgerState:
        with self._lock:
            return copy.deepcopy(self.ledger)

    def read_state(self) -> Json:
        with self._lock:
            return self.ledger.to_json()

    def receipts(self, *, limit: int = 50, signer: Optional[str] = None) -> List[Json]:
        return self._store.read_receipts(limit=limit, signer=signer)

    # ----------------------------
    # Tx submission
    # ----------------------------

    def _reject(self, rejection: Json, *, tx_type: str, signer: str) -> Json:
        log_rejection(rejection, tx_type=tx_type, signer=signer)
        metrics.inc_counter("tx_rejected_total")
        return rejection

    def _record_rejection(self, tx: TxEnvelope, rej: Json) -> None:
        """Persist an apply-time rejection.

        A signed envelope that passed admission still spends its nonce, so the
        same signature cannot be replayed once circumstances change.
        """
        receipt = {**rej, "tx_type": tx.tx_type, "signer": tx.signer}
        acct = self.ledger.accounts.get(tx.signer)
        if acct is not None and tx.nonce and tx.nonce == acct.nonce + 1:
            spent = copy.deepcopy(self.ledger)
            accounts.consume_nonce(spent.accounts, tx.signer, tx.nonce)
            self._store.commit(spent.to_json(), receipt)
            self.ledger = spent
            return
        self._store.append_receipt(receipt, height=self.ledger.height)

    def submit_tx(self, env: Any, *, context: str = "local") -> Json:
        """Admit, apply and persist one tx.

        Returns the receipt ({"ok": True, ...}) or a rejection
        ({"ok": False, "error", "reason", "details"}). A rejected tx leaves
        the ledger untouched apart from a spent nonce.
        """
        tx_type, signer = _envelope_ids(env)

        with self._lock:
            verdict = admit_tx(env, context=context, ledger=self.ledger)
            if not verdict.ok:
                rej = {"ok": False, "error": verdict.code, "reason": verdict.reason, "details": verdict.details}
                return self._reject(rej, tx_type=tx_type, signer=signer)

            tx = TxEnvelope.from_json(env)
            now = self.now()
            try:
                working, meta = apply_tx_staged(self.ledger, tx, now=now)
            except ApplyError as e:
                rej = e.to_json()
                self._record_rejection(tx, rej)
                return self._reject(rej, tx_type=tx.tx_type, signer=tx.signer)

            receipt: Json = dict(meta)
            receipt.update(
                ok=True,
                tx_type=tx.tx_type,
                signer=tx.signer,
                height=working.height,
                ledger_time=working.time,
            )

            self._store.commit(working.to_json(), receipt)
            self.ledger = working

            metrics.inc_counter("tx_applied_total")
            metrics.record_ledger_gauges(working)

        log_receipt(receipt)
        return receipt


__all__ = ["ExecutorError", "GeyserExecutor"]
