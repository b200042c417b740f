# src/geyser/runtime/event_log.py
from __future__ import annotations

import json
import logging
import os
import time
from typing import Any, Dict, Iterable

Json = Dict[str, Any]

_TX_LOGGER = logging.getLogger("geyser.tx")
_EVENT_LOGGER = logging.getLogger("geyser.events")


def _now_ms() -> int:
    return int(time.time() * 1000)


def configure_structured_logging() -> None:
    """Configure stdlib logging for JSONL output (stdout).

    - Level from GEYSER_LOG_LEVEL (default INFO).
    - Safe to call multiple times.
    """
    level_name = (os.environ.get("GEYSER_LOG_LEVEL") or "INFO").strip().upper()
    level = getattr(logging, level_name, logging.INFO)

    root = logging.getLogger()
    if getattr(root, "_geyser_configured", False):  # type: ignore[attr-defined]
        root.setLevel(level)
        return

    handler = logging.StreamHandler()
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter("%(message)s"))

    root.handlers = [handler]
    root.setLevel(level)
    setattr(root, "_geyser_configured", True)  # type: ignore[attr-defined]


def log_event(logger: logging.Logger, event: str, *, level: int = logging.INFO, **fields: Any) -> None:
    payload: Json = {"ts_ms": _now_ms(), "event": event}
    payload.update(fields)
    try:
        logger.log(level, json.dumps(payload, sort_keys=True, separators=(",", ":"), ensure_ascii=False))
    except Exception:
        parts = [f"event={event}"] + [f"{k}={fields.get(k)!r}" for k in sorted(fields.keys())]
        logger.log(level, " ".join(parts))


def log_receipt(receipt: Json) -> None:
    """Log one applied tx plus each geyser event it emitted."""
    log_event(
        _TX_LOGGER,
        "tx_applied",
        tx_type=receipt.get("tx_type"),
        signer=receipt.get("signer"),
        height=receipt.get("height"),
        ledger_time=receipt.get("ledger_time"),
    )
    events: Iterable[Any] = receipt.get("events") or []
    for ev in events:
        if isinstance(ev, dict):
            fields = {k: v for k, v in ev.items() if k != "event"}
            log_event(_EVENT_LOGGER, "geyser_event", name=ev.get("event"), height=receipt.get("height"), **fields)


def log_rejection(rejection: Json, *, tx_type: str, signer: str) -> None:
    log_event(
        _TX_LOGGER,
        "tx_rejected",
        level=logging.WARNING,
        tx_type=tx_type,
        signer=signer,
        error=rejection.get("error"),
        reason=rejection.get("reason"),
        details=rejection.get("details"),
    )


__all__ = ["configure_structured_logging", "log_event", "log_receipt", "log_rejection"]
