from __future__ import annotations

import json
import logging

import pytest

from geyser.runtime.event_log import log_receipt, log_rejection


def _payloads(caplog: pytest.LogCaptureFixture) -> list[dict]:
    return [json.loads(r.getMessage()) for r in caplog.records]


def test_receipt_logs_tx_and_each_event(caplog: pytest.LogCaptureFixture) -> None:
    caplog.set_level(logging.INFO)
    log_receipt(
        {
            "ok": True,
            "tx_type": "UNSTAKE",
            "signer": "alice",
            "height": 4,
            "ledger_time": 99,
            "events": [
                {"event": "Unstaked", "user": "alice", "amount": 10, "total": 0, "data": ""},
                {"event": "TokensClaimed", "user": "alice", "amount": 3},
            ],
        }
    )

    out = _payloads(caplog)
    assert [p["event"] for p in out] == ["tx_applied", "geyser_event", "geyser_event"]
    assert out[0]["tx_type"] == "UNSTAKE"
    assert out[1]["name"] == "Unstaked"
    assert out[2] == {**out[2], "name": "TokensClaimed", "amount": 3, "height": 4}


def test_rejection_logs_at_warning(caplog: pytest.LogCaptureFixture) -> None:
    caplog.set_level(logging.INFO)
    log_rejection({"ok": False, "error": "forbidden", "reason": "not_owner", "details": {}}, tx_type="LOCK_TOKENS", signer="bob")

    (rec,) = caplog.records
    assert rec.levelno == logging.WARNING
    body = json.loads(rec.getMessage())
    assert body["event"] == "tx_rejected"
    assert body["reason"] == "not_owner"
