from __future__ import annotations

import os
import threading
import time
from typing import Dict

from geyser.ledger.types import LedgerState


_lock = threading.Lock()
_counters: Dict[str, int] = {}
_gauges: Dict[str, int] = {}
_started_ms = int(time.time() * 1000)


def metrics_enabled() -> bool:
    v = (os.environ.get("GEYSER_METRICS_ENABLED") or "").strip().lower()
    if not v:
        return False
    return v in {"1", "true", "yes", "y", "on"}


def inc_counter(name: str, value: int = 1) -> None:
    n = str(name or "").strip()
    if not n:
        return
    try:
        v = int(value)
    except Exception:
        v = 1
    with _lock:
        _counters[n] = int(_counters.get(n, 0)) + int(v)


def set_gauge(name: str, value: int) -> None:
    n = str(name or "").strip()
    if not n:
        return
    try:
        v = int(value)
    except Exception:
        v = 0
    with _lock:
        _gauges[n] = int(v)


def record_ledger_gauges(ledger: LedgerState) -> None:
    """Publish the geyser's aggregate accounting as gauges."""
    g = ledger.geyser
    pools = ledger.pools()
    set_gauge("ledger_height", ledger.height)
    set_gauge("ledger_time", ledger.time)
    set_gauge("total_staked", pools.staking.balance())
    set_gauge("total_locked", pools.locked.balance())
    set_gauge("total_unlocked", pools.unlocked.balance())
    set_gauge("total_staking_shares", g.total_staking_shares)
    set_gauge("total_locked_shares", g.total_locked_shares)
    set_gauge("unlock_schedules", len(g.unlock_schedules))
    set_gauge("stakers", sum(1 for t in g.totals.values() if t.shares > 0))


def reset() -> None:
    with _lock:
        _counters.clear()
        _gauges.clear()


def snapshot() -> dict:
    with _lock:
        return {
            "ts_ms": int(time.time() * 1000),
            "started_ms": int(_started_ms),
            "uptime_ms": int(time.time() * 1000) - int(_started_ms),
            "counters": dict(_counters),
            "gauges": dict(_gauges),
        }


def format_prometheus(prefix: str = "geyser_") -> str:
    """Prometheus exposition text; integer counters/gauges only."""
    pre = str(prefix or "").strip() or "geyser_"
    snap = snapshot()
    lines: list[str] = []

    lines.append(f"{pre}uptime_ms {int(snap.get('uptime_ms') or 0)}")

    c = snap.get("counters") if isinstance(snap.get("counters"), dict) else {}
    g = snap.get("gauges") if isinstance(snap.get("gauges"), dict) else {}

    for k in sorted(c.keys()):
        lines.append(f"{pre}{k} {int(c[k])}")
    for k in sorted(g.keys()):
        lines.append(f"{pre}{k} {int(g[k])}")

    return "\n".join(lines) + "\n"
