# src/geyser/runtime/config.py
from __future__ import annotations

import json
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Optional

from geyser.crypto.sig import normalize_pubkey
from geyser.ledger.constants import (
    DEFAULT_DISTRIBUTION_TOKEN,
    DEFAULT_MAX_UNLOCK_SCHEDULES,
    DEFAULT_STAKING_TOKEN,
)

Json = Dict[str, Any]


def _as_int(v: Any, default: int) -> int:
    if isinstance(v, bool):
        return int(default)
    try:
        return int(v)
    except Exception:
        return int(default)


def _as_str(v: Any, default: str) -> str:
    if v is None:
        return str(default)
    s = str(v)
    return s if s.strip() else str(default)


@dataclass(frozen=True)
class GeyserConfig:
    instance_id: str
    mode: str  # "dev" | "testnet" | "prod"

    # Single SQLite DB file path for ledger snapshot + receipts.
    db_path: str

    staking_token: str
    distribution_token: str
    owner: str
    max_unlock_schedules: int

    api_host: str
    api_port: int

    log_level: str

    # Registered for `owner` when a fresh ledger is created (hex or base64).
    owner_pubkey: str = ""


_ALLOWED_MODES = {"dev", "testnet", "prod"}
_ALLOWED_LOG_LEVELS = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}


def validate_geyser_config(cfg: GeyserConfig) -> None:
    """Fail-fast validation for operator config.

    A misconfigured geyser must refuse to boot rather than create a ledger
    with the wrong tokens or owner.
    """

    if not isinstance(cfg.instance_id, str) or not cfg.instance_id.strip():
        raise ValueError("instance_id must be a non-empty string")

    mode = str(cfg.mode or "").strip().lower()
    if mode not in _ALLOWED_MODES:
        raise ValueError(f"mode must be one of {_ALLOWED_MODES}; got: {cfg.mode!r}")

    if not isinstance(cfg.db_path, str) or not cfg.db_path.strip():
        raise ValueError("db_path must be a non-empty string")

    for name, tok in (("staking_token", cfg.staking_token), ("distribution_token", cfg.distribution_token)):
        if not isinstance(tok, str) or not tok.strip():
            raise ValueError(f"{name} must be a non-empty string")

    if not isinstance(cfg.owner, str) or not cfg.owner.strip():
        raise ValueError("owner must be a non-empty string")

    if int(cfg.max_unlock_schedules) <= 0:
        raise ValueError(f"max_unlock_schedules must be > 0; got: {cfg.max_unlock_schedules}")

    if int(cfg.api_port) <= 0 or int(cfg.api_port) > 65535:
        raise ValueError(f"api_port must be 1..65535; got: {cfg.api_port}")

    if str(cfg.log_level or "").strip().upper() not in _ALLOWED_LOG_LEVELS:
        raise ValueError(f"log_level must be one of {_ALLOWED_LOG_LEVELS}; got: {cfg.log_level!r}")

    if cfg.owner_pubkey:
        try:
            normalize_pubkey(cfg.owner_pubkey)
        except ValueError as e:
            raise ValueError(f"owner_pubkey must be an ed25519 public key: {e}") from e


def default_geyser_config() -> GeyserConfig:
    return GeyserConfig(
        instance_id="geyser-dev",
        # Without an explicit config file the runtime must not drop into a
        # permissive development posture.
        mode="prod",
        db_path="./data/geyser.db",
        staking_token=DEFAULT_STAKING_TOKEN,
        distribution_token=DEFAULT_DISTRIBUTION_TOKEN,
        owner="owner",
        max_unlock_schedules=DEFAULT_MAX_UNLOCK_SCHEDULES,
        api_host="0.0.0.0",
        api_port=8000,
        log_level="INFO",
    )


def geyser_config_from_json(raw: Json) -> GeyserConfig:
    if not isinstance(raw, dict):
        raise ValueError("geyser config must be a JSON object")

    d = default_geyser_config()
    cfg = GeyserConfig(
        instance_id=_as_str(raw.get("instance_id"), d.instance_id),
        mode=_as_str(raw.get("mode"), d.mode).strip().lower(),
        db_path=_as_str(raw.get("db_path"), d.db_path),
        staking_token=_as_str(raw.get("staking_token"), d.staking_token),
        distribution_token=_as_str(raw.get("distribution_token"), d.distribution_token),
        owner=_as_str(raw.get("owner"), d.owner),
        max_unlock_schedules=_as_int(raw.get("max_unlock_schedules"), d.max_unlock_schedules),
        api_host=_as_str(raw.get("api_host"), d.api_host),
        api_port=_as_int(raw.get("api_port"), d.api_port),
        log_level=_as_str(raw.get("log_level"), d.log_level).strip().upper(),
        owner_pubkey=str(raw.get("owner_pubkey") or "").strip(),
    )
    validate_geyser_config(cfg)
    return cfg


def read_geyser_config_file(path: str) -> GeyserConfig:
    raw = json.loads(Path(path).read_text(encoding="utf-8"))
    return geyser_config_from_json(raw)


def load_geyser_config(*, config_path: Optional[str] = None) -> GeyserConfig:
    p = config_path or os.environ.get("GEYSER_CONFIG_PATH")
    if p:
        return read_geyser_config_file(p)

    cfg = default_geyser_config()
    validate_geyser_config(cfg)
    return cfg


def apply_geyser_config_to_env(cfg: GeyserConfig) -> None:
    validate_geyser_config(cfg)
    os.environ["GEYSER_INSTANCE_ID"] = cfg.instance_id
    os.environ["GEYSER_MODE"] = (cfg.mode or "prod").strip().lower()
    os.environ["GEYSER_DB_PATH"] = cfg.db_path
    os.environ["GEYSER_LOG_LEVEL"] = cfg.log_level


__all__ = [
    "GeyserConfig",
    "apply_geyser_config_to_env",
    "default_geyser_config",
    "geyser_config_from_json",
    "load_geyser_config",
    "read_geyser_config_file",
    "validate_geyser_config",
]
