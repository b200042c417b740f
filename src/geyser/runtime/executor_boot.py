# src/geyser/runtime/executor_boot.py

from __future__ import annotations

import os
from dataclasses import dataclass, replace
from typing import Optional

from geyser.runtime.config import GeyserConfig, load_geyser_config
from geyser.runtime.executor import GeyserExecutor


@dataclass
class ExecutorBootConfig:
    db_path: str
    config: GeyserConfig


def boot_config_from_env() -> ExecutorBootConfig:
    """GEYSER_CONFIG_PATH selects the config file; GEYSER_DB_PATH overrides its db_path."""
    cfg = load_geyser_config()
    db_path = (os.environ.get("GEYSER_DB_PATH") or "").strip() or cfg.db_path
    if db_path != cfg.db_path:
        cfg = replace(cfg, db_path=db_path)
    return ExecutorBootConfig(db_path=db_path, config=cfg)


def build_executor(cfg: Optional[ExecutorBootConfig] = None) -> GeyserExecutor:
    """
    Build a GeyserExecutor from an explicit boot config or, if omitted,
    from environment variables.
    """
    c = cfg or boot_config_from_env()
    return GeyserExecutor(db_path=c.db_path, config=c.config)
