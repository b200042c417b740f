# src/geyser/env.py
from __future__ import annotations

import os
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

_LOADED = False


def load_dotenv_if_present(dotenv_path: Optional[str] = None) -> bool:
    """
    Best-effort .env loader.

    - Loads once per process.
    - Never overrides variables already set in the environment.
    - Path rules:
        1) If dotenv_path arg provided, use it.
        2) Else if GEYSER_DOTENV_PATH is set, use that.
        3) Else default to ".env" in current working directory.

    Returns True if a dotenv file was found AND loaded, else False.
    """
    global _LOADED
    if _LOADED:
        return False

    path_s = dotenv_path or os.getenv("GEYSER_DOTENV_PATH", ".env")
    path = Path(path_s).expanduser()

    if not path.is_file():
        _LOADED = True
        return False

    load_dotenv(dotenv_path=str(path), override=False)
    _LOADED = True
    return True


def reset_dotenv_state() -> None:
    global _LOADED
    _LOADED = False
