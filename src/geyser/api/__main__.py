# src/geyser/api/__main__.py
from __future__ import annotations

import os

import uvicorn

from geyser.env import load_dotenv_if_present


def main() -> None:
    # Load .env early so GEYSER_* vars exist before anything reads them.
    load_dotenv_if_present()

    # Import after dotenv load (prevents "config read before env" surprises)
    from geyser.api.app import create_app
    from geyser.runtime.config import apply_geyser_config_to_env, load_geyser_config
    from geyser.runtime.event_log import configure_structured_logging

    cfg = load_geyser_config()
    apply_geyser_config_to_env(cfg)
    configure_structured_logging()

    host = os.getenv("GEYSER_API_HOST", cfg.api_host)
    port = int(os.getenv("GEYSER_API_PORT", str(cfg.api_port)))

    uvicorn.run(create_app(), host=host, port=port, log_level=cfg.log_level.lower())


if __name__ == "__main__":
    main()
