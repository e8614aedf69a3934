#!/usr/bin/env python3
"""Run the SafeQuake Telegram command bot (long polling).

Usage:
    python scripts/run_bot.py

Environment:
    CONFIG_PATH: Path to config file (default: config/config.yaml)
    TELEGRAM_BOT_TOKEN: Bot token when no config file is used
    LOG_LEVEL: Logging level (default: INFO)
"""

import logging
import os
import sys

from safequake.shell.config_loader import load_config
from safequake.shell.firestore_client import FirestoreClient, FirestoreConfig
from safequake.shell.telegram_bot import SafeQuakeBot

logging.basicConfig(
    level=getattr(logging, os.environ.get("LOG_LEVEL", "INFO").upper(), logging.INFO),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


def main() -> int:
    config = load_config()

    if not config.telegram_bot_token:
        logger.error("Telegram bot token not configured")
        return 1

    store = FirestoreClient(FirestoreConfig(
        database=config.firestore_database,
        collections=config.collections,
    ))
    SafeQuakeBot(config.telegram_bot_token, store).run()
    return 0


if __name__ == "__main__":
    sys.exit(main())
