#!/usr/bin/env python3
"""
liveviews - Main Entry Point

Runs the Telegram bot with the view runtime.
"""

import asyncio
import os
from pathlib import Path

# Load .env file (for local development)
from dotenv import load_dotenv
load_dotenv(Path.cwd() / ".env")

from liveviews.common.logging import setup_logging, get_logger

setup_logging(
    level=os.getenv("LOG_LEVEL"),
    log_file=os.getenv("LOG_FILE"),
    component="bot",
)

logger = get_logger(__name__)


async def run():
    """Start polling until interrupted."""
    logger.info("Starting liveviews bot...")

    from liveviews.modules.bot.routers.main import start_bot
    await start_bot()


def main():
    """Console script entry point."""
    asyncio.run(run())


if __name__ == "__main__":
    main()
