"""Entrypoint: python -m ride_sync"""
from __future__ import annotations

import asyncio
import logging

from ride_sync.config import settings
from ride_sync.runtime import lifespan

logger = logging.getLogger(__name__)


async def run() -> None:
    async with lifespan(settings) as runtime:
        logger.info(
            "Sync runtime up (user=%s, unread=%d)",
            settings.USER_ID or "guest",
            runtime.notifications.unread_count,
        )
        try:
            while True:
                await asyncio.sleep(3600)
        except asyncio.CancelledError:
            pass


def main() -> None:
    logging.basicConfig(
        level=settings.LOG_LEVEL,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    try:
        asyncio.run(run())
    except KeyboardInterrupt:
        pass


if __name__ == "__main__":
    main()
