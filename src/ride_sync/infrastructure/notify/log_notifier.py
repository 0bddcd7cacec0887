from __future__ import annotations

import logging

logger = logging.getLogger(__name__)


class LoggingNotifier:
    """Stands in for the OS notification centre when running headless."""

    async def schedule(self, title: str, body: str) -> None:
        logger.info("Local notification: %s - %s", title, body)
