"""Clearing the inbox between provisioning and the test body."""

import asyncio
import logging

from .errors import PurgeError
from .ports import MessagingPort

logger = logging.getLogger(__name__)

DEFAULT_SETTLE_SECONDS = 3.0


class QueuePurger:
    """Purges an inbox and waits out the settle window.

    A purge is not immediately consistent with later receives, so
    purge() only returns once the settle interval has passed.
    """

    def __init__(self, messaging: MessagingPort, settle_seconds: float = DEFAULT_SETTLE_SECONDS):
        self.messaging = messaging
        self.settle_seconds = settle_seconds

    async def purge(self, queue_url: str) -> None:
        """Purge the queue and pause for the settle interval.

        Raises:
            PurgeError: If the backend rejects the purge.
        """
        logger.info(f"Purging testing queue: {queue_url}")
        try:
            await self.messaging.purge_queue(queue_url)
        except Exception as e:
            logger.error(f"Error while purging testing queue: {e}", exc_info=True)
            raise PurgeError(f"Failed to purge {queue_url}") from e

        if self.settle_seconds > 0:
            await asyncio.sleep(self.settle_seconds)
