"""Detecting when a freshly created rule starts delivering.

The bus gives no synchronous "ready" signal after a rule and target are
created. The prober publishes reserved probe events and treats the
first one that lands in the inbox as proof the path is live.
"""

import asyncio
import logging
import math
import time
from collections.abc import Callable

from .collector import MessageCollector
from .emitter import EventEmitter
from .errors import NoMessagesError, ReadinessTimeoutError

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT_SECONDS = 60.0
DEFAULT_POLL_WAIT_SECONDS = 2
DEFAULT_INTERVAL_SECONDS = 1.0


class ReadinessProber:
    """Fires probe events until one is delivered or time runs out."""

    def __init__(
        self,
        emitter: EventEmitter,
        collector: MessageCollector,
        probe_detail_type: str,
        poll_wait_seconds: int = DEFAULT_POLL_WAIT_SECONDS,
        interval_seconds: float = DEFAULT_INTERVAL_SECONDS,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.emitter = emitter
        self.collector = collector
        self.probe_detail_type = probe_detail_type
        self.poll_wait_seconds = poll_wait_seconds
        self.interval_seconds = interval_seconds
        self.clock = clock

    def max_attempts(self, timeout_seconds: float) -> int:
        """Number of probes that fit in the timeout."""
        per_attempt = self.poll_wait_seconds + self.interval_seconds
        if per_attempt <= 0:
            return max(1, math.ceil(timeout_seconds))
        return max(1, math.ceil(timeout_seconds / per_attempt))

    async def wait_for_rule(
        self, queue_url: str, timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS
    ) -> int:
        """Block until a probe event reaches the inbox.

        Args:
            queue_url: The session inbox the rule targets.
            timeout_seconds: Overall wall-clock budget.

        Returns:
            Number of probes published before one was delivered.

        Raises:
            ReadinessTimeoutError: If no probe arrived in time.
            PublishError: If a probe could not be published.
        """
        max_attempts = self.max_attempts(timeout_seconds)
        started = self.clock()
        attempts = 0

        logger.info(
            f"Waiting up to {timeout_seconds}s for rule to deliver "
            f"(max {max_attempts} probes)"
        )

        while attempts < max_attempts and self.clock() - started < timeout_seconds:
            attempts += 1
            await self.emitter.fire_event(
                {"probe": self.probe_detail_type, "attempt": attempts},
                self.probe_detail_type,
            )

            try:
                await self.collector.get_messages(
                    queue_url, wait_time_seconds=self.poll_wait_seconds, attempts=1
                )
            except NoMessagesError:
                logger.debug(f"Probe {attempts} not delivered yet")
            else:
                logger.info(f"Rule is live after {attempts} probe(s)")
                return attempts

            if attempts < max_attempts and self.interval_seconds > 0:
                await asyncio.sleep(self.interval_seconds)

        logger.error(f"Rule not live after {attempts} probe(s) and {timeout_seconds}s")
        raise ReadinessTimeoutError(timeout_seconds, attempts)
