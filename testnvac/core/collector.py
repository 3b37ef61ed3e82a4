"""Polling the inbox for messages.

Receives are strictly sequential long polls. The bound on waiting is
attempts x wait_time_seconds, never a wall clock.
"""

import json
import logging
from collections.abc import Callable

from .errors import MessageDecodeError, NoMessagesError
from .models import InboundMessage, ReceivedMessage
from .ports import MessagingPort

logger = logging.getLogger(__name__)

DEFAULT_WAIT_TIME_SECONDS = 20
DEFAULT_ATTEMPTS = 4
MAX_WAIT_TIME_SECONDS = 20


def _validate_poll_args(wait_time_seconds: int, attempts: int) -> None:
    if attempts < 1:
        raise ValueError(f"attempts must be at least 1, got {attempts}")
    if not 0 <= wait_time_seconds <= MAX_WAIT_TIME_SECONDS:
        raise ValueError(
            f"wait_time_seconds must be between 0 and {MAX_WAIT_TIME_SECONDS}, "
            f"got {wait_time_seconds}"
        )


def decode_message(message: ReceivedMessage) -> InboundMessage:
    """Decode a message body as JSON.

    Raises:
        MessageDecodeError: If the body is not valid JSON.
    """
    try:
        return json.loads(message.body)
    except (TypeError, ValueError) as e:
        raise MessageDecodeError(message.message_id, message.body) from e


class MessageCollector:
    """Reads and acknowledges messages from a session inbox."""

    def __init__(self, messaging: MessagingPort, max_messages: int = 10):
        self.messaging = messaging
        self.max_messages = max_messages

    async def get_messages(
        self,
        queue_url: str,
        wait_time_seconds: int = DEFAULT_WAIT_TIME_SECONDS,
        attempts: int = DEFAULT_ATTEMPTS,
    ) -> list[InboundMessage]:
        """Poll until a receive returns something, up to `attempts` times.

        Messages are returned in the order the backend delivered them,
        without reordering or deduplication.

        Args:
            queue_url: Inbox to read.
            wait_time_seconds: Long-poll wait for each receive (0-20).
            attempts: Maximum number of receive calls.

        Returns:
            Decoded message bodies.

        Raises:
            NoMessagesError: If every attempt came back empty.
            MessageDecodeError: If a body is not valid JSON.
            ValueError: If the arguments are out of range.
        """
        _validate_poll_args(wait_time_seconds, attempts)

        for attempt in range(1, attempts + 1):
            received = await self._receive(queue_url, wait_time_seconds)
            if received:
                decoded = [decode_message(message) for message in received]
                await self._acknowledge(queue_url, received)
                logger.debug(f"Received {len(decoded)} message(s) on attempt {attempt}")
                return decoded

            if attempt < attempts:
                logger.info(
                    f"No events found in SQS queue. Trying again... Attempt: {attempt}"
                )

        raise NoMessagesError(attempts)

    async def wait_for_message(
        self,
        queue_url: str,
        predicate: Callable[[InboundMessage], bool],
        wait_time_seconds: int = DEFAULT_WAIT_TIME_SECONDS,
        attempts: int = DEFAULT_ATTEMPTS,
    ) -> tuple[InboundMessage, list[InboundMessage]]:
        """Poll until a decoded message satisfies `predicate`.

        Every receive call counts as one attempt, empty or not.

        Returns:
            Tuple of (matching message, messages seen before it that did
            not match). Messages after the match in the same batch are
            included in the second element too.

        Raises:
            NoMessagesError: If no matching message arrived in time.
            MessageDecodeError: If a body is not valid JSON.
        """
        _validate_poll_args(wait_time_seconds, attempts)

        skipped: list[InboundMessage] = []
        for attempt in range(1, attempts + 1):
            received = await self._receive(queue_url, wait_time_seconds)
            if not received:
                continue

            decoded = [decode_message(message) for message in received]
            # A raising predicate leaves the batch unacknowledged
            match_index = next(
                (i for i, body in enumerate(decoded) if predicate(body)), None
            )
            await self._acknowledge(queue_url, received)

            if match_index is None:
                skipped.extend(decoded)
                logger.info(
                    f"{len(decoded)} message(s) did not match. Trying again... Attempt: {attempt}"
                )
                continue

            skipped.extend(decoded[:match_index])
            skipped.extend(decoded[match_index + 1:])
            return decoded[match_index], skipped

        raise NoMessagesError(attempts)

    async def _receive(self, queue_url: str, wait_time_seconds: int) -> list[ReceivedMessage]:
        try:
            return await self.messaging.receive_messages(
                queue_url, wait_time_seconds, self.max_messages
            )
        except Exception as e:
            logger.error(f"Error in get_messages while checking SQS queue: {e}", exc_info=True)
            raise

    async def _acknowledge(self, queue_url: str, received: list[ReceivedMessage]) -> None:
        await self.messaging.delete_messages(
            queue_url, [message.receipt_handle for message in received]
        )
