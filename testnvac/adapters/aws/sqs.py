"""SQS messaging adapter.

Implements MessagingPort on an SQS standard queue.
"""

import logging
from collections.abc import Sequence
from typing import Any

from testnvac.core.models import ReceivedMessage
from testnvac.core.ports import MessagingPort

from .client import BotoAdapter

logger = logging.getLogger(__name__)

# SQS caps batch deletes at 10 entries
DELETE_BATCH_SIZE = 10


class SQSMessagingAdapter(BotoAdapter, MessagingPort):
    """SQS-backed session inbox."""

    async def create_queue(self, name: str, policy: str, tags: dict[str, str]) -> str:
        """Create the queue with the given policy and tags. Returns its URL."""
        response = await self._call(
            "create_queue",
            QueueName=name,
            Attributes={"Policy": policy},
            tags=tags,
        )
        return response["QueueUrl"]

    async def delete_queue(self, queue_url: str) -> None:
        """Delete the queue."""
        await self._call("delete_queue", QueueUrl=queue_url)

    async def receive_messages(
        self, queue_url: str, wait_time_seconds: int, max_messages: int = 10
    ) -> list[ReceivedMessage]:
        """Long-poll the queue once."""
        response = await self._call(
            "receive_message",
            QueueUrl=queue_url,
            WaitTimeSeconds=wait_time_seconds,
            MaxNumberOfMessages=max_messages,
        )
        return [
            ReceivedMessage(
                message_id=message["MessageId"],
                receipt_handle=message["ReceiptHandle"],
                body=message["Body"],
            )
            for message in response.get("Messages", [])
        ]

    async def delete_messages(self, queue_url: str, receipt_handles: Sequence[str]) -> None:
        """Delete received messages in batches of ten.

        Raises:
            RuntimeError: If SQS reports any entry as failed.
        """
        failed: list[dict[str, Any]] = []
        for start in range(0, len(receipt_handles), DELETE_BATCH_SIZE):
            batch = receipt_handles[start:start + DELETE_BATCH_SIZE]
            response = await self._call(
                "delete_message_batch",
                QueueUrl=queue_url,
                Entries=[
                    {"Id": str(start + i), "ReceiptHandle": handle}
                    for i, handle in enumerate(batch)
                ],
            )
            failed.extend(response.get("Failed", []))

        if failed:
            reasons = "; ".join(
                f"{entry.get('Id')}: {entry.get('Code')} {entry.get('Message', '')}".strip()
                for entry in failed
            )
            raise RuntimeError(f"Failed to delete {len(failed)} message(s) from {queue_url}: {reasons}")

    async def purge_queue(self, queue_url: str) -> None:
        """Purge the queue. SQS allows one purge per queue per minute."""
        await self._call("purge_queue", QueueUrl=queue_url)
