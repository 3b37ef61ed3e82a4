"""Port interfaces for the test-n-vac session harness.

These abstract base classes define the boundaries between core
domain logic and external adapters. Implementations live in the
adapters/ package.

Port Interface Categories:

1. **Driven Ports** (core calls out to adapters)
   - MessagingPort: Durable inbox (create, receive, purge, delete)
   - EventRoutingPort: Pattern-matched rules, targets and publishing
   - IdentityPort: Caller account resolution for resource addresses

2. **Driving Ports** (test suites call into core)
   - SessionPort: The four lifecycle operations of a test session
"""

from abc import ABC, abstractmethod
from collections.abc import Sequence
from typing import Any

from .models import EventEntry, InboundMessage, PublishResult, ReceivedMessage


# ============================================================================
# DRIVEN PORTS (Core calls out to adapters)
# ============================================================================


class MessagingPort(ABC):
    """Port for the durable inbox backing a session.

    Adapters implementing this port wrap a queueing service (SQS) and
    hand back raw message bodies; decoding is the core's job.

    Implementations must handle:
    - Long polling (blocking up to wait_time_seconds)
    - Translating backend responses into ReceivedMessage objects
    """

    @abstractmethod
    async def create_queue(self, name: str, policy: str, tags: dict[str, str]) -> str:
        """Create a queue.

        Args:
            name: Queue name.
            policy: Serialized JSON access policy.
            tags: Cost allocation tags.

        Returns:
            The queue URL.

        Raises:
            Exception: If the queue cannot be created.
        """

    @abstractmethod
    async def delete_queue(self, queue_url: str) -> None:
        """Delete a queue.

        Raises:
            Exception: If the queue cannot be deleted.
        """

    @abstractmethod
    async def receive_messages(
        self, queue_url: str, wait_time_seconds: int, max_messages: int = 10
    ) -> list[ReceivedMessage]:
        """Long-poll the queue once.

        Args:
            queue_url: Queue to read from.
            wait_time_seconds: How long to block waiting for messages.
            max_messages: Upper bound on messages returned.

        Returns:
            Messages in the order the backend returned them.
            Empty list if nothing arrived before the wait elapsed.

        Raises:
            Exception: If the backend is unreachable.
        """

    @abstractmethod
    async def delete_messages(self, queue_url: str, receipt_handles: Sequence[str]) -> None:
        """Acknowledge received messages so they are not redelivered.

        Raises:
            Exception: If the backend rejects the deletion.
        """

    @abstractmethod
    async def purge_queue(self, queue_url: str) -> None:
        """Drop every message currently in the queue.

        Completion is eventually consistent; callers wait before reading.

        Raises:
            Exception: If the purge is rejected.
        """


class EventRoutingPort(ABC):
    """Port for the event bus: rules, targets and publishing.

    Rule propagation is asynchronous. A successful put_rule/put_target
    does not mean events are being delivered yet.
    """

    @abstractmethod
    async def put_rule(
        self,
        name: str,
        event_pattern: str,
        bus_name: str,
        tags: dict[str, str],
    ) -> str:
        """Create or update a rule.

        Args:
            name: Rule name.
            event_pattern: Serialized JSON event pattern.
            bus_name: Bus the rule belongs to.
            tags: Tags to apply to the rule.

        Returns:
            The rule ARN.

        Raises:
            Exception: If the rule cannot be created.
        """

    @abstractmethod
    async def put_target(
        self,
        rule_name: str,
        bus_name: str,
        target_id: str,
        arn: str,
        input_path: str | None = None,
    ) -> None:
        """Bind a rule to a target address.

        Args:
            rule_name: Rule to bind.
            bus_name: Bus the rule belongs to.
            target_id: Unique id of the target within the rule.
            arn: Address of the target resource.
            input_path: Optional JSONPath selecting what gets delivered.

        Raises:
            Exception: If the target is rejected.
        """

    @abstractmethod
    async def remove_target(self, rule_name: str, bus_name: str, target_id: str) -> None:
        """Unbind a target from a rule."""

    @abstractmethod
    async def delete_rule(self, name: str, bus_name: str) -> None:
        """Delete a rule. The rule must have no targets left."""

    @abstractmethod
    async def publish(self, entries: Sequence[EventEntry]) -> PublishResult:
        """Publish events to their buses.

        Returns:
            PublishResult. A non-zero failed_entry_count means some
            entries were rejected even though the call succeeded.

        Raises:
            Exception: If the call itself fails.
        """


class IdentityPort(ABC):
    """Port resolving who the caller is."""

    @abstractmethod
    async def get_caller_account_id(self) -> str:
        """Return the account id of the current credentials.

        Raises:
            Exception: If credentials are missing or invalid.
        """


# ============================================================================
# DRIVING PORTS (Test suites call into core)
# ============================================================================


class SessionPort(ABC):
    """Port exposing a test session's lifecycle to a test suite.

    Implementations live in the core (session.py).
    """

    @abstractmethod
    async def create_test_architecture(self) -> None:
        """Provision the inbox, rule and target and wait until they are live."""

    @abstractmethod
    async def destroy_test_architecture(self) -> None:
        """Tear down everything create_test_architecture provisioned."""

    @abstractmethod
    async def fire_event(self, event: Any, detail_type: str) -> None:
        """Publish one event tagged with the session's source."""

    @abstractmethod
    async def get_messages_from_sqs(
        self, wait_time_seconds: int = 20, attempts: int = 4
    ) -> list[InboundMessage]:
        """Poll the inbox and return decoded messages."""
