"""Test session facade.

A TestSessionClient is what a test suite holds. It wires the session's
components together around one freshly generated SessionIdentity and
exposes the lifecycle operations.

Typical use::

    client = TestSessionClient(config, messaging, routing, identity_port)
    await client.create_test_architecture()
    try:
        await client.fire_event({"orderId": 1}, "OrderCreated")
        messages = await client.get_messages_from_sqs()
    finally:
        await client.destroy_test_architecture()
"""

import logging
from collections.abc import Callable
from typing import Any

from .collector import DEFAULT_ATTEMPTS, DEFAULT_WAIT_TIME_SECONDS, MessageCollector
from .emitter import EventEmitter
from .errors import SessionNotProvisionedError
from .models import InboundMessage, SessionIdentity, TestSessionConfig
from .ports import EventRoutingPort, IdentityPort, MessagingPort, SessionPort
from .prober import ReadinessProber
from .provisioner import ArchitectureProvisioner
from .purger import QueuePurger

logger = logging.getLogger(__name__)


class TestSessionClient(SessionPort):
    """Implements the session lifecycle for one test run.

    Not safe for concurrent use: inbox reads are destructive, so only one
    consumer should read from a session at a time.
    """

    __test__ = False

    def __init__(
        self,
        config: TestSessionConfig,
        messaging: MessagingPort,
        routing: EventRoutingPort,
        identity_port: IdentityPort,
    ):
        self.config = config
        self._identity = SessionIdentity.generate(config.service_name)

        self._emitter = EventEmitter(routing, config.service_source, config.bus_name)
        self._collector = MessageCollector(messaging, max_messages=config.receive_max_messages)
        self._purger = QueuePurger(messaging, settle_seconds=config.purge_settle_seconds)
        self._prober = ReadinessProber(
            self._emitter,
            self._collector,
            self._identity.probe_detail_type,
            poll_wait_seconds=config.probe_poll_wait_seconds,
            interval_seconds=config.probe_interval_seconds,
        )
        self._provisioner = ArchitectureProvisioner(
            config,
            self._identity,
            messaging,
            routing,
            identity_port,
            self._prober,
            self._purger,
        )

    async def __aenter__(self) -> "TestSessionClient":
        """Provision on entry."""
        await self.create_test_architecture()
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        """Tear down on exit."""
        await self.destroy_test_architecture()

    @property
    def identity(self) -> SessionIdentity:
        """Names of this session's resources."""
        return self._identity

    @property
    def queue_url(self) -> str | None:
        """URL of the session inbox, or None when not provisioned."""
        handle = self._provisioner.handle
        return handle.queue_url if handle is not None else None

    @property
    def event_pattern(self) -> dict[str, list[str]]:
        """The filter the session's rule matches on."""
        return self._provisioner.event_pattern

    async def create_test_architecture(self) -> None:
        """Create the inbox, rule and target and wait until events flow."""
        await self._provisioner.create()

    async def destroy_test_architecture(self) -> None:
        """Tear down the architecture. Raises TeardownError on leaks."""
        await self._provisioner.destroy()

    async def fire_event(self, event: Any, detail_type: str) -> None:
        """Publish one event with the session's source."""
        await self._emitter.fire_event(event, detail_type)

    async def get_messages_from_sqs(
        self,
        wait_time_seconds: int = DEFAULT_WAIT_TIME_SECONDS,
        attempts: int = DEFAULT_ATTEMPTS,
    ) -> list[InboundMessage]:
        """Poll the inbox and return decoded messages in delivery order."""
        return await self._collector.get_messages(
            self._require_queue_url(), wait_time_seconds, attempts
        )

    async def wait_for_event(
        self,
        predicate: Callable[[InboundMessage], bool],
        wait_time_seconds: int = DEFAULT_WAIT_TIME_SECONDS,
        attempts: int = DEFAULT_ATTEMPTS,
    ) -> InboundMessage:
        """Poll until a message satisfying `predicate` arrives and return it.

        Use this instead of relying on delivery order when several events
        are expected; messages that do not match are consumed and logged.
        """
        match, skipped = await self._collector.wait_for_message(
            self._require_queue_url(), predicate, wait_time_seconds, attempts
        )
        if skipped:
            logger.debug(f"Skipped {len(skipped)} non-matching message(s)")
        return match

    def _require_queue_url(self) -> str:
        queue_url = self.queue_url
        if queue_url is None:
            raise SessionNotProvisionedError(
                "No inbox provisioned; call create_test_architecture() first"
            )
        return queue_url
