"""Creating and destroying the ephemeral test architecture.

The inbox, rule and target are treated as one unit. Creation runs the
steps in order and rolls back whatever it created if a later step
fails. Destruction attempts every step even when an earlier one fails.
"""

import asyncio
import json
import logging

from .errors import (
    IdentityResolutionError,
    ProvisioningError,
    TeardownError,
)
from .models import (
    ResourceHandle,
    SessionIdentity,
    TeardownFailure,
    TestSessionConfig,
    build_event_pattern,
    build_queue_policy,
    queue_arn_for,
)
from .ports import EventRoutingPort, IdentityPort, MessagingPort
from .prober import ReadinessProber
from .purger import QueuePurger

logger = logging.getLogger(__name__)


class ArchitectureProvisioner:
    """Owns the lifecycle of one session's inbox, rule and target."""

    def __init__(
        self,
        config: TestSessionConfig,
        identity: SessionIdentity,
        messaging: MessagingPort,
        routing: EventRoutingPort,
        identity_port: IdentityPort,
        prober: ReadinessProber,
        purger: QueuePurger,
    ):
        self.config = config
        self.identity = identity
        self.messaging = messaging
        self.routing = routing
        self.identity_port = identity_port
        self.prober = prober
        self.purger = purger
        self.handle: ResourceHandle | None = None
        self._create_attempted = False

    @property
    def event_pattern(self) -> dict[str, list[str]]:
        """The filter the session's rule is created with."""
        return build_event_pattern(
            self.config.service_source,
            self.identity.probe_detail_type,
            self.config.detail_types,
        )

    async def create(self) -> ResourceHandle:
        """Provision the architecture and wait until it delivers.

        Steps: resolve account, create inbox, create rule, create target,
        wait for the rule to go live, purge probe residue.

        Returns:
            The ResourceHandle of the live architecture.

        Raises:
            IdentityResolutionError: If the account id cannot be resolved.
            ProvisioningError: If a create step fails, or create() was
                already called on this provisioner.
            ReadinessTimeoutError: If the rule never delivered a probe.
            PurgeError: If the inbox could not be purged.
        """
        if self._create_attempted:
            raise ProvisioningError(
                "create() can only be called once per session; construct a new client",
                step="create",
            )
        self._create_attempted = True

        account_id = await self._resolve_account_id()

        try:
            await self._create_queue(account_id)
            if self.config.queue_create_settle_seconds > 0:
                await asyncio.sleep(self.config.queue_create_settle_seconds)
            await self._create_rule()
            await self._create_target()

            assert self.handle is not None and self.handle.queue_url is not None
            await self.prober.wait_for_rule(
                self.handle.queue_url, self.config.readiness_timeout_seconds
            )
            await self.purger.purge(self.handle.queue_url)
        except BaseException:
            # Cancellation (Ctrl-C, test timeouts) must not leak resources
            await asyncio.shield(self._rollback())
            raise

        logger.info(f"Test architecture ready: {self.identity.queue_name}")
        return self.handle

    async def destroy(self) -> None:
        """Remove target, rule and inbox.

        Every step is attempted regardless of earlier failures. Resources
        that could not be removed stay on the handle so destroy() can be
        called again.

        Raises:
            TeardownError: If any step failed, listing every leaked resource.
        """
        if self.handle is None:
            logger.warning("destroy() called with no provisioned architecture")
            return

        failures = await self._teardown()
        if failures:
            raise TeardownError(failures)

    async def _resolve_account_id(self) -> str:
        try:
            account_id = await self.identity_port.get_caller_account_id()
        except Exception as e:
            logger.error(
                f"Error in create_test_architecture while getting accountId: {e}",
                exc_info=True,
            )
            raise IdentityResolutionError("Could not resolve caller account id") from e

        if not account_id:
            raise IdentityResolutionError("Identity backend returned an empty account id")
        return account_id

    async def _create_queue(self, account_id: str) -> None:
        queue_name = self.identity.queue_name
        queue_arn = queue_arn_for(self.config.region, account_id, queue_name)
        policy = json.dumps(build_queue_policy(queue_arn))

        logger.info(f"Creating testing queue: {queue_name}")
        try:
            queue_url = await self.messaging.create_queue(queue_name, policy, self.config.tags)
        except Exception as e:
            logger.error(
                f"Error in create_test_architecture while creating testing queue: {e}",
                exc_info=True,
            )
            raise ProvisioningError(
                f"Failed to create queue {queue_name}", step="queue", resource_name=queue_name
            ) from e

        self.handle = ResourceHandle(queue_url=queue_url, queue_arn=queue_arn)

    async def _create_rule(self) -> None:
        assert self.handle is not None
        rule_name = self.identity.rule_name

        logger.info(f"Creating testing rule: {rule_name}")
        try:
            await self.routing.put_rule(
                rule_name,
                json.dumps(self.event_pattern),
                self.config.bus_name,
                self.config.tags,
            )
        except Exception as e:
            logger.error(
                f"Error in create_test_architecture while creating testing rule: {e}",
                exc_info=True,
            )
            raise ProvisioningError(
                f"Failed to create rule {rule_name}", step="rule", resource_name=rule_name
            ) from e

        self.handle.rule_created = True

    async def _create_target(self) -> None:
        assert self.handle is not None
        target_id = self.identity.target_id

        logger.info(f"Creating testing target: {target_id}")
        try:
            await self.routing.put_target(
                self.identity.rule_name,
                self.config.bus_name,
                target_id,
                self.handle.queue_arn,
                input_path=self.config.target_input_path,
            )
        except Exception as e:
            logger.error(
                f"Error in create_test_architecture while creating testing target: {e}",
                exc_info=True,
            )
            raise ProvisioningError(
                f"Failed to create target {target_id}", step="target", resource_name=target_id
            ) from e

        self.handle.target_created = True

    async def _rollback(self) -> None:
        if self.handle is None:
            return

        logger.warning("Provisioning failed, rolling back created resources")
        failures = await self._teardown()
        if failures:
            logger.error(
                "Rollback incomplete; the original provisioning error is re-raised. "
                f"Leaked: {', '.join(f.resource_name for f in failures)}"
            )

    async def _teardown(self) -> list[TeardownFailure]:
        assert self.handle is not None
        handle = self.handle
        bus_name = self.config.bus_name
        failures: list[TeardownFailure] = []

        if handle.target_created:
            target_id = self.identity.target_id
            logger.info(f"Destroying testing target: {target_id}")
            try:
                await self.routing.remove_target(self.identity.rule_name, bus_name, target_id)
                handle.target_created = False
            except Exception as e:
                failures.append(self._teardown_failed("target", target_id, e))

        if handle.rule_created:
            rule_name = self.identity.rule_name
            logger.info(f"Destroying testing rule: {rule_name}")
            try:
                await self.routing.delete_rule(rule_name, bus_name)
                handle.rule_created = False
            except Exception as e:
                failures.append(self._teardown_failed("rule", rule_name, e))

        if handle.queue_url is not None:
            queue_name = self.identity.queue_name
            logger.info(f"Destroying testing queue: {queue_name}")
            try:
                await self.messaging.delete_queue(handle.queue_url)
                handle.queue_url = None
            except Exception as e:
                failures.append(self._teardown_failed("queue", queue_name, e))

        if handle.is_empty:
            self.handle = None
        return failures

    def _teardown_failed(self, kind: str, name: str, error: Exception) -> TeardownFailure:
        logger.error(
            f"Error in destroy_test_architecture while destroying testing {kind}: {error}. "
            f"Remove {kind} {name!r} (bus {self.config.bus_name!r}, "
            f"region {self.config.region!r}) manually.",
            exc_info=True,
        )
        return TeardownFailure(resource_kind=kind, resource_name=name, error=error)
