"""Fake EventRoutingPort implementation for testing."""

import json
from collections.abc import Sequence
from datetime import UTC, datetime
from typing import Any

from testnvac.core.models import EventEntry, PublishResult
from testnvac.core.ports import EventRoutingPort

from .identity import DEFAULT_ACCOUNT_ID
from .messaging import FakeMessagingPort


class FakeEventRoutingPort(EventRoutingPort):
    """In-memory event bus for testing.

    Rules match on "source" and, when present, "detail-type". When linked
    to a FakeMessagingPort, matching events are delivered to the queues
    their targets point at.

    Rule propagation is simulated with live_after_publishes: nothing is
    delivered until that many publish calls have been made, counting the
    current one. None means rules never go live.
    """

    def __init__(
        self,
        messaging: FakeMessagingPort | None = None,
        live_after_publishes: int | None = 1,
        region: str = "us-east-1",
        account_id: str = DEFAULT_ACCOUNT_ID,
    ):
        """Initialize with an empty bus."""
        self.messaging = messaging
        self.live_after_publishes = live_after_publishes
        self.region = region
        self.account_id = account_id
        self.rules: dict[tuple[str, str], dict[str, Any]] = {}
        self.rule_tags: dict[tuple[str, str], dict[str, str]] = {}
        self.targets: dict[tuple[str, str], dict[str, tuple[str, str | None]]] = {}
        self.published: list[EventEntry] = []
        self.publish_call_count = 0
        self.delivered_count = 0
        self.removed_targets: list[str] = []
        self.deleted_rules: list[str] = []
        self.failing_operations: set[str] = set()
        self.fail_message: str = "Routing backend failed"
        self.reject_entries: bool = False

    def set_should_fail(self, operation: str, should_fail: bool = True) -> None:
        """Make a single operation (e.g. "put_target") fail."""
        if should_fail:
            self.failing_operations.add(operation)
        else:
            self.failing_operations.discard(operation)

    def _check(self, operation: str) -> None:
        if operation in self.failing_operations:
            raise RuntimeError(f"{self.fail_message}: {operation}")

    def published_of_type(self, detail_type: str) -> list[EventEntry]:
        """Published entries with the given detail type."""
        return [entry for entry in self.published if entry.detail_type == detail_type]

    async def put_rule(
        self,
        name: str,
        event_pattern: str,
        bus_name: str,
        tags: dict[str, str],
    ) -> str:
        """Store the rule's parsed pattern."""
        self._check("put_rule")
        self.rules[(bus_name, name)] = json.loads(event_pattern)
        self.rule_tags[(bus_name, name)] = dict(tags)
        self.targets.setdefault((bus_name, name), {})
        return f"arn:aws:events:{self.region}:{self.account_id}:rule/{bus_name}/{name}"

    async def put_target(
        self,
        rule_name: str,
        bus_name: str,
        target_id: str,
        arn: str,
        input_path: str | None = None,
    ) -> None:
        """Attach a target to an existing rule."""
        self._check("put_target")
        if (bus_name, rule_name) not in self.rules:
            raise RuntimeError(f"ResourceNotFoundException: Rule {rule_name} does not exist")
        if input_path not in (None, "$.detail"):
            raise ValueError(f"Unsupported input path in fake: {input_path}")
        self.targets[(bus_name, rule_name)][target_id] = (arn, input_path)

    async def remove_target(self, rule_name: str, bus_name: str, target_id: str) -> None:
        """Detach a target."""
        self._check("remove_target")
        targets = self.targets.get((bus_name, rule_name))
        if targets is None or target_id not in targets:
            raise RuntimeError(f"ResourceNotFoundException: Target {target_id} does not exist")
        del targets[target_id]
        self.removed_targets.append(target_id)

    async def delete_rule(self, name: str, bus_name: str) -> None:
        """Delete a rule that has no targets left."""
        self._check("delete_rule")
        if (bus_name, name) not in self.rules:
            raise RuntimeError(f"ResourceNotFoundException: Rule {name} does not exist")
        if self.targets.get((bus_name, name)):
            raise RuntimeError("ValidationException: Rule can't be deleted since it has targets.")
        del self.rules[(bus_name, name)]
        self.targets.pop((bus_name, name), None)
        self.rule_tags.pop((bus_name, name), None)
        self.deleted_rules.append(name)

    async def publish(self, entries: Sequence[EventEntry]) -> PublishResult:
        """Record entries and deliver them once rules are live."""
        self.publish_call_count += 1
        self._check("publish")

        if self.reject_entries:
            return PublishResult(
                failed_entry_count=len(entries),
                errors=tuple("InternalFailure: rejected" for _ in entries),
            )

        event_ids = []
        for entry in entries:
            self.published.append(entry)
            event_id = f"event-{len(self.published)}"
            event_ids.append(event_id)
            if self._is_live():
                self._route(entry, event_id)

        return PublishResult(failed_entry_count=0, event_ids=tuple(event_ids))

    def _is_live(self) -> bool:
        return (
            self.live_after_publishes is not None
            and self.publish_call_count >= self.live_after_publishes
        )

    def _route(self, entry: EventEntry, event_id: str) -> None:
        if self.messaging is None:
            return

        for (bus_name, rule_name), pattern in self.rules.items():
            if bus_name != entry.bus_name or not self._matches(pattern, entry):
                continue
            for arn, input_path in self.targets.get((bus_name, rule_name), {}).values():
                detail = json.loads(entry.detail)
                if input_path == "$.detail":
                    body = json.dumps(detail)
                else:
                    body = json.dumps(
                        {
                            "version": "0",
                            "id": event_id,
                            "detail-type": entry.detail_type,
                            "source": entry.source,
                            "account": self.account_id,
                            "time": datetime.now(UTC).strftime("%Y-%m-%dT%H:%M:%SZ"),
                            "region": self.region,
                            "resources": [],
                            "detail": detail,
                        }
                    )
                if self.messaging.deliver_to_arn(arn, body):
                    self.delivered_count += 1

    @staticmethod
    def _matches(pattern: dict[str, Any], entry: EventEntry) -> bool:
        if entry.source not in pattern.get("source", []):
            return False
        if "detail-type" in pattern and entry.detail_type not in pattern["detail-type"]:
            return False
        return True

    def reset(self) -> None:
        """Reset all rules, targets and tracking."""
        self.rules.clear()
        self.rule_tags.clear()
        self.targets.clear()
        self.published.clear()
        self.publish_call_count = 0
        self.delivered_count = 0
        self.removed_targets.clear()
        self.deleted_rules.clear()
        self.failing_operations.clear()
        self.reject_entries = False
