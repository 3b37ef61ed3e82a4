"""EventBridge routing adapter.

Implements EventRoutingPort with rules, targets and PutEvents on a
named event bus.
"""

import logging
from collections.abc import Sequence
from typing import Any

from testnvac.core.models import EventEntry, PublishResult
from testnvac.core.ports import EventRoutingPort

from .client import BotoAdapter

logger = logging.getLogger(__name__)

# PutEvents accepts at most 10 entries per call
PUT_EVENTS_BATCH_SIZE = 10


def _format_failures(entries: list[dict[str, Any]], code_key: str, message_key: str) -> str:
    return "; ".join(
        f"{entry.get(code_key, 'Unknown')}: {entry.get(message_key, '')}".strip()
        for entry in entries
    )


class EventBridgeRoutingAdapter(BotoAdapter, EventRoutingPort):
    """EventBridge-backed rules, targets and publishing."""

    async def put_rule(
        self,
        name: str,
        event_pattern: str,
        bus_name: str,
        tags: dict[str, str],
    ) -> str:
        """Create an enabled rule. Returns the rule ARN."""
        response = await self._call(
            "put_rule",
            Name=name,
            EventPattern=event_pattern,
            EventBusName=bus_name,
            State="ENABLED",
            Tags=[{"Key": key, "Value": value} for key, value in tags.items()],
        )
        return response["RuleArn"]

    async def put_target(
        self,
        rule_name: str,
        bus_name: str,
        target_id: str,
        arn: str,
        input_path: str | None = None,
    ) -> None:
        """Attach a target to the rule.

        Raises:
            RuntimeError: If EventBridge reports the target as failed.
        """
        target: dict[str, Any] = {"Id": target_id, "Arn": arn}
        if input_path:
            target["InputPath"] = input_path

        response = await self._call(
            "put_targets",
            Rule=rule_name,
            EventBusName=bus_name,
            Targets=[target],
        )
        if response.get("FailedEntryCount", 0):
            reasons = _format_failures(
                response.get("FailedEntries", []), "ErrorCode", "ErrorMessage"
            )
            raise RuntimeError(f"Target {target_id} rejected: {reasons}")

    async def remove_target(self, rule_name: str, bus_name: str, target_id: str) -> None:
        """Detach a target from the rule.

        Raises:
            RuntimeError: If EventBridge reports the removal as failed.
        """
        response = await self._call(
            "remove_targets",
            Rule=rule_name,
            EventBusName=bus_name,
            Ids=[target_id],
        )
        if response.get("FailedEntryCount", 0):
            reasons = _format_failures(
                response.get("FailedEntries", []), "ErrorCode", "ErrorMessage"
            )
            raise RuntimeError(f"Target {target_id} could not be removed: {reasons}")

    async def delete_rule(self, name: str, bus_name: str) -> None:
        """Delete the rule."""
        await self._call("delete_rule", Name=name, EventBusName=bus_name)

    async def publish(self, entries: Sequence[EventEntry]) -> PublishResult:
        """Publish entries via PutEvents, ten at a time."""
        failed_count = 0
        event_ids: list[str] = []
        errors: list[str] = []

        for start in range(0, len(entries), PUT_EVENTS_BATCH_SIZE):
            batch = entries[start:start + PUT_EVENTS_BATCH_SIZE]
            response = await self._call(
                "put_events",
                Entries=[
                    {
                        "Source": entry.source,
                        "DetailType": entry.detail_type,
                        "Detail": entry.detail,
                        "EventBusName": entry.bus_name,
                    }
                    for entry in batch
                ],
            )
            failed_count += response.get("FailedEntryCount", 0)
            for result in response.get("Entries", []):
                if "EventId" in result:
                    event_ids.append(result["EventId"])
                elif "ErrorCode" in result:
                    errors.append(f"{result['ErrorCode']}: {result.get('ErrorMessage', '')}".strip())

        return PublishResult(
            failed_entry_count=failed_count,
            event_ids=tuple(event_ids),
            errors=tuple(errors),
        )
