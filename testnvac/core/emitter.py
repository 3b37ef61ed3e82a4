"""Publishing test events onto the bus."""

import json
import logging
from typing import Any

from .errors import PublishError
from .models import EventEntry, PublishResult
from .ports import EventRoutingPort

logger = logging.getLogger(__name__)


class EventEmitter:
    """Publishes single events tagged with the session's source."""

    def __init__(self, routing: EventRoutingPort, service_source: str, bus_name: str):
        self.routing = routing
        self.service_source = service_source
        self.bus_name = bus_name

    async def fire_event(self, payload: Any, detail_type: str) -> PublishResult:
        """Serialize payload and publish it as one event.

        Args:
            payload: JSON-serializable event detail.
            detail_type: Detail type to tag the event with.

        Returns:
            PublishResult from the backend.

        Raises:
            PublishError: If the payload cannot be serialized, the backend
                call fails, or the backend rejects the entry.
        """
        try:
            detail = json.dumps(payload)
        except (TypeError, ValueError) as e:
            raise PublishError(f"Event payload is not JSON serializable: {e}") from e

        entry = EventEntry(
            source=self.service_source,
            detail_type=detail_type,
            detail=detail,
            bus_name=self.bus_name,
        )

        try:
            result = await self.routing.publish([entry])
        except Exception as e:
            logger.error(f"Error in fire_event while firing event: {e}", exc_info=True)
            raise PublishError(f"Failed to publish {detail_type!r} event to {self.bus_name}") from e

        if result.failed_entry_count:
            reasons = "; ".join(result.errors) or "unknown reason"
            logger.error(f"Event {detail_type!r} rejected by {self.bus_name}: {reasons}")
            raise PublishError(f"Bus {self.bus_name} rejected {detail_type!r} event: {reasons}")

        logger.debug(f"Fired {detail_type!r} event on {self.bus_name}")
        return result
