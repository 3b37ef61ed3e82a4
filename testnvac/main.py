"""Composition root for the test-n-vac session harness.

This module is the ONLY location that imports both core domain logic
and concrete adapter implementations. All wiring of dependencies
happens here.

Module Structure:
- Configuration loading via config module
- Adapter instantiation (one boto3 client per AWS service)
- Session client construction with injected adapters
- Smoke run entry point: create, fire, read back, destroy
"""

import asyncio
import json
import logging
import sys
from typing import Any

from testnvac.adapters.aws import (
    EventBridgeRoutingAdapter,
    SQSMessagingAdapter,
    STSIdentityAdapter,
    create_boto_client,
)
from testnvac.config import Settings, load_settings
from testnvac.core.errors import TestNVacError
from testnvac.core.models import InboundMessage
from testnvac.core.session import TestSessionClient


def configure_logging(log_level: str, log_format: str) -> None:
    """Configure harness logging.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL).
        log_format: Log format (json, text).
    """
    level = getattr(logging, log_level, logging.INFO)

    if log_format == "json":
        format_str = '{"time": "%(asctime)s", "level": "%(levelname)s", "message": "%(message)s"}'
    else:
        format_str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

    logging.basicConfig(
        level=level,
        format=format_str,
        handlers=[
            logging.StreamHandler(sys.stdout),
        ],
    )
    # botocore is chatty at DEBUG
    logging.getLogger("botocore").setLevel(max(level, logging.INFO))


def build_adapters(
    settings: Settings,
) -> tuple[SQSMessagingAdapter, EventBridgeRoutingAdapter, STSIdentityAdapter]:
    """Instantiate the AWS adapters for the configured region and profile."""
    def client(service_name: str) -> Any:
        return create_boto_client(
            service_name,
            region_name=settings.aws_region,
            profile_name=settings.aws_profile or None,
            max_attempts=settings.boto_max_attempts,
        )

    return (
        SQSMessagingAdapter(client("sqs")),
        EventBridgeRoutingAdapter(client("events")),
        STSIdentityAdapter(client("sts")),
    )


def build_session_client(settings: Settings | None = None) -> TestSessionClient:
    """Build a TestSessionClient wired to AWS.

    Args:
        settings: Harness settings. Loaded from the environment if omitted.

    Returns:
        A client with a fresh session identity, not yet provisioned.

    Raises:
        ValueError: If the session configuration is invalid.
    """
    settings = settings or load_settings()
    messaging, routing, identity_port = build_adapters(settings)
    return TestSessionClient(settings.session_config(), messaging, routing, identity_port)


def _is_smoke_event(message: InboundMessage, payload: dict[str, Any]) -> bool:
    # Envelope delivery nests the payload under "detail"
    if message == payload:
        return True
    return isinstance(message, dict) and message.get("detail") == payload


async def run_smoke(settings: Settings) -> InboundMessage:
    """Provision a session, round-trip one event and tear down.

    Returns:
        The message that carried the smoke payload back.

    Raises:
        TestNVacError: If any lifecycle step fails.
    """
    logger = logging.getLogger(__name__)
    client = build_session_client(settings)
    logger.info(
        f"Smoke run for {settings.service_name} on bus {settings.bus_name} "
        f"(token {client.identity.token})"
    )

    async with client:
        await client.fire_event(settings.smoke_payload, settings.smoke_detail_type)
        message = await client.wait_for_event(
            lambda m: _is_smoke_event(m, settings.smoke_payload),
            wait_time_seconds=settings.receive_wait_time_seconds,
            attempts=settings.receive_attempts,
        )

    logger.info("Smoke run succeeded")
    return message


def main() -> None:
    """Smoke run entry point.

    Exit codes:
        0: Event round-tripped and architecture torn down
        1: Configuration or lifecycle failure
        130: Interrupted by user (SIGINT/KeyboardInterrupt)
    """
    logger = logging.getLogger(__name__)
    try:
        settings = load_settings()
        configure_logging(settings.log_level, settings.log_format)
        message = asyncio.run(run_smoke(settings))
        print(json.dumps(message, indent=2, default=str))
    except KeyboardInterrupt:
        logger.warning("Smoke run interrupted by user (SIGINT)")
        sys.exit(130)
    except TestNVacError as e:
        logger.error(f"Smoke run failed: {e}", exc_info=True)
        sys.exit(1)
    except Exception as e:
        logger.error(f"Fatal error: {e}", exc_info=True)
        sys.exit(1)


if __name__ == "__main__":
    main()
