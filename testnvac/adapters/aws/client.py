"""boto3 client construction and async dispatch.

boto3 is blocking, so every call is pushed onto the loop's default
executor and awaited.
"""

import asyncio
import functools
import logging
from typing import Any

import boto3
from botocore.config import Config

logger = logging.getLogger(__name__)


def create_boto_client(
    service_name: str,
    region_name: str,
    profile_name: str | None = None,
    max_attempts: int = 3,
) -> Any:
    """Create a boto3 client with standard-mode retries.

    Credentials come from the default provider chain (environment first),
    or from the named profile when one is given.

    Args:
        service_name: AWS service, e.g. "sqs" or "events".
        region_name: Region to talk to.
        profile_name: Optional shared-config profile.
        max_attempts: Total attempts per call including retries.

    Returns:
        A boto3 low-level client.
    """
    session = boto3.session.Session(profile_name=profile_name or None, region_name=region_name)
    return session.client(
        service_name,
        config=Config(retries={"max_attempts": max_attempts, "mode": "standard"}),
    )


class BotoAdapter:
    """Base for adapters wrapping a single boto3 client."""

    def __init__(self, client: Any):
        self.client = client

    async def __aenter__(self) -> "BotoAdapter":
        """Async context manager entry."""
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        """Async context manager exit."""
        await self.close()

    async def close(self) -> None:
        """Close the underlying HTTP connection pool."""
        await self._call("close")

    async def _call(self, operation: str, **kwargs: Any) -> Any:
        loop = asyncio.get_running_loop()
        method = getattr(self.client, operation)
        return await loop.run_in_executor(None, functools.partial(method, **kwargs))
