"""Core domain logic for the test-n-vac session harness.

This package contains zero external dependencies and represents
the pure session lifecycle logic. All cloud integrations are handled
by the adapters package.
"""

from .errors import (
    IdentityResolutionError,
    MessageDecodeError,
    NoMessagesError,
    ProvisioningError,
    PublishError,
    PurgeError,
    ReadinessTimeoutError,
    SessionNotProvisionedError,
    TeardownError,
    TestNVacError,
)
from .models import (
    EventEntry,
    InboundMessage,
    PublishResult,
    ReceivedMessage,
    ResourceHandle,
    SessionIdentity,
    TeardownFailure,
    TestSessionConfig,
)
from .session import TestSessionClient

__all__ = [
    "EventEntry",
    "IdentityResolutionError",
    "InboundMessage",
    "MessageDecodeError",
    "NoMessagesError",
    "ProvisioningError",
    "PublishError",
    "PublishResult",
    "PurgeError",
    "ReadinessTimeoutError",
    "ReceivedMessage",
    "ResourceHandle",
    "SessionIdentity",
    "SessionNotProvisionedError",
    "TeardownError",
    "TeardownFailure",
    "TestNVacError",
    "TestSessionClient",
    "TestSessionConfig",
]
