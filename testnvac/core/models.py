"""Domain models for the test-n-vac session harness.

All models in this module use only Python standard library types,
ensuring zero external dependencies in the core domain.
"""

import re
import secrets
import string
from dataclasses import dataclass, field
from typing import Any, TypeAlias

# Tag key stamped on every resource this library creates
LIBRARY_TAG = "test-n-vac"

TOKEN_ALPHABET = string.ascii_lowercase + string.digits
TOKEN_LENGTH = 13

# AWS name limits for the generated resources
MAX_QUEUE_NAME_LENGTH = 80
MAX_RULE_NAME_LENGTH = 64
MAX_TARGET_ID_LENGTH = 64

_SERVICE_NAME_PATTERN = re.compile(r"^[A-Za-z0-9_-]+$")

# Decoded JSON body of a message read from the inbox. No schema is enforced.
InboundMessage: TypeAlias = Any


@dataclass(frozen=True)
class TestSessionConfig:
    """Immutable configuration for one test session.

    service_source is used both as the rule filter and as a resource tag,
    so it must not collide with sources emitted by unrelated producers.
    """

    __test__ = False

    service_name: str
    service_source: str
    bus_name: str
    region: str
    detail_types: tuple[str, ...] = ()
    readiness_timeout_seconds: float = 60.0
    probe_poll_wait_seconds: int = 2
    probe_interval_seconds: float = 1.0
    purge_settle_seconds: float = 3.0
    queue_create_settle_seconds: float = 1.0
    receive_max_messages: int = 10
    target_input_path: str | None = None

    def __post_init__(self) -> None:
        """Validate configuration invariants on creation."""
        for name in ("service_name", "service_source", "bus_name", "region"):
            value = getattr(self, name)
            if not value or not value.strip():
                raise ValueError(f"{name} must be a non-empty string")

        if not _SERVICE_NAME_PATTERN.match(self.service_name):
            raise ValueError(
                "service_name may only contain letters, digits, '-' and '_', "
                f"got {self.service_name!r}"
            )

        # "-tests-target-" is the longest infix against the tightest limit
        longest = len(self.service_name) + len("-tests-target-") + TOKEN_LENGTH
        if longest > MAX_TARGET_ID_LENGTH:
            max_len = MAX_TARGET_ID_LENGTH - len("-tests-target-") - TOKEN_LENGTH
            raise ValueError(
                f"service_name must be at most {max_len} characters, "
                f"got {len(self.service_name)}"
            )

        if isinstance(self.detail_types, str):
            raise ValueError(
                f"detail_types must be a sequence of strings, got the string {self.detail_types!r}"
            )
        if isinstance(self.detail_types, list):
            object.__setattr__(self, "detail_types", tuple(self.detail_types))
        if any(not dt or not dt.strip() for dt in self.detail_types):
            raise ValueError("detail_types must not contain empty strings")

        if self.readiness_timeout_seconds <= 0:
            raise ValueError(
                f"readiness_timeout_seconds must be positive, got {self.readiness_timeout_seconds}"
            )
        if not 0 <= self.probe_poll_wait_seconds <= 20:
            raise ValueError(
                f"probe_poll_wait_seconds must be between 0 and 20, got {self.probe_poll_wait_seconds}"
            )
        if self.probe_interval_seconds < 0:
            raise ValueError("probe_interval_seconds must be non-negative")
        if self.purge_settle_seconds < 0:
            raise ValueError("purge_settle_seconds must be non-negative")
        if self.queue_create_settle_seconds < 0:
            raise ValueError("queue_create_settle_seconds must be non-negative")
        if not 1 <= self.receive_max_messages <= 10:
            raise ValueError(
                f"receive_max_messages must be between 1 and 10, got {self.receive_max_messages}"
            )

    @property
    def tags(self) -> dict[str, str]:
        """Cost allocation tags applied to the inbox and the rule."""
        return {
            "serviceSource": self.service_source,
            LIBRARY_TAG: self.service_source,
        }


@dataclass(frozen=True)
class SessionIdentity:
    """Resource names derived once per session from a random token."""

    token: str
    queue_name: str
    rule_name: str
    target_id: str
    probe_detail_type: str

    @classmethod
    def generate(cls, service_name: str) -> "SessionIdentity":
        """Derive a fresh identity for a new session.

        Args:
            service_name: Service the test suite belongs to.

        Returns:
            SessionIdentity with a new 13 character base36 token.
        """
        token = "".join(secrets.choice(TOKEN_ALPHABET) for _ in range(TOKEN_LENGTH))
        return cls.from_token(service_name, token)

    @classmethod
    def from_token(cls, service_name: str, token: str) -> "SessionIdentity":
        """Derive the resource names for a known token."""
        return cls(
            token=token,
            queue_name=f"{service_name}-tests-queue-{token}",
            rule_name=f"{service_name}-tests-rule-{token}",
            target_id=f"{service_name}-tests-target-{token}",
            probe_detail_type=f"Test Event {token}",
        )


@dataclass
class ResourceHandle:
    """Addresses of the provisioned resources.

    Owned by the provisioner. Exists from inbox creation until every
    resource has been removed. queue_url is None once the inbox is gone.
    """

    queue_url: str | None
    queue_arn: str
    rule_created: bool = False
    target_created: bool = False

    @property
    def is_empty(self) -> bool:
        """True when none of the resources remain."""
        return self.queue_url is None and not self.rule_created and not self.target_created


@dataclass(frozen=True)
class ReceivedMessage:
    """A raw message as handed back by the messaging backend."""

    message_id: str
    receipt_handle: str
    body: str


@dataclass(frozen=True)
class EventEntry:
    """A single event to publish on a bus."""

    source: str
    detail_type: str
    detail: str  # serialized JSON
    bus_name: str


@dataclass(frozen=True)
class PublishResult:
    """Outcome of a publish call."""

    failed_entry_count: int
    event_ids: tuple[str, ...] = ()
    errors: tuple[str, ...] = ()  # "code: message" per failed entry

    def __post_init__(self) -> None:
        """Validate publish result invariants on creation."""
        if self.failed_entry_count < 0:
            raise ValueError(
                f"failed_entry_count must be non-negative, got {self.failed_entry_count}"
            )


@dataclass(frozen=True)
class TeardownFailure:
    """One teardown step that could not be completed."""

    resource_kind: str  # "target", "rule" or "queue"
    resource_name: str
    error: BaseException = field(compare=False)


def build_event_pattern(
    service_source: str,
    probe_detail_type: str,
    detail_types: tuple[str, ...] = (),
) -> dict[str, list[str]]:
    """Build the rule filter for a session.

    The detail-type clause is only present when detail types are
    configured. It then holds the probe detail type plus every configured
    type, each exactly once and in order.
    """
    pattern: dict[str, list[str]] = {"source": [service_source]}
    if detail_types:
        allowed = [probe_detail_type]
        for detail_type in detail_types:
            if detail_type not in allowed:
                allowed.append(detail_type)
        pattern["detail-type"] = allowed
    return pattern


def build_queue_policy(queue_arn: str) -> dict[str, Any]:
    """Access policy letting only EventBridge send into the inbox."""
    return {
        "Version": "2012-10-17",
        "Statement": [
            {
                "Sid": "AllowEventBridge",
                "Effect": "Allow",
                "Principal": {"Service": "events.amazonaws.com"},
                "Action": "SQS:SendMessage",
                "Resource": queue_arn,
            }
        ],
    }


def queue_arn_for(region: str, account_id: str, queue_name: str) -> str:
    """Address of an SQS queue."""
    return f"arn:aws:sqs:{region}:{account_id}:{queue_name}"
