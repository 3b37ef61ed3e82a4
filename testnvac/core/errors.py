"""Error taxonomy for test sessions.

Every failure surfaces to the calling test framework as one of these.
The originating backend exception is chained as ``__cause__``.
"""

from .models import TeardownFailure


class TestNVacError(Exception):
    """Base class for all session errors."""

    __test__ = False


class IdentityResolutionError(TestNVacError):
    """The caller's account id could not be resolved."""


class ProvisioningError(TestNVacError):
    """A create step (queue, rule or target) failed."""

    def __init__(self, message: str, step: str | None = None, resource_name: str | None = None):
        super().__init__(message)
        self.step = step
        self.resource_name = resource_name


class ReadinessTimeoutError(TestNVacError):
    """The rule never delivered a probe event within the timeout."""

    def __init__(self, timeout_seconds: float, attempts: int):
        super().__init__(
            f"Rule did not become ready within {timeout_seconds}s "
            f"({attempts} probe attempts)"
        )
        self.timeout_seconds = timeout_seconds
        self.attempts = attempts


class NoMessagesError(TestNVacError):
    """Every receive attempt came back empty."""

    def __init__(self, attempts: int):
        super().__init__(f"No events found in SQS queue after {attempts} attempts")
        self.attempts = attempts


class MessageDecodeError(TestNVacError):
    """A message body was not valid JSON."""

    def __init__(self, message_id: str, body: str):
        preview = body if len(body) <= 200 else body[:200] + "..."
        super().__init__(f"Message {message_id} has a non-JSON body: {preview!r}")
        self.message_id = message_id
        self.body = body


class PublishError(TestNVacError):
    """An event could not be published to the bus."""


class PurgeError(TestNVacError):
    """The inbox could not be purged."""


class TeardownError(TestNVacError):
    """One or more teardown steps failed; resources were leaked."""

    def __init__(self, failures: list[TeardownFailure]):
        names = ", ".join(f"{f.resource_kind} {f.resource_name}" for f in failures)
        super().__init__(f"Failed to destroy: {names}")
        self.failures = failures


class SessionNotProvisionedError(TestNVacError):
    """The operation needs an inbox but none has been created."""
