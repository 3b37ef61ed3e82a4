"""Fake implementations of core ports for testing.

These in-memory implementations allow core domain logic to be tested
without AWS:

- FakeMessagingPort: In-memory queues with receive/purge/delete tracking
- FakeEventRoutingPort: Rules and targets that deliver into FakeMessagingPort
- FakeIdentityPort: Canned account id
"""

from .identity import FakeIdentityPort
from .messaging import FakeMessagingPort
from .routing import FakeEventRoutingPort

__all__ = [
    "FakeEventRoutingPort",
    "FakeIdentityPort",
    "FakeMessagingPort",
]
