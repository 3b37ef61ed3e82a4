"""AWS adapters backing a test session.

Implementations of the driven ports on top of boto3:
- SQS (MessagingPort)
- EventBridge (EventRoutingPort)
- STS (IdentityPort)
"""

from .client import create_boto_client
from .eventbridge import EventBridgeRoutingAdapter
from .sqs import SQSMessagingAdapter
from .sts import STSIdentityAdapter

__all__ = [
    "EventBridgeRoutingAdapter",
    "SQSMessagingAdapter",
    "STSIdentityAdapter",
    "create_boto_client",
]
