"""External adapters for the test-n-vac session harness.

This package contains all external dependencies (boto3 clients for SQS,
EventBridge and STS) and provides implementations of the core port
interfaces.

Adapter Organization:

- aws/: boto3-backed messaging, routing and identity adapters
"""
