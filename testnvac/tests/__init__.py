"""Test suite for the test-n-vac session harness.

Organized into three categories:

1. core/: Unit tests for core session logic
   - Minimal dependencies, fast execution
   - Uses in-memory fakes for ports

2. adapters/: Tests for the AWS adapters
   - boto3 clients replaced with mocks
   - Validates request shapes and response translation

3. fakes/: Port implementations for testing
   - In-memory implementations of MessagingPort, EventRoutingPort, IdentityPort
   - The fake bus routes matching events into the fake inbox
"""
