"""SQS API Mock for unit and scenario testing.

This module provides an in-memory stand-in for the boto3 SQS client
so reconciliation can be tested without AWS connectivity.

Key Features:
- In-memory queue state (attributes, tags, ARN, URL)
- Provider quirks on demand: reordered policies, injected tags
- Error injection for testing failure scenarios
- Call recording for asserting on what the code under test did

Usage:
    from sqs_mock import MockSQSClient

    client = MockSQSClient()
    client.state.add_queue("orders", attributes={"MessageRetentionPeriod": "60"})
    cloud = SQSCloud(client)
"""

from .client import MockSQSClient, client_error
from .state import MockQueue, MockSQSState

__all__ = [
    "MockQueue",
    "MockSQSClient",
    "MockSQSState",
    "client_error",
]
