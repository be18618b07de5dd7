"""Pytest configuration and fixtures."""

import sys
from pathlib import Path

import pytest

# Add src to path for imports
src_path = Path(__file__).parent.parent / "src"
sys.path.insert(0, str(src_path))

# Add tests to path for sqs_mock imports
tests_path = Path(__file__).parent
sys.path.insert(0, str(tests_path))

from sqs_controller.cloud import SQSCloud  # noqa: E402
from sqs_mock import MockSQSClient  # noqa: E402


@pytest.fixture
def sqs_client() -> MockSQSClient:
    """Fresh in-memory SQS client."""
    return MockSQSClient()


@pytest.fixture
def cloud(sqs_client: MockSQSClient) -> SQSCloud:
    """SQSCloud backed by the in-memory client."""
    return SQSCloud(sqs_client)
