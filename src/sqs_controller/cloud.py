"""SQS control-plane access via boto3.

SQSCloud is the only module that talks to AWS. It exposes the handful of
calls the queue task needs and translates botocore failures into the
error taxonomy. A queue that does not exist is reported as None, never
as an error, so callers can tell "absent" from "broken".

No retry or backoff is layered on top of boto3; the client's own
transport defaults apply.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

import boto3
from botocore.config import Config as BotoConfig
from botocore.exceptions import BotoCoreError, ClientError

from .errors import ProviderReadError, RenderError
from .target import Target

if TYPE_CHECKING:
    from .config import Config
    from .sqs import SQSQueue

logger = logging.getLogger(__name__)

# Error codes SQS uses for a missing queue (query and JSON protocols)
QUEUE_NOT_FOUND_CODES = frozenset(
    {
        "AWS.SimpleQueueService.NonExistentQueue",
        "QueueDoesNotExist",
    }
)


def _error_code(error: ClientError) -> str:
    return error.response.get("Error", {}).get("Code", "")


def _is_not_found(error: ClientError) -> bool:
    return _error_code(error) in QUEUE_NOT_FOUND_CODES


class SQSCloud:
    """Thin wrapper around a boto3 SQS client."""

    def __init__(self, client: Any) -> None:
        """Initialize with an existing boto3 SQS client (or a compatible fake)."""
        self._client = client

    @classmethod
    def from_config(cls, config: Config) -> SQSCloud:
        """Build a client for the configured region and endpoint.

        Credentials come from the default boto3 chain (environment,
        profile, instance role); nothing is read here.
        """
        client = boto3.client(
            "sqs",
            config=BotoConfig(region_name=config.region),
            endpoint_url=config.endpoint_url,
        )
        logger.info(
            "SQS client created",
            extra={"region": config.region, "endpoint_url": config.endpoint_url},
        )
        return cls(client)

    @property
    def client(self) -> Any:
        return self._client

    def list_queue_urls(self, prefix: str, max_results: int) -> list[str]:
        """List queue URLs whose name starts with prefix.

        Raises:
            ProviderReadError: If the listing fails.
        """
        try:
            response = self._client.list_queues(
                QueueNamePrefix=prefix,
                MaxResults=max_results,
            )
        except (ClientError, BotoCoreError) as e:
            raise ProviderReadError(f"error listing SQS queues: {e}") from e
        if not response:
            return []
        return list(response.get("QueueUrls") or [])

    def get_queue_attributes(self, url: str, names: list[str]) -> dict[str, str] | None:
        """Fetch named attributes of one queue.

        Returns:
            Attribute mapping, or None if the queue does not exist.

        Raises:
            ProviderReadError: On any other failure.
        """
        try:
            response = self._client.get_queue_attributes(
                QueueUrl=url,
                AttributeNames=names,
            )
        except ClientError as e:
            if _is_not_found(e):
                return None
            raise ProviderReadError(f"error getting SQS queue attributes: {e}") from e
        except BotoCoreError as e:
            raise ProviderReadError(f"error getting SQS queue attributes: {e}") from e
        return dict(response.get("Attributes") or {})

    def list_queue_tags(self, url: str) -> dict[str, str] | None:
        """List tags of one queue.

        Returns:
            Tag mapping, or None if SQS reported no tags at all.

        Raises:
            ProviderReadError: If the call fails (including a vanished queue).
        """
        try:
            response = self._client.list_queue_tags(QueueUrl=url)
        except (ClientError, BotoCoreError) as e:
            raise ProviderReadError(f"error listing SQS queue tags: {e}") from e
        tags = response.get("Tags")
        if tags is None:
            return None
        return dict(tags)

    def create_queue(
        self,
        name: str,
        attributes: dict[str, str],
        tags: dict[str, str] | None,
    ) -> str:
        """Create a queue and return its URL.

        Raises:
            RenderError: If creation fails.
        """
        request: dict[str, Any] = {"QueueName": name, "Attributes": attributes}
        if tags:
            request["tags"] = tags
        try:
            response = self._client.create_queue(**request)
        except (ClientError, BotoCoreError) as e:
            raise RenderError(f"error creating SQS queue: {e}") from e
        return response["QueueUrl"]


class AWSAPITarget(Target):
    """Applies changes by calling the SQS API directly."""

    def __init__(self, cloud: SQSCloud) -> None:
        self.cloud = cloud

    def render(
        self,
        task: SQSQueue,
        a: SQSQueue | None,
        e: SQSQueue,
        changes: SQSQueue | None,
    ) -> None:
        task.render_aws(self, a, e, changes)
