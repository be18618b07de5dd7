"""SQS queue task: discover, validate and render one queue.

The driver runs a queue through find -> check_changes -> render. Find
does the interesting work: it reads the queue back from SQS in the same
shape as the desired spec, and when the stored policy is semantically
equal to the desired one it reports the desired text verbatim. That
keeps both the comparison and any later string-level rendering stable
across passes even if SQS reformats or reorders the document.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING

from .diff_normalizer import policies_equivalent
from .errors import (
    AmbiguousMatchError,
    ImmutableFieldError,
    MalformedAttributeError,
    ProviderReadError,
    RenderError,
    RequiredFieldError,
)
from .jsonutils import JSONTransformError
from .resources import Resource, StringResource, resource_as_string
from .tags import intersect_tags
from .terraform import Literal, literal_property, tf_field

if TYPE_CHECKING:
    from .cloud import AWSAPITarget, SQSCloud
    from .terraform import TerraformTarget

logger = logging.getLogger(__name__)

TERRAFORM_RESOURCE_TYPE = "aws_sqs_queue"

ATTR_RETENTION = "MessageRetentionPeriod"
ATTR_POLICY = "Policy"
ATTR_ARN = "QueueArn"

# Two results are enough to tell "exactly one" from "ambiguous"
FIND_MAX_RESULTS = 2


class Lifecycle(str, Enum):
    """Caller-supplied hint for how the driver treats a task."""

    SYNC = "Sync"
    IGNORE = "Ignore"
    EXISTS_AND_VALIDATES = "ExistsAndValidates"
    EXISTS_AND_WARN_IF_CHANGES = "ExistsAndWarnIfChanges"


@dataclass
class SQSQueue:
    """Desired, actual or changed state of one SQS queue.

    The same type carries all three roles: desired (from the spec file),
    actual (from find) and changes (only the differing fields are set).
    """

    name: str | None = None
    lifecycle: Lifecycle = Lifecycle.SYNC

    arn: str | None = None
    url: str | None = None
    message_retention_period: int | None = None
    policy: Resource | None = None

    tags: dict[str, str] | None = None

    def compare_with_id(self) -> str | None:
        """Key used to match this queue across passes."""
        return self.arn

    def find(self, cloud: SQSCloud) -> FindResult:
        """Read the current state of this queue from SQS.

        Raises:
            ProviderReadError: If listing or reading the queue fails.
            AmbiguousMatchError: If more than one queue matches the name.
            MalformedAttributeError: If an attribute or policy is not parseable.
        """
        if not self.name:
            return FindResult(actual=None)

        urls = cloud.list_queue_urls(prefix=self.name, max_results=FIND_MAX_RESULTS)
        if not urls:
            return FindResult(actual=None)
        if len(urls) != 1:
            raise AmbiguousMatchError(self.name, urls)
        url = urls[0]

        attributes = cloud.get_queue_attributes(url, [ATTR_RETENTION, ATTR_POLICY, ATTR_ARN])
        if attributes is None:
            # Deleted between listing and reading
            logger.info("SQS queue disappeared during find", extra={"queue": self.name})
            return FindResult(actual=None)

        actual_arn = attributes.get(ATTR_ARN)
        actual_policy = attributes.get(ATTR_POLICY)
        raw_period = attributes.get(ATTR_RETENTION)
        try:
            period = int(raw_period) if raw_period is not None else None
        except ValueError as e:
            raise MalformedAttributeError(
                f"error converting MessageRetentionPeriod {raw_period!r} to int "
                f"for SQS {self.name!r}"
            ) from e

        tags = cloud.list_queue_tags(url)

        # A queue without a Policy attribute is not a parse error: actual.policy
        # stays None and a desired policy surfaces as a "policy" change instead.
        if self.policy is not None and actual_policy is not None:
            expected_policy = self._reconcile_policy(actual_policy)
            if expected_policy is not None:
                actual_policy = expected_policy
                self.policy = StringResource(expected_policy)

        actual = SQSQueue(
            arn=actual_arn,
            name=self.name,
            url=url,
            lifecycle=self.lifecycle,
            policy=StringResource(actual_policy) if actual_policy is not None else None,
            message_retention_period=period,
            tags=intersect_tags(tags, self.tags),
        )
        return FindResult(actual=actual, identity=IdentityUpdate(arn=actual.arn))

    def _reconcile_policy(self, actual_policy: str) -> str | None:
        """Return the desired policy text if it is json-equal to actual_policy."""
        try:
            expected_policy = resource_as_string(self.policy)
        except (OSError, UnicodeDecodeError) as e:
            raise MalformedAttributeError(
                f"error reading expected Policy for SQS {self.name!r}: {e}"
            ) from e

        try:
            equivalent = policies_equivalent(expected_policy, actual_policy)
        except JSONTransformError as e:
            raise MalformedAttributeError(f"{e} (SQS {self.name!r})") from e

        if not equivalent:
            return None
        logger.debug(
            "actual Policy was json-equal to expected; returning expected value",
            extra={"queue": self.name},
        )
        return expected_policy

    def check_changes(
        self,
        a: SQSQueue | None,
        e: SQSQueue,
        changes: SQSQueue | None,
    ) -> None:
        """Reject illegal transitions before anything is rendered.

        Raises:
            RequiredFieldError: Creating a queue without a name.
            ImmutableFieldError: Changing the URL of an existing queue.
        """
        if a is None:
            if not e.name:
                raise RequiredFieldError("name")
        elif changes is not None and changes.url:
            raise ImmutableFieldError("url")

    def render_aws(
        self,
        t: AWSAPITarget,
        a: SQSQueue | None,
        e: SQSQueue,
        changes: SQSQueue | None,
    ) -> None:
        """Create the queue if it does not exist.

        Existing queues are left as they are: there is no update path, so
        retention, policy and tag changes on a live queue are not applied.

        Raises:
            RenderError: If reading the policy, creating the queue, or the
                follow-up ARN read fails.
        """
        if a is not None:
            logger.debug(
                "SQS queue exists; update is not supported, skipping",
                extra={"queue": e.name, "arn": a.arn},
            )
            return

        try:
            policy = resource_as_string(e.policy)
        except (OSError, UnicodeDecodeError) as err:
            raise RenderError(f"error rendering Policy for SQS {e.name!r}: {err}") from err

        attributes: dict[str, str] = {}
        if e.message_retention_period is not None:
            attributes[ATTR_RETENTION] = str(e.message_retention_period)
        if policy:
            attributes[ATTR_POLICY] = policy

        logger.info("Creating SQS queue", extra={"queue": e.name})
        url = t.cloud.create_queue(e.name or "", attributes, e.tags)

        try:
            created = t.cloud.get_queue_attributes(url, [ATTR_ARN])
        except ProviderReadError as err:
            raise RenderError(f"error getting SQS queue attributes: {err}") from err
        if not created or not created.get(ATTR_ARN):
            raise RenderError(f"SQS queue {e.name!r} has no ARN after creation")

        e.arn = created[ATTR_ARN]
        logger.info("Created SQS queue", extra={"queue": e.name, "arn": e.arn, "url": url})

    def render_terraform(
        self,
        t: TerraformTarget,
        a: SQSQueue | None,
        e: SQSQueue,
        changes: SQSQueue | None,
    ) -> None:
        """Emit an aws_sqs_queue block with the policy as a side file.

        Raises:
            RenderError: If the queue has no name or the sink rejects the block.
        """
        if not e.name:
            raise RenderError("cannot render SQS queue without a name")

        policy = t.add_file_resource(TERRAFORM_RESOURCE_TYPE, e.name, "policy", e.policy)
        tf = TerraformSQSQueue(
            name=e.name,
            message_retention_seconds=e.message_retention_period,
            policy=policy,
            tags=e.tags,
        )
        t.render_resource(TERRAFORM_RESOURCE_TYPE, e.name, tf)

    def terraform_link(self) -> Literal:
        """Reference to this queue's ARN for use by other Terraform resources."""
        if not self.name:
            raise RenderError("cannot link to SQS queue without a name")
        return literal_property(TERRAFORM_RESOURCE_TYPE, self.name, "arn")


@dataclass(frozen=True)
class IdentityUpdate:
    """Identity discovered by find, to be persisted on the desired task."""

    arn: str | None


@dataclass
class FindResult:
    """Outcome of find: actual state plus the identity side-channel."""

    actual: SQSQueue | None
    identity: IdentityUpdate | None = None

    def apply_to(self, desired: SQSQueue) -> None:
        """Cache the discovered ARN on the desired task to avoid flapping."""
        if self.identity is None:
            return
        if desired.arn and self.identity.arn and desired.arn != self.identity.arn:
            logger.warning(
                "SQS queue ARN changed",
                extra={"queue": desired.name, "old_arn": desired.arn, "new_arn": self.identity.arn},
            )
        desired.arn = self.identity.arn


@dataclass
class TerraformSQSQueue:
    """Field layout of a Terraform aws_sqs_queue block."""

    name: str | None = tf_field("name")
    message_retention_seconds: int | None = tf_field("message_retention_seconds")
    policy: Literal | None = tf_field("policy")
    tags: dict[str, str] | None = tf_field("tags")

    def __post_init__(self) -> None:
        if self.tags == {}:
            self.tags = None


def build_changes(a: SQSQueue | None, e: SQSQueue) -> SQSQueue | None:
    """Compute the fields of e that differ from a.

    Unset fields of e never count as a change. Policies are compared as
    text; find has already substituted the desired text when the two
    documents are json-equal. arn and lifecycle are not compared.

    Returns:
        An SQSQueue with only the differing fields set, or None if nothing
        differs. With no actual state every set field of e is a change.
    """
    changes = SQSQueue(lifecycle=e.lifecycle)
    changed = False

    def differs(desired: object, actual: object) -> bool:
        return desired is not None and desired != actual

    if differs(e.name, a.name if a else None):
        changes.name = e.name
        changed = True
    if differs(e.url, a.url if a else None):
        changes.url = e.url
        changed = True
    if differs(e.message_retention_period, a.message_retention_period if a else None):
        changes.message_retention_period = e.message_retention_period
        changed = True
    if e.policy is not None:
        try:
            expected_text = resource_as_string(e.policy)
        except (OSError, UnicodeDecodeError) as err:
            raise MalformedAttributeError(
                f"error reading expected Policy for SQS {e.name!r}: {err}"
            ) from err
        actual_text = resource_as_string(a.policy) if a and a.policy is not None else None
        if expected_text != actual_text:
            changes.policy = e.policy
            changed = True
    if e.tags and e.tags != (a.tags if a else None):
        changes.tags = e.tags
        changed = True

    return changes if changed else None


def changed_fields(changes: SQSQueue | None) -> list[str]:
    """Names of the fields set on a changes object, for logging."""
    if changes is None:
        return []
    names = ("name", "url", "message_retention_period", "policy", "tags")
    return [n for n in names if getattr(changes, n) is not None]
