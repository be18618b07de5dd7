"""Pydantic models for queue spec files.

These models provide:
1. Type-safe YAML parsing
2. Validation at the boundary (fail fast, fail loudly)
3. Clean transformation to the desired SQSQueue task
"""

from __future__ import annotations

import json
import re
from pathlib import Path
from typing import Annotated, Any

from pydantic import BaseModel, Field, field_validator, model_validator

from .resources import FileResource, StringResource
from .sqs import Lifecycle, SQSQueue

# SQS limits: names up to 80 chars, FIFO queues end in ".fifo"
QUEUE_NAME_PATTERN = r"^[A-Za-z0-9_-]{1,75}(\.fifo)?$|^[A-Za-z0-9_-]{1,80}$"
MIN_RETENTION_SECONDS = 60
MAX_RETENTION_SECONDS = 1_209_600
DEFAULT_RETENTION_SECONDS = 345_600


class QueueSpec(BaseModel):
    """Desired configuration of one SQS queue."""

    model_config = {"extra": "ignore", "populate_by_name": True}

    name: Annotated[str, Field(min_length=1, max_length=80)]
    message_retention_period: Annotated[
        int,
        Field(
            ge=MIN_RETENTION_SECONDS,
            le=MAX_RETENTION_SECONDS,
            alias="messageRetentionPeriod",
        ),
    ] = DEFAULT_RETENTION_SECONDS

    # Inline policy: a JSON string, or a mapping that is dumped to JSON
    policy: str | dict[str, Any] | None = None
    # Policy body kept in a separate file, relative to the spec file
    policy_file: Path | None = Field(None, alias="policyFile")

    tags: dict[str, str] | None = None
    lifecycle: Lifecycle = Lifecycle.SYNC

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: str) -> str:
        if not re.match(QUEUE_NAME_PATTERN, v):
            raise ValueError(
                "name may only contain alphanumerics, hyphens and underscores, "
                "optionally ending in .fifo"
            )
        return v

    @field_validator("policy")
    @classmethod
    def validate_policy(cls, v: str | dict[str, Any] | None) -> str | dict[str, Any] | None:
        if isinstance(v, str):
            try:
                parsed = json.loads(v)
            except json.JSONDecodeError as e:
                raise ValueError(f"policy is not valid JSON: {e}") from e
            if not isinstance(parsed, dict):
                raise ValueError("policy must be a JSON object")
        return v

    @model_validator(mode="after")
    def check_policy_source(self) -> QueueSpec:
        if self.policy is not None and self.policy_file is not None:
            raise ValueError("policy and policyFile are mutually exclusive")
        return self

    def to_task(self, base_dir: Path | None = None) -> SQSQueue:
        """Build the desired SQSQueue for this spec.

        Args:
            base_dir: Directory that relative policyFile paths resolve against.
        """
        policy = None
        if isinstance(self.policy, dict):
            policy = StringResource(json.dumps(self.policy, indent=2))
        elif isinstance(self.policy, str):
            policy = StringResource(self.policy)
        elif self.policy_file is not None:
            path = self.policy_file
            if not path.is_absolute() and base_dir is not None:
                path = base_dir / path
            policy = FileResource(path)

        return SQSQueue(
            name=self.name,
            lifecycle=self.lifecycle,
            message_retention_period=self.message_retention_period,
            policy=policy,
            tags=dict(self.tags) if self.tags is not None else None,
        )


class QueueSpecFile(BaseModel):
    """A spec file: either a single queue or a list under "queues"."""

    model_config = {"extra": "ignore"}

    queues: list[QueueSpec] = Field(default_factory=list)

    @model_validator(mode="before")
    @classmethod
    def wrap_single_queue(cls, data: Any) -> Any:
        if isinstance(data, dict) and "queues" not in data:
            return {"queues": [data]}
        return data
