"""Configuration management with validation.

Configuration is validated at load time so a bad region or target name
fails before any SQS call is made.
"""

from __future__ import annotations

import os
import re
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path


class RenderTargetKind(str, Enum):
    """Where reconciled changes are applied."""

    # Call the SQS control-plane API directly
    AWS = "aws"
    # Emit Terraform JSON plus side files
    TERRAFORM = "terraform"


class ReconciliationMode(str, Enum):
    """How detected drift is handled."""

    # Report planned changes only
    OBSERVE = "observe"
    # Render changes to the configured target
    ENFORCE = "enforce"


class ConfigurationError(Exception):
    """Raised when configuration validation fails."""

    pass


# Configuration constants with documented bounds
DEFAULT_SPECS_DIR = "/specs"
DEFAULT_TERRAFORM_OUTPUT_DIR = "out/terraform"

# Security constraints - enforced limits to prevent abuse
MAX_SPEC_FILE_SIZE_BYTES = 1024 * 1024  # 1MB max spec file
MAX_POLICY_FILE_SIZE_BYTES = 20 * 1024  # SQS rejects policies over 20KB

# Input validation patterns
VALID_REGION_PATTERN = r"^[a-z]{2}(-[a-z]+)+-\d$"
VALID_ENDPOINT_PATTERN = r"^https?://[^\s/$.?#].[^\s]*$"


@dataclass(frozen=True)
class Config:
    """Operator configuration loaded from environment variables.

    All fields are validated at construction time. Invalid configurations
    raise ConfigurationError immediately rather than failing at runtime.
    """

    # Required fields
    region: str

    # Provider
    endpoint_url: str | None = None

    # Paths
    specs_dir: Path = field(default_factory=lambda: Path(DEFAULT_SPECS_DIR))
    terraform_output_dir: Path = field(
        default_factory=lambda: Path(DEFAULT_TERRAFORM_OUTPUT_DIR)
    )

    # Behavior
    target: RenderTargetKind = RenderTargetKind.AWS
    mode: ReconciliationMode = ReconciliationMode.ENFORCE

    def __post_init__(self) -> None:
        """Validate configuration after initialization."""
        errors: list[str] = []

        if not self.region:
            errors.append("AWS_REGION is required")
        elif not re.match(VALID_REGION_PATTERN, self.region):
            errors.append(f"AWS_REGION must be a valid AWS region: {self.region}")

        if self.endpoint_url and not re.match(VALID_ENDPOINT_PATTERN, self.endpoint_url):
            errors.append(f"AWS_ENDPOINT_URL_SQS must be an http(s) URL: {self.endpoint_url}")

        if self.terraform_output_dir.exists() and not self.terraform_output_dir.is_dir():
            errors.append(
                f"TERRAFORM_OUTPUT_DIR exists and is not a directory: {self.terraform_output_dir}"
            )

        if errors:
            error_msg = "Configuration validation failed:\n  - " + "\n  - ".join(errors)
            raise ConfigurationError(error_msg)

    @classmethod
    def from_env(cls) -> Config:
        """Load configuration from environment variables.

        Environment Variables:
            AWS_REGION: Region of the queues (AWS_DEFAULT_REGION is accepted too)
            AWS_ENDPOINT_URL_SQS: Custom SQS endpoint, e.g. LocalStack
            SPECS_DIR: Path to queue spec YAML files (default: /specs)
            TERRAFORM_OUTPUT_DIR: Where Terraform output is written (default: out/terraform)
            RENDER_TARGET: One of aws, terraform (default: aws)
            RECONCILE_MODE: One of observe, enforce (default: enforce)
        """

        def get_enum(key: str, enum_cls: type[Enum], default: Enum) -> Enum:
            value = os.environ.get(key)
            if not value:
                return default
            try:
                return enum_cls(value.lower())
            except ValueError as e:
                valid = [m.value for m in enum_cls]
                raise ConfigurationError(f"{key} must be one of {valid}: {value}") from e

        return cls(
            region=os.environ.get("AWS_REGION") or os.environ.get("AWS_DEFAULT_REGION", ""),
            endpoint_url=os.environ.get("AWS_ENDPOINT_URL_SQS") or None,
            specs_dir=Path(os.environ.get("SPECS_DIR", DEFAULT_SPECS_DIR)),
            terraform_output_dir=Path(
                os.environ.get("TERRAFORM_OUTPUT_DIR", DEFAULT_TERRAFORM_OUTPUT_DIR)
            ),
            target=get_enum("RENDER_TARGET", RenderTargetKind, RenderTargetKind.AWS),
            mode=get_enum("RECONCILE_MODE", ReconciliationMode, ReconciliationMode.ENFORCE),
        )
