"""Process setup and one-shot reconciliation entry points.

Builds the cloud client and render target from configuration, loads the
queue specs and runs a single reconciliation pass.
"""

from __future__ import annotations

import json
import logging
import sys
from datetime import UTC, datetime
from pathlib import Path

from .cloud import AWSAPITarget, SQSCloud
from .config import Config, ConfigurationError, RenderTargetKind
from .reconciler import Reconciler, ReconcileResult
from .spec_loader import SpecLoadError, discover_spec_files, load_tasks
from .target import Target
from .terraform import TerraformTarget

# LogRecord attributes that are not user-supplied "extra" fields
_RESERVED_RECORD_KEYS = frozenset(
    {
        "name",
        "msg",
        "args",
        "created",
        "filename",
        "funcName",
        "levelname",
        "levelno",
        "lineno",
        "module",
        "msecs",
        "pathname",
        "process",
        "processName",
        "relativeCreated",
        "stack_info",
        "exc_info",
        "exc_text",
        "thread",
        "threadName",
        "taskName",
        "message",
    }
)


class JsonFormatter(logging.Formatter):
    """Format logs as JSON for structured logging."""

    def format(self, record: logging.LogRecord) -> str:
        log_data = {
            "timestamp": datetime.now(UTC).isoformat().replace("+00:00", "Z"),
            "level": record.levelname,
            "message": record.getMessage(),
            "logger": record.name,
        }

        # Add extra fields from the record
        for key, value in record.__dict__.items():
            if key not in _RESERVED_RECORD_KEYS:
                log_data[key] = value

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        return json.dumps(log_data, default=str)


def setup_logging(level: int = logging.INFO) -> None:
    """Configure structured logging with JSON output."""
    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(JsonFormatter())

    root_logger = logging.getLogger()
    root_logger.handlers = [handler]
    root_logger.setLevel(level)

    # Reduce noise from the AWS SDK
    logging.getLogger("boto3").setLevel(logging.WARNING)
    logging.getLogger("botocore").setLevel(logging.WARNING)
    logging.getLogger("urllib3").setLevel(logging.WARNING)


def build_target(config: Config, cloud: SQSCloud) -> Target:
    """Select the render target named by the configuration."""
    match config.target:
        case RenderTargetKind.TERRAFORM:
            return TerraformTarget(config.terraform_output_dir)
        case RenderTargetKind.AWS:
            return AWSAPITarget(cloud)
    raise ConfigurationError(f"unsupported render target: {config.target}")


def reconcile_specs(
    config: Config,
    spec_paths: list[Path],
    cloud: SQSCloud | None = None,
) -> ReconcileResult:
    """Load every spec file and reconcile the queues they declare.

    Raises:
        SpecLoadError: If any spec file is invalid; no queue is touched then.
    """
    if not spec_paths:
        spec_paths = discover_spec_files(config.specs_dir)
    tasks = []
    for path in spec_paths:
        tasks.extend(load_tasks(path))

    cloud = cloud or SQSCloud.from_config(config)
    reconciler = Reconciler(cloud, build_target(config, cloud), mode=config.mode)
    return reconciler.reconcile(tasks)


def main(spec_paths: list[Path] | None = None, config: Config | None = None) -> int:
    """Run one reconciliation pass.

    Returns:
        Exit code (0 for success, non-zero for failure).
    """
    logger = logging.getLogger(__name__)

    try:
        config = config or Config.from_env()
    except ConfigurationError as e:
        logger.error("Configuration error", extra={"error": str(e)})
        return 1

    logger.info(
        "Starting SQS queue reconciliation",
        extra={
            "region": config.region,
            "target": config.target.value,
            "mode": config.mode.value,
        },
    )

    try:
        result = reconcile_specs(config, list(spec_paths or []))
    except SpecLoadError as e:
        logger.error("Spec loading failed", extra={"error": str(e)})
        return 1

    return 0 if result.success else 1


def run() -> None:
    """Entry point for running without the CLI."""
    setup_logging()
    sys.exit(main())


if __name__ == "__main__":
    run()
