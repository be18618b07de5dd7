"""Spec file loading with validation.

SECURITY: All file operations enforce size limits to prevent DoS attacks
via large files. Input validation is performed at the boundary.
"""

from __future__ import annotations

import logging
from pathlib import Path

import yaml
from pydantic import ValidationError

from .config import MAX_POLICY_FILE_SIZE_BYTES, MAX_SPEC_FILE_SIZE_BYTES
from .models import QueueSpec, QueueSpecFile
from .resources import FileResource
from .sqs import SQSQueue

logger = logging.getLogger(__name__)

SPEC_FILE_SUFFIXES = (".yaml", ".yml")


class SpecLoadError(Exception):
    """Raised when spec loading or validation fails."""

    pass


def load_specs(spec_path: Path) -> list[QueueSpec]:
    """Load and validate queue specs from one YAML file.

    Args:
        spec_path: Path to the spec file.

    Returns:
        Validated queue specs, in file order.

    Raises:
        SpecLoadError: If the spec cannot be loaded or fails validation.
    """
    if not spec_path.exists():
        raise SpecLoadError(f"Spec file not found: {spec_path}")

    # SECURITY: Check file size before reading to prevent DoS
    try:
        file_size = spec_path.stat().st_size
    except OSError as e:
        raise SpecLoadError(f"Failed to stat spec file {spec_path}: {e}") from e

    if file_size > MAX_SPEC_FILE_SIZE_BYTES:
        raise SpecLoadError(
            f"Spec file exceeds maximum size of {MAX_SPEC_FILE_SIZE_BYTES} bytes: {spec_path}"
        )

    try:
        content = spec_path.read_text(encoding="utf-8")
    except OSError as e:
        raise SpecLoadError(f"Failed to read spec file {spec_path}: {e}") from e

    try:
        raw_data = yaml.safe_load(content)
    except yaml.YAMLError as e:
        raise SpecLoadError(f"Invalid YAML in {spec_path}: {e}") from e

    if not isinstance(raw_data, dict):
        raise SpecLoadError(f"Spec file must contain a YAML mapping: {spec_path}")

    # Support both flat format and Kubernetes-style wrapper
    if "apiVersion" in raw_data and "spec" in raw_data:
        spec_data = raw_data.get("spec", {})
        if not isinstance(spec_data, dict):
            raise SpecLoadError(f"Spec section must be a mapping: {spec_path}")
    else:
        spec_data = raw_data

    try:
        spec_file = QueueSpecFile.model_validate(spec_data)
    except ValidationError as e:
        # Format Pydantic validation errors for readability
        errors = []
        for error in e.errors():
            loc = ".".join(str(x) for x in error["loc"])
            msg = error["msg"]
            errors.append(f"  - {loc}: {msg}")

        error_list = "\n".join(errors)
        raise SpecLoadError(f"Validation failed for {spec_path}:\n{error_list}") from e

    names = [q.name for q in spec_file.queues]
    duplicates = sorted({n for n in names if names.count(n) > 1})
    if duplicates:
        raise SpecLoadError(f"Duplicate queue names in {spec_path}: {duplicates}")

    logger.info("Loaded %d queue spec(s) from %s", len(spec_file.queues), spec_path)
    return spec_file.queues


def load_tasks(spec_path: Path) -> list[SQSQueue]:
    """Load a spec file and build the desired tasks it declares.

    Policy files are checked for existence and size here so a bad path
    fails before any queue is touched.

    Raises:
        SpecLoadError: If the spec or a referenced policy file is invalid.
    """
    base_dir = spec_path.parent
    tasks = []
    for spec in load_specs(spec_path):
        task = spec.to_task(base_dir=base_dir)
        if isinstance(task.policy, FileResource):
            _check_policy_file(task.policy.path, spec.name)
        tasks.append(task)
    return tasks


def _check_policy_file(path: Path, queue_name: str) -> None:
    try:
        size = path.stat().st_size
    except OSError as e:
        raise SpecLoadError(f"Policy file for queue {queue_name!r} not readable: {path}: {e}") from e
    if size > MAX_POLICY_FILE_SIZE_BYTES:
        raise SpecLoadError(
            f"Policy file for queue {queue_name!r} exceeds maximum size of "
            f"{MAX_POLICY_FILE_SIZE_BYTES} bytes: {path}"
        )


def discover_spec_files(specs_dir: Path) -> list[Path]:
    """List spec files in a directory, sorted by name.

    Raises:
        SpecLoadError: If the directory does not exist.
    """
    if not specs_dir.is_dir():
        raise SpecLoadError(f"Specs directory does not exist: {specs_dir}")
    return sorted(p for p in specs_dir.iterdir() if p.suffix in SPEC_FILE_SUFFIXES and p.is_file())
