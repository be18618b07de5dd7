"""Delta-run driver for queue tasks.

For every desired queue the reconciler:
1. Reads actual state (find) and caches the discovered ARN on the task
2. Computes the change set between actual and desired
3. Applies lifecycle rules and validates the change set
4. Renders to the configured target (unless in OBSERVE mode)

A failure in one queue is recorded on its TaskResult and does not stop
the remaining queues; the target is only finished when every queue
succeeded, so a failed pass never writes partial Terraform output.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any

from .config import ReconciliationMode
from .errors import SQSControllerError, ValidationError
from .sqs import Lifecycle, SQSQueue, build_changes, changed_fields
from .target import Target

logger = logging.getLogger(__name__)


@dataclass
class TaskResult:
    """Outcome of reconciling one queue."""

    queue: str
    exists: bool = False
    changes: list[str] = field(default_factory=list)
    rendered: bool = False
    skipped: bool = False
    arn: str | None = None
    error: Exception | None = None

    @property
    def success(self) -> bool:
        return self.error is None


@dataclass
class ReconcileResult:
    """Result of a single reconciliation pass."""

    mode: ReconciliationMode = ReconciliationMode.ENFORCE
    start_time: datetime = field(default_factory=lambda: datetime.now(UTC))
    end_time: datetime | None = None
    tasks: list[TaskResult] = field(default_factory=list)
    error: Exception | None = None

    @property
    def duration_seconds(self) -> float:
        """Calculate duration in seconds."""
        if self.end_time is None:
            return 0.0
        return (self.end_time - self.start_time).total_seconds()

    @property
    def drift_found(self) -> bool:
        return any(t.changes for t in self.tasks)

    @property
    def failed(self) -> list[TaskResult]:
        return [t for t in self.tasks if not t.success]

    @property
    def success(self) -> bool:
        """Check if reconciliation succeeded."""
        return self.error is None and not self.failed


class Reconciler:
    """Runs queue tasks against one render target.

    The cloud is always needed for find, even when rendering Terraform:
    the export reflects what exists, and find caches ARNs.
    """

    def __init__(
        self,
        cloud: Any,
        target: Target,
        mode: ReconciliationMode = ReconciliationMode.ENFORCE,
    ) -> None:
        """Initialize reconciler.

        Args:
            cloud: SQSCloud used for reads.
            target: Where changes are rendered.
            mode: OBSERVE logs the plan only; ENFORCE renders it.
        """
        self._cloud = cloud
        self._target = target
        self._mode = mode

    @property
    def target(self) -> Target:
        return self._target

    def reconcile(self, tasks: list[SQSQueue]) -> ReconcileResult:
        """Reconcile every task once, then finish the target.

        Returns:
            ReconcileResult with one TaskResult per task.
        """
        result = ReconcileResult(mode=self._mode)
        logger.info(
            "Starting reconciliation",
            extra={"queue_count": len(tasks), "mode": self._mode.value},
        )

        for task in tasks:
            task_result = TaskResult(queue=task.name or "")
            try:
                self.run_task(task, task_result)
            except SQSControllerError as e:
                task_result.error = e
                logger.error(
                    "Queue reconciliation failed",
                    extra={"queue": task.name, "error": str(e), "error_type": type(e).__name__},
                )
            result.tasks.append(task_result)

        if result.failed:
            logger.warning(
                "Skipping target finish after failures",
                extra={"failed": [t.queue for t in result.failed]},
            )
        elif self._mode == ReconciliationMode.ENFORCE:
            try:
                self._target.finish()
            except SQSControllerError as e:
                result.error = e

        result.end_time = datetime.now(UTC)
        self._log_result(result)
        return result

    def run_task(self, task: SQSQueue, task_result: TaskResult | None = None) -> TaskResult:
        """Run find, validation and render for one task.

        Raises:
            SQSControllerError: On the first failing stage; later stages
                are not invoked.
        """
        task_result = task_result or TaskResult(queue=task.name or "")

        if task.lifecycle == Lifecycle.IGNORE:
            logger.info("Lifecycle Ignore: skipping queue", extra={"queue": task.name})
            task_result.skipped = True
            return task_result

        found = task.find(self._cloud)
        # Persist identity before anything else can fail
        found.apply_to(task)
        a = found.actual
        task_result.exists = a is not None
        task_result.arn = task.arn

        changes = build_changes(a, task)
        task_result.changes = changed_fields(changes)

        if task.lifecycle == Lifecycle.EXISTS_AND_VALIDATES:
            if a is None:
                raise ValidationError("name", f"queue {task.name!r} does not exist")
            if changes is not None:
                raise ValidationError(
                    task_result.changes[0],
                    f"queue {task.name!r} differs from spec: {task_result.changes}",
                )
            return task_result

        if task.lifecycle == Lifecycle.EXISTS_AND_WARN_IF_CHANGES:
            if a is None:
                raise ValidationError("name", f"queue {task.name!r} does not exist")
            if changes is not None:
                logger.warning(
                    "Queue differs from spec",
                    extra={"queue": task.name, "changes": task_result.changes},
                )
            return task_result

        task.check_changes(a, task, changes)

        if a is not None and changes is None and not self._target.renders_unchanged:
            logger.info("No changes", extra={"queue": task.name})
            return task_result

        if self._mode == ReconciliationMode.OBSERVE:
            logger.info(
                "OBSERVE mode: changes reported but not rendered",
                extra={
                    "queue": task.name,
                    "exists": a is not None,
                    "changes": task_result.changes,
                },
            )
            return task_result

        self._target.render(task, a, task, changes)
        task_result.rendered = True
        task_result.arn = task.arn
        return task_result

    def _log_result(self, result: ReconcileResult) -> None:
        """Log reconciliation result with structured data."""
        extra: dict[str, Any] = {
            "mode": result.mode.value,
            "duration_seconds": result.duration_seconds,
            "drift_found": result.drift_found,
            "queues": len(result.tasks),
            "rendered": sum(1 for t in result.tasks if t.rendered),
            "failed": len(result.failed),
        }

        if result.error is not None:
            extra["error"] = str(result.error)
        if not result.success:
            logger.error("Reconciliation failed", extra=extra)
        else:
            logger.info("Reconciliation result", extra=extra)
