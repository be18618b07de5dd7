"""Render targets: where a reconciled change set ends up.

The set of targets is closed (direct API calls, Terraform export). Each
target knows which render method of a task to call, so the driver picks
a target once and tasks never inspect what kind of target they got.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .sqs import SQSQueue


class Target(ABC):
    """A destination for rendered changes."""

    # Declarative targets describe the full desired state on every pass,
    # so they render even when nothing changed.
    renders_unchanged: bool = False

    @abstractmethod
    def render(
        self,
        task: SQSQueue,
        a: SQSQueue | None,
        e: SQSQueue,
        changes: SQSQueue | None,
    ) -> None:
        """Apply changes for one task.

        Args:
            task: The task being rendered (usually the same object as e).
            a: Actual state, or None if the queue does not exist.
            e: Expected (desired) state.
            changes: Fields that differ, or None when nothing differs.
        """

    def finish(self) -> None:
        """Flush anything buffered during rendering."""
        return None
