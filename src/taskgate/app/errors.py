"""Error kinds raised while waiting on an analysis task and its quality gate.

Every error here is terminal for the calling operation. Only the bounded poll
loop repeats requests; nothing else is retried.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from taskgate.app.models import Task


class GateError(RuntimeError):
    """Base class for analysis task / quality gate failures."""


class PollTimeout(GateError):
    """The task did not reach a terminal state within the allowed attempts."""

    def __init__(self, task_id: str, attempts: int, last_task: Task | None = None) -> None:
        self.task_id = task_id
        self.attempts = attempts
        self.last_task = last_task
        last_status = last_task.status.value if last_task is not None else "unknown"
        super().__init__(
            f"Analysis task {task_id} not finished after {attempts} attempts "
            f"(last status: {last_status})"
        )


class TaskFailed(GateError):
    """The upstream system reported the task as failed or canceled."""

    def __init__(self, task: Task) -> None:
        self.task = task
        detail = f": {task.error_message}" if task.error_message else ""
        super().__init__(f"Analysis task {task.task_id} ended with status {task.status.value}{detail}")


class MalformedResponse(GateError):
    """A response body was missing an expected field or could not be parsed."""


class NetworkError(GateError):
    """The analysis host could not be reached or answered with an HTTP error."""

    def __init__(self, message: str, *, status_code: int | None = None) -> None:
        self.status_code = status_code
        super().__init__(message)
