"""Full gate check: wait for the task, require an analysis, enforce the verdict."""

from __future__ import annotations

import logging

from pydantic import BaseModel

from taskgate.app.errors import MalformedResponse, NetworkError
from taskgate.app.gate import AsyncTaskGate
from taskgate.app.models import GateResult, Issue, Task

logger = logging.getLogger(__name__)


class GateCheckOutcome(BaseModel):
    """Everything a pipeline step needs to report and decide its exit status."""

    task: Task
    gate: GateResult
    project_key: str | None = None
    # Set when the diagnostic issue fetch itself failed.
    issues_error: str | None = None

    @property
    def passed(self) -> bool:
        return self.gate.passed

    @property
    def issues(self) -> list[Issue]:
        return self.gate.issues


def run_gate_check(
    gate: AsyncTaskGate,
    *,
    task_id: str,
    project_key: str | None,
    max_attempts: int,
    poll_interval_s: float,
    issues_page_size: int,
) -> GateCheckOutcome:
    task = gate.await_completion(task_id, max_attempts, poll_interval_s)
    if not task.analysis_id:
        raise MalformedResponse(f"Analysis task {task.task_id} succeeded without an analysisId")

    result = gate.fetch_gate_result(task.analysis_id)
    project_key = project_key or task.component_key
    outcome = GateCheckOutcome(task=task, gate=result, project_key=project_key)
    if result.passed:
        return outcome

    if not project_key:
        logger.warning("Quality gate failed but no project key is known; skipping issue search")
        return outcome

    try:
        outcome.gate.issues = gate.fetch_issues(project_key, issues_page_size)
    except NetworkError as exc:
        # Diagnostics only; the gate verdict already decides the outcome.
        logger.warning("Issue search failed project_key=%s reason=%s", project_key, exc)
        outcome.issues_error = str(exc)
    return outcome
