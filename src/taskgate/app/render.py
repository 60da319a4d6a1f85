"""Console and JSON rendering of gate check results."""

from __future__ import annotations

import json
from typing import Any

from taskgate.app.check import GateCheckOutcome
from taskgate.app.models import Issue, Task


def outcome_payload(outcome: GateCheckOutcome) -> dict[str, Any]:
    return {
        "passed": outcome.passed,
        "task": outcome.task.model_dump(mode="json"),
        "project_key": outcome.project_key,
        "gate": outcome.gate.model_dump(mode="json"),
        "issues_error": outcome.issues_error,
    }


def render_outcome_json(outcome: GateCheckOutcome) -> str:
    return json.dumps(outcome_payload(outcome), indent=2, ensure_ascii=True)


def render_outcome_text(outcome: GateCheckOutcome) -> str:
    gate = outcome.gate
    lines = [
        f"Analysis task {outcome.task.task_id}: {outcome.task.status.value}",
        f"Analysis id: {gate.analysis_id}",
        f"Quality gate: {gate.raw_status} ({gate.verdict.value})",
    ]
    failing = [condition for condition in gate.conditions if condition.status.upper() != "OK"]
    if failing:
        lines.append("Failing conditions:")
        for condition in failing:
            threshold = f" {condition.comparator} {condition.error_threshold}" if condition.error_threshold else ""
            actual = condition.actual_value if condition.actual_value is not None else "?"
            lines.append(f"  - {condition.metric}: actual={actual}{threshold}")

    if not outcome.passed:
        if outcome.issues_error:
            lines.append(f"Issue search failed: {outcome.issues_error}")
        elif outcome.issues:
            lines.append(f"Issues ({len(outcome.issues)}):")
            lines.extend(f"  {format_issue(issue)}" for issue in outcome.issues)
        elif outcome.project_key:
            lines.append("No open issues reported.")
    return "\n".join(lines)


def render_task_text(task: Task) -> str:
    parts = [f"Analysis task {task.task_id}: {task.status.value}"]
    if task.analysis_id:
        parts.append(f"analysis_id={task.analysis_id}")
    if task.error_message:
        parts.append(f"error={task.error_message}")
    return " ".join(parts)


def render_issues_text(issues: list[Issue]) -> str:
    if not issues:
        return "No open issues reported."
    return "\n".join(format_issue(issue) for issue in issues)


def format_issue(issue: Issue) -> str:
    if issue.component is None and issue.line is None:
        return issue.message
    location = issue.component or "?"
    line = issue.line if issue.line is not None else "?"
    return f"{location}:{line}: {issue.message}"
