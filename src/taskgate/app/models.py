"""Pydantic models for analysis tasks, gate verdicts, and issues.

Response bodies are parsed into these shapes instead of picking fields out of
raw text. Both the wrapped form (``{"task": {...}}``, ``{"projectStatus": {...}}``)
and a flat object are accepted.
"""

from __future__ import annotations

from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from taskgate.app.errors import MalformedResponse


class TaskStatus(str, Enum):
    PENDING = "pending"
    RUNNING = "running"
    SUCCESS = "success"
    FAILED = "failed"
    CANCELED = "canceled"

    @property
    def is_terminal(self) -> bool:
        return self in _TERMINAL_STATUSES

    @property
    def progress(self) -> int:
        """Rank used to detect a task moving backwards between polls."""
        if self.is_terminal:
            return 2
        return 1 if self is TaskStatus.RUNNING else 0


_TERMINAL_STATUSES = frozenset({TaskStatus.SUCCESS, TaskStatus.FAILED, TaskStatus.CANCELED})

# Upper-cased wire values -> status.
_STATUS_ALIASES: dict[str, TaskStatus] = {
    "PENDING": TaskStatus.PENDING,
    "IN_PROGRESS": TaskStatus.RUNNING,
    "RUNNING": TaskStatus.RUNNING,
    "SUCCESS": TaskStatus.SUCCESS,
    "FAILED": TaskStatus.FAILED,
    "CANCELED": TaskStatus.CANCELED,
    "CANCELLED": TaskStatus.CANCELED,
}


class Verdict(str, Enum):
    PASS = "pass"
    FAIL = "fail"
    OTHER = "other"


class Task(BaseModel):
    """Observed state of an asynchronous analysis task."""

    model_config = ConfigDict(frozen=True)

    task_id: str
    status: TaskStatus
    # Only present once the task succeeded.
    analysis_id: str | None = None
    component_key: str | None = None
    error_message: str | None = None


class Issue(BaseModel):
    """One diagnostic reported by the analysis server."""

    component: str | None = None
    # None when the issue is not tied to a line (file- or project-level).
    line: int | None = None
    message: str
    severity: str | None = None
    rule: str | None = None


class GateCondition(BaseModel):
    metric: str
    status: str
    comparator: str | None = None
    error_threshold: str | None = None
    actual_value: str | None = None


class GateResult(BaseModel):
    """Quality gate verdict for one completed analysis."""

    analysis_id: str
    verdict: Verdict
    raw_status: str
    conditions: list[GateCondition] = Field(default_factory=list)
    issues: list[Issue] = Field(default_factory=list)

    @property
    def passed(self) -> bool:
        return self.verdict is Verdict.PASS


class ReportTask(BaseModel):
    """Task pointer written by the scanner after submitting an analysis."""

    task_id: str = Field(min_length=1)
    project_key: str | None = None
    server_url: str | None = None
    dashboard_url: str | None = None
    task_url: str | None = None


def parse_task_status(value: Any) -> TaskStatus:
    if not isinstance(value, str) or not value.strip():
        raise MalformedResponse(f"Task status is missing or not a string: {value!r}")
    status = _STATUS_ALIASES.get(value.strip().upper())
    if status is None:
        raise MalformedResponse(f"Unknown task status: {value!r}")
    return status


def parse_verdict(value: Any) -> Verdict:
    if not isinstance(value, str) or not value.strip():
        raise MalformedResponse(f"Quality gate status is missing or not a string: {value!r}")
    normalized = value.strip().upper()
    if normalized == "OK":
        return Verdict.PASS
    if normalized == "ERROR":
        return Verdict.FAIL
    return Verdict.OTHER


def parse_task(body: Any, *, task_id: str) -> Task:
    payload = _unwrap(body, "task", context="task status")
    status = parse_task_status(payload.get("status"))
    return Task(
        task_id=_as_text(payload.get("id")) or task_id,
        status=status,
        analysis_id=_as_text(payload.get("analysisId")) or None,
        component_key=_as_text(payload.get("componentKey")) or None,
        error_message=_as_text(payload.get("errorMessage")) or None,
    )


def parse_gate_result(body: Any, *, analysis_id: str) -> GateResult:
    payload = _unwrap(body, "projectStatus", context="quality gate")
    raw_status = payload.get("status")
    verdict = parse_verdict(raw_status)
    return GateResult(
        analysis_id=analysis_id,
        verdict=verdict,
        raw_status=raw_status.strip(),
        conditions=_parse_conditions(payload.get("conditions")),
    )


def parse_issues(body: Any) -> list[Issue]:
    """Parse an issue search body; raises ``MalformedResponse`` on any shape mismatch."""
    if not isinstance(body, dict):
        raise MalformedResponse("Issue search response must be a JSON object")
    rows = body.get("issues")
    if not isinstance(rows, list):
        raise MalformedResponse("Issue search response is missing the 'issues' array")

    issues: list[Issue] = []
    for row in rows:
        if not isinstance(row, dict):
            raise MalformedResponse(f"Issue entry must be an object: {row!r}")
        try:
            issues.append(
                Issue(
                    component=_as_text(row.get("component")) or None,
                    line=row.get("line"),
                    message=_as_text(row.get("message")),
                    severity=_as_text(row.get("severity")) or None,
                    rule=_as_text(row.get("rule")) or None,
                )
            )
        except ValidationError as exc:
            raise MalformedResponse(f"Issue entry could not be parsed: {row!r}") from exc
    return issues


def _parse_conditions(value: Any) -> list[GateCondition]:
    if not isinstance(value, list):
        return []
    output: list[GateCondition] = []
    for row in value:
        if not isinstance(row, dict):
            continue
        metric = _as_text(row.get("metricKey") or row.get("metric"))
        status = _as_text(row.get("status"))
        if not metric or not status:
            continue
        output.append(
            GateCondition(
                metric=metric,
                status=status,
                comparator=_as_text(row.get("comparator")) or None,
                error_threshold=_as_text(row.get("errorThreshold")) or None,
                actual_value=_as_text(row.get("actualValue")) or None,
            )
        )
    return output


def _unwrap(body: Any, key: str, *, context: str) -> dict[str, Any]:
    if not isinstance(body, dict):
        raise MalformedResponse(f"{context} response must be a JSON object")
    nested = body.get(key)
    if isinstance(nested, dict):
        return nested
    return body


def _as_text(value: Any) -> str:
    if value is None:
        return ""
    return str(value).strip()
