"""Analysis task polling, quality gate lookup, and reporting."""

from taskgate.app.check import GateCheckOutcome, run_gate_check
from taskgate.app.client import AnalysisClient, JsonTransport
from taskgate.app.errors import GateError, MalformedResponse, NetworkError, PollTimeout, TaskFailed
from taskgate.app.gate import AsyncTaskGate
from taskgate.app.models import GateResult, Issue, ReportTask, Task, TaskStatus, Verdict
from taskgate.app.report_task import read_report_task

__all__ = [
    "AnalysisClient",
    "AsyncTaskGate",
    "GateCheckOutcome",
    "GateError",
    "GateResult",
    "Issue",
    "JsonTransport",
    "MalformedResponse",
    "NetworkError",
    "PollTimeout",
    "ReportTask",
    "Task",
    "TaskFailed",
    "TaskStatus",
    "Verdict",
    "read_report_task",
    "run_gate_check",
]
