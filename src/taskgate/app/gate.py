"""Wait for an asynchronous analysis task and read its quality gate verdict."""

from __future__ import annotations

import json
import logging
import time
from collections.abc import Callable

from taskgate.app.client import (
    GATE_STATUS_PATH,
    ISSUES_SEARCH_PATH,
    TASK_PATH,
    JsonTransport,
)
from taskgate.app.errors import MalformedResponse, PollTimeout, TaskFailed
from taskgate.app.models import (
    GateResult,
    Issue,
    Task,
    TaskStatus,
    parse_gate_result,
    parse_issues,
    parse_task,
)

logger = logging.getLogger(__name__)


class AsyncTaskGate:
    """Observe a task by identifier until terminal, then fetch its gate verdict.

    The gate keeps no state between calls; each ``await_completion`` starts a
    fresh bounded poll loop.
    """

    def __init__(
        self,
        transport: JsonTransport,
        *,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.transport = transport
        self._sleep = sleep

    def fetch_task(self, task_id: str) -> Task:
        body = self.transport.get_json(TASK_PATH, {"id": task_id})
        return parse_task(body, task_id=task_id)

    def await_completion(self, task_id: str, max_attempts: int, poll_interval_s: float) -> Task:
        if not task_id or not task_id.strip():
            raise ValueError("task_id must not be empty")
        if max_attempts < 1:
            raise ValueError("max_attempts must be >= 1")
        if poll_interval_s < 0:
            raise ValueError("poll_interval_s must be >= 0")

        last_task: Task | None = None
        for attempt in range(1, max_attempts + 1):
            task = self.fetch_task(task_id)
            logger.info(
                "Analysis task poll attempt=%d/%d task_id=%s status=%s",
                attempt,
                max_attempts,
                task_id,
                task.status.value,
            )
            if last_task is not None and task.status.progress < last_task.status.progress:
                raise MalformedResponse(
                    f"Analysis task {task_id} moved backwards from "
                    f"{last_task.status.value} to {task.status.value}"
                )
            last_task = task
            if last_task.status is TaskStatus.SUCCESS:
                return last_task
            if last_task.status.is_terminal:
                raise TaskFailed(last_task)
            if attempt < max_attempts and poll_interval_s > 0:
                self._sleep(poll_interval_s)

        raise PollTimeout(task_id, max_attempts, last_task)

    def fetch_gate_result(self, analysis_id: str) -> GateResult:
        if not analysis_id or not analysis_id.strip():
            raise ValueError("analysis_id must not be empty")
        body = self.transport.get_json(GATE_STATUS_PATH, {"analysisId": analysis_id})
        result = parse_gate_result(body, analysis_id=analysis_id)
        logger.info(
            "Quality gate analysis_id=%s verdict=%s raw_status=%s",
            analysis_id,
            result.verdict.value,
            result.raw_status,
        )
        return result

    def fetch_issues(self, project_key: str, page_size: int) -> list[Issue]:
        """Fetch open issues for diagnostics.

        Parse failures do not raise: the raw payload comes back as a single
        issue message so the caller can still print something useful.
        Transport failures raise ``NetworkError``.
        """
        if not project_key or not project_key.strip():
            raise ValueError("project_key must not be empty")
        if page_size < 1:
            raise ValueError("page_size must be >= 1")

        raw = self.transport.get_text(
            ISSUES_SEARCH_PATH,
            {"componentKeys": project_key, "ps": page_size, "resolved": "false"},
        )
        try:
            return parse_issues(json.loads(raw))
        except (json.JSONDecodeError, MalformedResponse) as exc:
            logger.warning("Issue search response not parseable project_key=%s reason=%s", project_key, exc)
            return [Issue(message=raw)]
