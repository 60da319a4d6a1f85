"""Reader for the scanner's ``report-task.txt`` properties file.

The scanner writes ``key=value`` lines after submitting an analysis, e.g.::

    projectKey=payments-service
    serverUrl=http://sonar.internal:9000
    dashboardUrl=http://sonar.internal:9000/dashboard?id=payments-service
    ceTaskId=AYx1-task
    ceTaskUrl=http://sonar.internal:9000/api/ce/task?id=AYx1-task
"""

from __future__ import annotations

from pathlib import Path

from taskgate.app.errors import MalformedResponse
from taskgate.app.models import ReportTask

_FIELD_MAP = {
    "ceTaskId": "task_id",
    "projectKey": "project_key",
    "serverUrl": "server_url",
    "dashboardUrl": "dashboard_url",
    "ceTaskUrl": "task_url",
}


def read_report_task(path: Path) -> ReportTask:
    if not path.is_file():
        raise FileNotFoundError(f"Report task file not found: {path}")
    return parse_report_task(path.read_text(encoding="utf-8"), source=str(path))


def parse_report_task(text: str, *, source: str = "<report-task>") -> ReportTask:
    properties: dict[str, str] = {}
    for raw_line in text.splitlines():
        line = raw_line.strip()
        if not line or line.startswith("#"):
            continue
        key, sep, value = line.partition("=")
        if not sep:
            continue
        properties[key.strip()] = value.strip()

    task_id = properties.get("ceTaskId", "")
    if not task_id:
        raise MalformedResponse(f"{source} does not contain a ceTaskId entry")

    fields = {
        target: properties[key] for key, target in _FIELD_MAP.items() if properties.get(key)
    }
    return ReportTask(**fields)
