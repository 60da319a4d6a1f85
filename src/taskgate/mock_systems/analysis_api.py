from __future__ import annotations

import json
import os
from pathlib import Path
from typing import Any

from fastapi import FastAPI, Header, HTTPException, Query
from pydantic import BaseModel, Field

from taskgate.app.client import basic_auth_header

SEED_PATH = Path(__file__).resolve().parent / "data" / "analysis_seed.json"

_TERMINAL_WIRE_STATUSES = {"SUCCESS", "FAILED", "CANCELED"}


class MockIssue(BaseModel):
    key: str | None = None
    component: str
    line: int | None = None
    message: str
    severity: str | None = None
    rule: str | None = None


class ScriptTaskRequest(BaseModel):
    """Scripts a task: each status read returns the next entry, the last one sticks."""

    id: str = Field(..., min_length=1)
    component_key: str = Field(..., min_length=1)
    statuses: list[str] = Field(..., min_length=1)
    analysis_id: str | None = None
    gate_status: str = "OK"
    conditions: list[dict[str, Any]] = Field(default_factory=list)
    error_message: str | None = None
    issues: list[MockIssue] = Field(default_factory=list)


class AnalysisStore:
    def __init__(self, seed: dict[str, Any] | None = None) -> None:
        seed = seed if seed is not None else load_seed()
        self._tasks: dict[str, dict[str, Any]] = {}
        self._reads: dict[str, int] = {}
        self._analyses: dict[str, dict[str, Any]] = {}
        self._issues: dict[str, list[dict[str, Any]]] = {
            project: list(rows) for project, rows in seed.get("issues", {}).items()
        }
        for task in seed.get("tasks", []):
            self.add_task(ScriptTaskRequest(**task))

    def add_task(self, payload: ScriptTaskRequest) -> None:
        statuses = [status.upper() for status in payload.statuses]
        # A script may not move past a terminal state.
        for index, status in enumerate(statuses[:-1]):
            if status in _TERMINAL_WIRE_STATUSES:
                statuses = statuses[: index + 1]
                break
        self._tasks[payload.id] = {
            "id": payload.id,
            "componentKey": payload.component_key,
            "statuses": statuses,
            "analysisId": payload.analysis_id,
            "errorMessage": payload.error_message,
        }
        self._reads[payload.id] = 0
        if payload.analysis_id:
            self._analyses[payload.analysis_id] = {
                "status": payload.gate_status,
                "conditions": payload.conditions,
            }
        if payload.issues:
            self._issues[payload.component_key] = [
                issue.model_dump(exclude_none=True) for issue in payload.issues
            ]

    def read_task(self, task_id: str) -> dict[str, Any]:
        task = self._tasks.get(task_id)
        if task is None:
            raise KeyError(task_id)
        statuses = task["statuses"]
        position = min(self._reads[task_id], len(statuses) - 1)
        self._reads[task_id] += 1
        status = statuses[position]

        view: dict[str, Any] = {
            "id": task["id"],
            "type": "REPORT",
            "componentKey": task["componentKey"],
            "status": status,
        }
        if status == "SUCCESS" and task["analysisId"]:
            view["analysisId"] = task["analysisId"]
        if status in {"FAILED", "CANCELED"} and task["errorMessage"]:
            view["errorMessage"] = task["errorMessage"]
        return view

    def read_count(self, task_id: str) -> int:
        return self._reads.get(task_id, 0)

    def gate_status(self, analysis_id: str) -> dict[str, Any]:
        analysis = self._analyses.get(analysis_id)
        if analysis is None:
            raise KeyError(analysis_id)
        return analysis

    def search_issues(self, component_key: str, page_size: int) -> list[dict[str, Any]]:
        return self._issues.get(component_key, [])[:page_size]


def load_seed() -> dict[str, Any]:
    with SEED_PATH.open("r", encoding="utf-8") as f:
        return json.load(f)


def create_app(store: AnalysisStore | None = None, token: str | None = None) -> FastAPI:
    app = FastAPI(
        title="Analysis Host Mock API",
        version="1.0.0",
        description="Deterministic analysis task, quality gate and issue API backed by seeded JSON.",
    )
    app.state.store = store or AnalysisStore()
    expected_auth = basic_auth_header(token) if token else None

    def _check_auth(authorization: str | None) -> None:
        if expected_auth is not None and authorization != expected_auth:
            raise HTTPException(status_code=401, detail="invalid credentials")

    @app.get("/health")
    def health() -> dict[str, str]:
        return {"status": "ok", "system": "analysis-mock"}

    @app.post("/mock/tasks", status_code=201)
    def script_task(payload: ScriptTaskRequest) -> dict[str, str]:
        app.state.store.add_task(payload)
        return {"id": payload.id}

    @app.get("/api/ce/task")
    def get_task(
        task_id: str = Query(..., alias="id"),
        authorization: str | None = Header(None),
    ) -> dict[str, Any]:
        _check_auth(authorization)
        try:
            return {"task": app.state.store.read_task(task_id)}
        except KeyError as exc:
            raise HTTPException(status_code=404, detail=f"No activity found for task '{task_id}'") from exc

    @app.get("/api/qualitygates/project_status")
    def project_status(
        analysis_id: str = Query(..., alias="analysisId"),
        authorization: str | None = Header(None),
    ) -> dict[str, Any]:
        _check_auth(authorization)
        try:
            return {"projectStatus": app.state.store.gate_status(analysis_id)}
        except KeyError as exc:
            raise HTTPException(status_code=404, detail=f"Analysis '{analysis_id}' not found") from exc

    @app.get("/api/issues/search")
    def search_issues(
        component_keys: str = Query(..., alias="componentKeys"),
        page_size: int = Query(100, alias="ps", ge=1, le=500),
        resolved: bool | None = Query(None),
        authorization: str | None = Header(None),
    ) -> dict[str, Any]:
        _check_auth(authorization)
        # Only open issues are seeded.
        issues = [] if resolved else app.state.store.search_issues(component_keys, page_size)
        return {"total": len(issues), "ps": page_size, "issues": issues}

    return app


app = create_app(token=os.getenv("TASKGATE_MOCK_TOKEN") or None)
