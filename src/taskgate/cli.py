"""Command-line entry point for CI pipelines.

``taskgate check`` waits for the analysis task named by ``--task-id`` (or by the
scanner's report-task file), enforces the quality gate, prints diagnostics,
and exits non-zero on anything but a passing verdict.
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path

from pydantic import ValidationError

from taskgate.app.check import run_gate_check
from taskgate.app.client import AnalysisClient
from taskgate.app.errors import GateError, MalformedResponse, NetworkError, PollTimeout, TaskFailed
from taskgate.app.gate import AsyncTaskGate
from taskgate.app.models import ReportTask
from taskgate.app.render import (
    render_issues_text,
    render_outcome_json,
    render_outcome_text,
    render_task_text,
)
from taskgate.app.report_task import read_report_task
from taskgate.config.settings import Settings, get_settings

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_GATE_FAILED = 1
EXIT_TASK_FAILED = 3
EXIT_POLL_TIMEOUT = 4
EXIT_MALFORMED_RESPONSE = 5
EXIT_NETWORK_ERROR = 6

LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")

_ERROR_EXIT_CODES: dict[type[GateError], int] = {
    TaskFailed: EXIT_TASK_FAILED,
    PollTimeout: EXIT_POLL_TIMEOUT,
    MalformedResponse: EXIT_MALFORMED_RESPONSE,
    NetworkError: EXIT_NETWORK_ERROR,
}


def _non_empty(value: str) -> str:
    if not value.strip():
        raise argparse.ArgumentTypeError("must not be empty")
    return value.strip()


def _positive_int(value: str) -> int:
    parsed = int(value)
    if parsed < 1:
        raise argparse.ArgumentTypeError(f"must be >= 1, got {parsed}")
    return parsed


def _page_size(value: str) -> int:
    parsed = _positive_int(value)
    if parsed > 500:
        raise argparse.ArgumentTypeError(f"must be <= 500, got {parsed}")
    return parsed


def _non_negative_float(value: str) -> float:
    parsed = float(value)
    if parsed < 0:
        raise argparse.ArgumentTypeError(f"must be >= 0, got {parsed}")
    return parsed


def _log_level(value: str) -> str:
    return value.strip().upper()


def _build_parser(settings: Settings) -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="taskgate",
        description="Wait for a static-analysis task and enforce its quality gate.",
    )
    parser.add_argument("--host-url", type=_non_empty, default=None, help="Analysis host base URL.")
    parser.add_argument(
        "--log-level",
        type=_log_level,
        choices=LOG_LEVELS,
        default=_log_level(settings.log_level),
        help="Logging level.",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    check = subparsers.add_parser("check", help="Wait for the task and enforce the gate.")
    source = check.add_mutually_exclusive_group()
    source.add_argument("--task-id", type=_non_empty, default=None, help="Analysis task identifier.")
    source.add_argument(
        "--report-task",
        type=Path,
        default=None,
        help=f"Scanner report-task file (default: {settings.report_task_path}).",
    )
    check.add_argument("--project-key", default=None, help="Project key for issue diagnostics.")
    check.add_argument("--max-attempts", type=_positive_int, default=settings.max_attempts)
    check.add_argument(
        "--poll-interval",
        type=_non_negative_float,
        default=settings.poll_interval_s,
        help="Seconds to sleep between status polls.",
    )
    check.add_argument("--page-size", type=_page_size, default=settings.issues_page_size)
    check.add_argument("--json", action="store_true", help="Print machine-readable JSON output.")

    status = subparsers.add_parser("status", help="Fetch the current status of one task.")
    status.add_argument("--task-id", type=_non_empty, required=True)
    status.add_argument("--json", action="store_true")

    issues = subparsers.add_parser("issues", help="List open issues for a project.")
    issues.add_argument("--project-key", type=_non_empty, required=True)
    issues.add_argument("--page-size", type=_page_size, default=settings.issues_page_size)
    issues.add_argument("--json", action="store_true")
    return parser


def main(argv: list[str] | None = None) -> int:
    try:
        settings = get_settings()
    except ValidationError as exc:
        _build_parser(Settings.model_construct()).error(f"invalid configuration: {exc}")
    parser = _build_parser(settings)
    args = parser.parse_args(argv)
    logging.basicConfig(
        level=args.log_level,
        format="%(asctime)s %(levelname)s %(name)s %(message)s",
    )

    try:
        if args.command == "check":
            return _run_check(args, settings)
        if args.command == "status":
            return _run_status(args, settings)
        return _run_issues(args, settings)
    except GateError as exc:
        logger.error("%s: %s", type(exc).__name__, exc)
        return _ERROR_EXIT_CODES.get(type(exc), EXIT_GATE_FAILED)
    except FileNotFoundError as exc:
        logger.error("%s", exc)
        return EXIT_MALFORMED_RESPONSE


def _run_check(args: argparse.Namespace, settings: Settings) -> int:
    report: ReportTask | None = None
    task_id = args.task_id
    if not task_id:
        report = read_report_task(args.report_task or settings.report_task_path)
        task_id = report.task_id

    host_url = args.host_url or (report.server_url if report else None) or settings.host_url
    project_key = args.project_key or (report.project_key if report else None)
    gate = AsyncTaskGate(_build_client(host_url, settings))

    outcome = run_gate_check(
        gate,
        task_id=task_id,
        project_key=project_key,
        max_attempts=args.max_attempts,
        poll_interval_s=args.poll_interval,
        issues_page_size=args.page_size,
    )
    print(render_outcome_json(outcome) if args.json else render_outcome_text(outcome))
    if outcome.passed:
        return EXIT_OK
    if report is not None and report.dashboard_url:
        print(f"Dashboard: {report.dashboard_url}", file=sys.stderr)
    return EXIT_GATE_FAILED


def _run_status(args: argparse.Namespace, settings: Settings) -> int:
    gate = AsyncTaskGate(_build_client(args.host_url or settings.host_url, settings))
    task = gate.fetch_task(args.task_id)
    if args.json:
        print(json.dumps(task.model_dump(mode="json"), indent=2))
    else:
        print(render_task_text(task))
    return EXIT_OK


def _run_issues(args: argparse.Namespace, settings: Settings) -> int:
    gate = AsyncTaskGate(_build_client(args.host_url or settings.host_url, settings))
    issues = gate.fetch_issues(args.project_key, args.page_size)
    if args.json:
        print(json.dumps([issue.model_dump(mode="json") for issue in issues], indent=2))
    else:
        print(render_issues_text(issues))
    return EXIT_OK


def _build_client(host_url: str, settings: Settings) -> AnalysisClient:
    return AnalysisClient(
        base_url=host_url,
        token=settings.resolved_token(),
        timeout_s=settings.request_timeout_s,
    )


if __name__ == "__main__":
    raise SystemExit(main())
