from __future__ import annotations

import json
from pathlib import Path

import pytest
from fastapi.testclient import TestClient

from fakes import FakeHTTPResponse
from taskgate import cli
from taskgate.app import client as client_module
from taskgate.mock_systems.analysis_api import AnalysisStore, ScriptTaskRequest


@pytest.fixture
def mock_env(monkeypatch: pytest.MonkeyPatch, mock_host: TestClient) -> TestClient:
    monkeypatch.setenv("TASKGATE_HOST_URL", "http://analysis.mock")
    monkeypatch.setenv("TASKGATE_POLL_INTERVAL_S", "0")
    monkeypatch.setenv("TASKGATE_MAX_ATTEMPTS", "5")
    return mock_host


def test_check_passing_gate_exits_zero(mock_env: TestClient, capsys: pytest.CaptureFixture[str]) -> None:
    exit_code = cli.main(["check", "--task-id", "task-gate-pass"])

    out = capsys.readouterr().out
    assert exit_code == cli.EXIT_OK
    assert "Analysis task task-gate-pass: success" in out
    assert "Quality gate: OK (pass)" in out


def test_check_failing_gate_prints_conditions_and_issues(
    mock_env: TestClient, capsys: pytest.CaptureFixture[str]
) -> None:
    exit_code = cli.main(["check", "--task-id", "task-gate-error"])

    out = capsys.readouterr().out
    assert exit_code == cli.EXIT_GATE_FAILED
    assert "Quality gate: ERROR (fail)" in out
    assert "new_coverage: actual=61.5 LT 80" in out
    assert "new_reliability_rating" not in out
    assert "checkout-web:src/main/java/shop/CartService.java:42: Remove this unused" in out
    assert "checkout-web:pom.xml:?: Update this dependency" in out


def test_check_json_output(mock_env: TestClient, capsys: pytest.CaptureFixture[str]) -> None:
    exit_code = cli.main(["check", "--task-id", "task-gate-error", "--json"])

    payload = json.loads(capsys.readouterr().out)
    assert exit_code == cli.EXIT_GATE_FAILED
    assert payload["passed"] is False
    assert payload["gate"]["verdict"] == "fail"
    assert len(payload["gate"]["issues"]) == 2
    assert payload["task"]["status"] == "success"


@pytest.mark.parametrize(
    ("argv", "expected"),
    [
        (["check", "--task-id", "task-failed"], cli.EXIT_TASK_FAILED),
        (["check", "--task-id", "task-stuck", "--max-attempts", "2"], cli.EXIT_POLL_TIMEOUT),
        (["check", "--task-id", "no-such-task"], cli.EXIT_NETWORK_ERROR),
    ],
)
def test_check_failure_exit_codes(mock_env: TestClient, argv: list[str], expected: int) -> None:
    assert cli.main(argv) == expected


def test_check_missing_analysis_id_exits_malformed(
    mock_env: TestClient, mock_store: AnalysisStore
) -> None:
    mock_store.add_task(ScriptTaskRequest(id="task-bare", component_key="legacy", statuses=["SUCCESS"]))

    assert cli.main(["check", "--task-id", "task-bare"]) == cli.EXIT_MALFORMED_RESPONSE


def test_check_reads_report_task_file(
    mock_host: TestClient,
    monkeypatch: pytest.MonkeyPatch,
    tmp_path: Path,
    capsys: pytest.CaptureFixture[str],
) -> None:
    monkeypatch.setenv("TASKGATE_HOST_URL", "http://unused.invalid")
    report = tmp_path / "report-task.txt"
    report.write_text(
        "projectKey=checkout-web\n"
        "serverUrl=http://analysis.mock\n"
        "dashboardUrl=http://analysis.mock/dashboard?id=checkout-web\n"
        "ceTaskId=task-gate-error\n",
        encoding="utf-8",
    )

    exit_code = cli.main(["check", "--report-task", str(report), "--poll-interval", "0"])

    captured = capsys.readouterr()
    assert exit_code == cli.EXIT_GATE_FAILED
    assert "Analysis task task-gate-error" in captured.out
    assert "Dashboard: http://analysis.mock/dashboard?id=checkout-web" in captured.err


def test_check_uses_report_task_path_from_settings(
    mock_env: TestClient, monkeypatch: pytest.MonkeyPatch, tmp_path: Path
) -> None:
    report = tmp_path / "report-task.txt"
    report.write_text("ceTaskId=task-gate-pass\n", encoding="utf-8")
    monkeypatch.setenv("TASKGATE_REPORT_TASK_PATH", str(report))

    assert cli.main(["check"]) == cli.EXIT_OK


def test_check_missing_report_task_file(mock_env: TestClient, tmp_path: Path) -> None:
    exit_code = cli.main(["check", "--report-task", str(tmp_path / "absent.txt")])

    assert exit_code == cli.EXIT_MALFORMED_RESPONSE


@pytest.mark.parametrize(
    "extra",
    [
        ["--max-attempts", "0"],
        ["--max-attempts", "many"],
        ["--poll-interval", "-1"],
        ["--page-size", "0"],
        ["--page-size", "501"],
        ["--task-id", " "],
    ],
)
def test_check_rejects_invalid_flags_as_usage_error(mock_env: TestClient, extra: list[str]) -> None:
    argv = ["check", *extra] if extra[0] == "--task-id" else ["check", "--task-id", "task-gate-pass", *extra]

    with pytest.raises(SystemExit) as exc_info:
        cli.main(argv)

    assert exc_info.value.code == 2


def test_issues_rejects_invalid_page_size(mock_env: TestClient) -> None:
    with pytest.raises(SystemExit) as exc_info:
        cli.main(["issues", "--project-key", "checkout-web", "--page-size", "-5"])

    assert exc_info.value.code == 2


def test_unknown_log_level_is_usage_error(mock_env: TestClient) -> None:
    with pytest.raises(SystemExit) as exc_info:
        cli.main(["--log-level", "LOUD", "check", "--task-id", "task-gate-pass"])

    assert exc_info.value.code == 2


def test_log_level_is_case_insensitive(mock_env: TestClient) -> None:
    assert cli.main(["--log-level", "debug", "check", "--task-id", "task-gate-pass"]) == cli.EXIT_OK


def test_invalid_environment_settings_are_usage_error(
    mock_env: TestClient, monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture[str]
) -> None:
    monkeypatch.setenv("TASKGATE_MAX_ATTEMPTS", "0")

    with pytest.raises(SystemExit) as exc_info:
        cli.main(["check", "--task-id", "task-gate-pass"])

    assert exc_info.value.code == 2
    assert "invalid configuration" in capsys.readouterr().err


def test_check_non_utf8_task_body_exits_malformed(
    mock_env: TestClient, monkeypatch: pytest.MonkeyPatch
) -> None:
    monkeypatch.setattr(client_module.request, "urlopen", lambda req, timeout: FakeHTTPResponse(b"\xff\xfe{"))

    assert cli.main(["check", "--task-id", "task-gate-pass"]) == cli.EXIT_MALFORMED_RESPONSE


def test_status_command_prints_single_poll(mock_env: TestClient, capsys: pytest.CaptureFixture[str]) -> None:
    exit_code = cli.main(["status", "--task-id", "task-gate-pass", "--json"])

    payload = json.loads(capsys.readouterr().out)
    assert exit_code == cli.EXIT_OK
    assert payload["status"] == "pending"
    assert payload["component_key"] == "payments-service"


def test_issues_command_lists_issues(mock_env: TestClient, capsys: pytest.CaptureFixture[str]) -> None:
    exit_code = cli.main(["issues", "--project-key", "checkout-web"])

    out = capsys.readouterr().out
    assert exit_code == cli.EXIT_OK
    assert out.count("\n") == 2
    assert "CartService.java:42" in out
