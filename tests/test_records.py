from datetime import datetime, timezone

import pytest

from voratiq.run.records import (
    RunRecordParseError,
    append_run_record,
    read_run_records,
)
from voratiq.run.types import (
    AgentAssets,
    AgentInvocationRecord,
    AgentTestResult,
    RunRecord,
    SpecReference,
)


def _record(run_id: str, with_tests: bool = False) -> RunRecord:
    base = f".voratiq/runs/{run_id}/codex"
    agent = AgentInvocationRecord(
        agent_id="codex",
        model="gpt-5",
        binary_path="/usr/local/bin/codex",
        argv=["--model", "gpt-5", "prompt text"],
        prompt="prompt text",
        workspace_path=f"{base}/workspace",
        started_at=datetime(2025, 10, 1, 14, 35, tzinfo=timezone.utc),
        completed_at=datetime(2025, 10, 1, 14, 40, tzinfo=timezone.utc),
        status="succeeded",
        summary="Add hello file",
        commit="a" * 40,
        change_summary="1 file changed, 1 insertion(+)",
        assets=AgentAssets(
            stdout=f"{base}/stdout.log",
            stderr=f"{base}/stderr.log",
            workspace=f"{base}/workspace",
            diff=f"{base}/diff.patch",
            summary=f"{base}/summary.txt",
            tests=f"{base}/tests.log" if with_tests else None,
        ),
        tests=AgentTestResult(status="passed", command="pytest", exit_code=0, log_path=f"{base}/tests.log")
        if with_tests else None,
    )
    return RunRecord(
        run_id=run_id,
        spec=SpecReference(path="specs/hello.md", sha256="0" * 64),
        created_at=datetime(2025, 10, 1, 14, 35, tzinfo=timezone.utc),
        base_revision="b" * 40,
        root_path=".",
        run_path=f".voratiq/runs/{run_id}",
        agents=[agent],
    )


def test_append_and_read_back(tmp_path):
    runs_file = tmp_path / "runs.jsonl"
    written = [_record("run-1"), _record("run-2", with_tests=True), _record("run-3")]

    for record in written:
        append_run_record(runs_file, record)

    assert read_run_records(runs_file) == written
    assert len(runs_file.read_text(encoding="utf-8").splitlines()) == 3


def test_json_uses_camel_case_and_omits_absent_fields(tmp_path):
    runs_file = tmp_path / "runs.jsonl"
    append_run_record(runs_file, _record("run-1"))

    line = runs_file.read_text(encoding="utf-8")
    assert '"runId":"run-1"' in line
    assert '"baseRevision"' in line
    assert '"changeSummary"' in line
    assert '"tests"' not in line
    assert '"error"' not in line


def test_append_never_rewrites(tmp_path):
    runs_file = tmp_path / "runs.jsonl"
    runs_file.write_text("keep me\n", encoding="utf-8")

    append_run_record(runs_file, _record("run-1"))

    assert runs_file.read_text(encoding="utf-8").startswith("keep me\n")


def test_missing_file_reads_empty(tmp_path):
    assert read_run_records(tmp_path / "nope.jsonl") == []


def test_blank_lines_are_skipped(tmp_path):
    runs_file = tmp_path / "runs.jsonl"
    append_run_record(runs_file, _record("run-1"))
    with open(runs_file, "a", encoding="utf-8") as f:
        f.write("\n")
    append_run_record(runs_file, _record("run-2"))

    assert [r.run_id for r in read_run_records(runs_file)] == ["run-1", "run-2"]


def test_corrupt_line_names_the_line(tmp_path):
    runs_file = tmp_path / "runs.jsonl"
    append_run_record(runs_file, _record("run-1"))
    with open(runs_file, "a", encoding="utf-8") as f:
        f.write("{not json\n")

    with pytest.raises(RunRecordParseError) as excinfo:
        read_run_records(runs_file)
    assert excinfo.value.line_number == 2

