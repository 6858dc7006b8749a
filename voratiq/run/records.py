"""
runs.jsonl persistence.

The log is append-only: one RunRecord per line, prior lines are never
rewritten. Appending never reads the file.
"""

from __future__ import annotations

from pathlib import Path

from loguru import logger
from pydantic import ValidationError

from voratiq.run.types import RunRecord


class RunRecordParseError(Exception):
    def __init__(self, path: Path, line_number: int, details: str):
        self.path = path
        self.line_number = line_number
        self.details = details
        super().__init__(f"{path}:{line_number}: invalid run record: {details}")


def append_run_record(runs_file_path: Path, record: RunRecord) -> None:
    with open(runs_file_path, "a", encoding="utf-8") as f:
        f.write(record.to_json() + "\n")
    logger.debug(f"[RECORDS] Appended run {record.run_id} to {runs_file_path}")


def read_run_records(runs_file_path: Path) -> list[RunRecord]:
    """Every record in the log, oldest first. A missing log reads as empty."""
    path = Path(runs_file_path)
    if not path.exists():
        return []

    records: list[RunRecord] = []
    with open(path, encoding="utf-8") as f:
        for line_number, line in enumerate(f, start=1):
            if not line.strip():
                continue
            try:
                records.append(RunRecord.model_validate_json(line))
            except ValidationError as e:
                raise RunRecordParseError(path, line_number, str(e)) from e
    return records

