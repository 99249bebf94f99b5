"""Tests for JSONL / CSV audit exports."""

import json
from pathlib import Path

import pandas as pd

from pipeline.orchestrator import score_transcript
from pipeline.output_generator import (
    export_all,
    export_checklist_csv,
    export_summary_csv,
    export_to_jsonl,
    export_violations_csv,
)

PROMISE_CALL = "\n".join([
    "[0:00] Agent: Hi, this is Sarah with America's Health on a recorded line.",
    "[0:05] Customer: Yes.",
    "[0:08] Agent: Good news, you are approved for this benefit.",
    "[0:12] Customer: Okay.",
])


def _make_results(compliant_transcript):
    return [
        score_transcript(compliant_transcript, "ACA", call_id="good"),
        score_transcript(PROMISE_CALL, "ACA", call_id="bad"),
    ]


class TestExports:
    def test_jsonl_one_record_per_line(self, tmp_path, compliant_transcript):
        path = export_to_jsonl(_make_results(compliant_transcript), str(tmp_path / "out" / "results.jsonl"))
        lines = Path(path).read_text().splitlines()
        assert len(lines) == 2
        assert json.loads(lines[0])["call_id"] == "good"
        assert json.loads(lines[1])["auto_fail_triggered"] is True

    def test_summary_csv(self, tmp_path, compliant_transcript):
        path = export_summary_csv(_make_results(compliant_transcript), str(tmp_path / "summary.csv"))
        df = pd.read_csv(path)
        assert list(df["call_id"]) == ["good", "bad"]
        assert list(df["compliance_score"]) == [100, 0]
        assert df.loc[0, "checklist_passed"] == 11
        assert "AF-01" in df.loc[1, "auto_fail_codes"]

    def test_violations_csv(self, tmp_path, compliant_transcript):
        path = export_violations_csv(_make_results(compliant_transcript), str(tmp_path / "violations.csv"))
        df = pd.read_csv(path)
        assert set(df["call_id"]) == {"bad"}
        assert "AF-01" in set(df["code"])
        assert set(df["kind"]) <= {"auto_fail", "warning"}

    def test_checklist_csv(self, tmp_path, compliant_transcript):
        path = export_checklist_csv(_make_results(compliant_transcript), str(tmp_path / "checklist.csv"))
        df = pd.read_csv(path)
        assert len(df) == 22
        assert set(df[df["call_id"] == "good"]["status"]) == {"PASS"}

    def test_accepts_plain_dicts(self, tmp_path, compliant_transcript):
        records = [r.to_record() for r in _make_results(compliant_transcript)]
        path = export_summary_csv(records, str(tmp_path / "summary.csv"))
        assert len(pd.read_csv(path)) == 2

    def test_no_violations_writes_nothing(self, tmp_path, compliant_transcript):
        records = [score_transcript(compliant_transcript, "ACA")]
        assert export_violations_csv(records, str(tmp_path / "violations.csv")) == ""
        assert not (tmp_path / "violations.csv").exists()

    def test_export_all(self, tmp_path, compliant_transcript):
        outputs = export_all(_make_results(compliant_transcript), str(tmp_path))
        assert set(outputs) == {"jsonl", "summary_csv", "violations_csv", "checklist_csv"}
        for path in outputs.values():
            assert (tmp_path / path.split("/")[-1]).exists()
