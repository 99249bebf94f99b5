"""Output Generation — audit exports of scored calls (JSONL, CSV).

Exports ComplianceResult data for review queues and QA spreadsheets:
- JSONL:          one full record per line (the persisted shape)
- Summary CSV:    one row per call
- Violations CSV: one row per auto-fail or warning
- Checklist CSV:  one row per checklist item

Accepts both ComplianceResult objects and raw dicts (from loaded JSON files).
"""

import json
from pathlib import Path

import pandas as pd
from loguru import logger

from config.schemas import ComplianceResult


def _to_dict(record) -> dict:
    """Convert ComplianceResult or dict to dict."""
    if isinstance(record, ComplianceResult):
        return record.to_record()
    return record


def _write_csv(rows: list[dict], output_path: str, label: str) -> str:
    if not rows:
        return ""
    df = pd.DataFrame(rows)
    Path(output_path).parent.mkdir(parents=True, exist_ok=True)
    df.to_csv(output_path, index=False)
    logger.info(f"{label} CSV: {output_path} ({len(rows)} rows)")
    return output_path


def export_to_jsonl(records: list, output_path: str) -> str:
    """Export full compliance records as JSON Lines (one record per line)."""
    Path(output_path).parent.mkdir(parents=True, exist_ok=True)
    with open(output_path, "w") as f:
        for record in records:
            f.write(json.dumps(_to_dict(record), default=str) + "\n")
    logger.info(f"JSONL exported: {output_path} ({len(records)} records)")
    return output_path


def export_summary_csv(records: list, output_path: str) -> str:
    """One row per call."""
    rows = [_flatten_record(_to_dict(r)) for r in records]
    return _write_csv(rows, output_path, "Summary")


def export_violations_csv(records: list, output_path: str) -> str:
    """Export every auto-fail and warning to a flat CSV (one row per violation)."""
    rows = []
    for record in records:
        r = _to_dict(record)
        for kind, key in (("auto_fail", "auto_fail_reasons"), ("warning", "compliance_warnings")):
            for v in r.get(key, []):
                rows.append({
                    "call_id": r.get("call_id"),
                    "kind": kind,
                    "code": v.get("code"),
                    "violation": v.get("violation"),
                    "trigger": v.get("trigger"),
                    "timestamp": v.get("timestamp"),
                    "speaker": v.get("speaker"),
                    "severity": v.get("severity"),
                    "evidence": v.get("evidence"),
                })
    return _write_csv(rows, output_path, "Violations")


def export_checklist_csv(records: list, output_path: str) -> str:
    """Export all checklist item results (one row per item per call)."""
    rows = []
    for record in records:
        r = _to_dict(record)
        for item in r.get("checklist", []):
            rows.append({
                "call_id": r.get("call_id"),
                "campaign": r.get("campaign"),
                "order": item.get("order"),
                "key": item.get("key"),
                "status": item.get("status"),
                "weight": item.get("weight"),
                "critical": item.get("critical"),
                "time": item.get("time"),
                "confidence": item.get("confidence"),
                "evidence": item.get("evidence"),
            })
    return _write_csv(rows, output_path, "Checklist")


def export_all(records: list, output_dir: str = "data/exports") -> dict:
    """Export all formats at once.

    Returns dict of {format: output_path} for all exported files.
    """
    Path(output_dir).mkdir(parents=True, exist_ok=True)
    outputs = {}

    path = export_to_jsonl(records, f"{output_dir}/results.jsonl")
    if path:
        outputs["jsonl"] = path

    path = export_summary_csv(records, f"{output_dir}/summary.csv")
    if path:
        outputs["summary_csv"] = path

    path = export_violations_csv(records, f"{output_dir}/violations.csv")
    if path:
        outputs["violations_csv"] = path

    path = export_checklist_csv(records, f"{output_dir}/checklist.csv")
    if path:
        outputs["checklist_csv"] = path

    logger.info(f"All exports complete: {len(outputs)} files in {output_dir}/")
    return outputs


def _flatten_record(r: dict) -> dict:
    """Flatten a compliance record dict to a single row for tabular export."""
    adherence = r.get("script_adherence") or {}
    calculation = adherence.get("calculation") or {}
    language = r.get("language_assessment") or {}
    metadata = r.get("scoring_metadata") or {}
    return {
        "call_id": r.get("call_id"),
        "file_name": r.get("file_name"),
        "campaign": r.get("campaign"),
        "product_type": r.get("product_type"),
        "compliance_score": r.get("compliance_score"),
        "auto_fail_triggered": r.get("auto_fail_triggered"),
        "auto_fail_codes": ",".join(v.get("code", "") for v in r.get("auto_fail_reasons", [])),
        "warning_codes": ",".join(v.get("code", "") for v in r.get("compliance_warnings", [])),
        "script_adherence_score": adherence.get("score"),
        "script_adherence_level": adherence.get("level"),
        "phrase_match_score": calculation.get("phrase_match_score"),
        "sequence_score": calculation.get("sequence_score"),
        "response_handling_score": calculation.get("response_handling_score"),
        "terminology_score": calculation.get("terminology_score"),
        "key_phrases_missing": len(adherence.get("key_phrases_missing", [])),
        "empathy_displayed": language.get("empathy_displayed"),
        "checklist_passed": sum(1 for i in r.get("checklist", []) if i.get("status") == "PASS"),
        "checklist_items": len(r.get("checklist", [])),
        "critical_items_failed": metadata.get("critical_items_failed"),
        "lines_parsed": metadata.get("transcript_lines_parsed"),
        "lines_dropped": metadata.get("transcript_lines_dropped"),
        "processed_at": metadata.get("processed_at"),
    }
