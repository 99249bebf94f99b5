"""Batch score a directory of call JSON files through the compliance pipeline.

Each call is scored independently in a worker process; results carry no
cross-call state, so ordering between workers does not matter.

Usage:
    python scripts/batch_score.py [--input-dir data/calls] [--output-dir data/processed/batch_results]
                                  [--workers 4] [--product-type MEDICARE]
"""

import os
import sys
import json
import time
import argparse
from concurrent.futures import ProcessPoolExecutor, as_completed
from pathlib import Path

# Add project root to path
sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from dotenv import load_dotenv
load_dotenv()

from loguru import logger

from config import settings
from pipeline.ingest import PayloadError, load_call_payload
from pipeline.orchestrator import process_call
from pipeline.output_generator import export_all


def find_call_files(input_dir: str) -> list[Path]:
    """All *.json call documents under input_dir, sorted for stable output."""
    base = Path(input_dir)
    if not base.exists():
        logger.error(f"Input directory not found: {input_dir}")
        return []
    return sorted(p for p in base.rglob("*.json") if p.is_file())


def score_file(path: str, default_product_type: str | None = None) -> dict:
    """Score one call file. Runs inside a worker process; never raises."""
    logger.remove()
    logger.add(sys.stderr, level=settings.LOG_LEVEL)

    start = time.time()
    try:
        payload = load_call_payload(path)
        if default_product_type and not payload.product_type:
            payload = payload.model_copy(update={"product_type": default_product_type})
        result, merged = process_call(payload)
    except PayloadError as e:
        logger.error(f"Rejected {Path(path).name}: {e}")
        return {"file": path, "status": "rejected", "error": str(e),
                "processing_time_s": round(time.time() - start, 2)}
    except Exception as e:
        logger.error(f"FAILED {Path(path).name}: {e}")
        return {"file": path, "status": "failed", "error": str(e),
                "processing_time_s": round(time.time() - start, 2)}

    return {
        "file": path,
        "status": "success",
        "call_id": result.call_id,
        "campaign": result.campaign.value,
        "compliance_score": result.compliance_score,
        "auto_fail_triggered": result.auto_fail_triggered,
        "auto_fail_codes": [v.code.value for v in result.auto_fail_reasons],
        "script_adherence": result.script_adherence.score,
        "call_duration_s": merged.call_duration_seconds if merged else None,
        "processing_time_s": round(time.time() - start, 2),
        "record": result.to_record(),
    }


def main():
    parser = argparse.ArgumentParser(description="Batch compliance scoring of call transcripts")
    parser.add_argument("--input-dir", default="data/calls", help="Directory of call JSON files")
    parser.add_argument("--output-dir", default="data/processed/batch_results", help="Output directory")
    parser.add_argument("--workers", type=int, default=settings.MAX_WORKERS,
                        help="Worker processes (default: COMPLIANCE_MAX_WORKERS or CPU count)")
    parser.add_argument("--product-type", default=None,
                        help="Product type for calls that do not specify one (e.g., 'MEDICARE')")
    args = parser.parse_args()

    logger.remove()
    logger.add(sys.stderr, level=settings.LOG_LEVEL)

    files = find_call_files(args.input_dir)
    workers = args.workers or os.cpu_count() or 1
    logger.info(f"Found {len(files)} call files — scoring with {workers} worker(s)")

    output_dir = Path(args.output_dir)
    output_dir.mkdir(parents=True, exist_ok=True)

    results = []
    total_start = time.time()
    with ProcessPoolExecutor(max_workers=workers) as pool:
        futures = [pool.submit(score_file, str(f), args.product_type) for f in files]
        for future in as_completed(futures):
            outcome = future.result()
            results.append(outcome)
            if outcome["status"] == "success":
                logger.info(f"{Path(outcome['file']).name}: score={outcome['compliance_score']} "
                            f"auto_fail={outcome['auto_fail_triggered']}")

    results.sort(key=lambda r: r["file"])
    total_elapsed = time.time() - total_start

    records = [r.pop("record") for r in results if r["status"] == "success"]
    exports = export_all(records, str(output_dir)) if records else {}

    summary_path = output_dir / "batch_summary.json"
    with open(summary_path, "w") as f:
        json.dump({"calls": results, "exports": exports}, f, indent=2)

    # Print results table
    print(f"\n{'='*80}")
    print(f"BATCH SCORING COMPLETE — {len(results)} calls in {total_elapsed:.1f}s")
    print(f"{'='*80}")
    print(f"{'File':<40} {'Camp':>8} {'Score':>5} {'AutoFail':>8} {'Codes':<10} {'Status':>8}")
    print("-" * 80)
    for r in results:
        name = Path(r["file"]).name[:39]
        campaign = r.get("campaign", "?")
        score = str(r.get("compliance_score", "?"))
        auto_fail = "yes" if r.get("auto_fail_triggered") else "no" if r["status"] == "success" else "?"
        codes = ",".join(r.get("auto_fail_codes", []))[:10]
        print(f"{name:<40} {campaign:>8} {score:>5} {auto_fail:>8} {codes:<10} {r['status']:>8}")

    print(f"\nResults saved to: {summary_path}")
    succeeded = sum(1 for r in results if r["status"] == "success")
    print(f"Success: {succeeded}/{len(results)}")


if __name__ == "__main__":
    main()
