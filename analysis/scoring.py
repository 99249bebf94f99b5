"""Score aggregation — checklist weights, status normalization, auto-fail override.

Scores feed a human audit trail and must be bit-reproducible, so rounding is
half-up (12.5 → 13) rather than Python's round-half-even.
"""

import math

from loguru import logger

from config.schemas import ChecklistResult, ChecklistStatus, Severity, Violation

_PASS_VALUES = {"pass", "met", "yes", "true", "1"}
_NA_VALUES = {"n/a", "na", "not applicable"}


def round_half_up(value: float) -> int:
    return math.floor(value + 0.5)


def normalize_status(raw) -> ChecklistStatus:
    """Map any upstream status value to PASS / FAIL / N/A.

    Total and idempotent: unknown, empty and None all become FAIL.
    """
    if isinstance(raw, ChecklistStatus):
        return raw
    if raw is None:
        return ChecklistStatus.FAIL
    value = str(raw).strip().lower()
    if value in _PASS_VALUES:
        return ChecklistStatus.PASS
    if value in _NA_VALUES:
        return ChecklistStatus.NA
    return ChecklistStatus.FAIL


def checklist_weights(checklist: list[ChecklistResult]) -> tuple[int, int]:
    """Return (earned_weight, total_weight), ignoring N/A items entirely."""
    total = 0
    earned = 0
    for item in checklist:
        if item.status == ChecklistStatus.NA:
            continue
        total += item.weight
        if item.status == ChecklistStatus.PASS:
            earned += item.weight
    return earned, total


def compute_compliance_score(checklist: list[ChecklistResult]) -> int:
    earned, total = checklist_weights(checklist)
    return round_half_up(earned / total * 100) if total > 0 else 0


def has_critical_violation(violations: list[Violation]) -> bool:
    return any(v.severity == Severity.CRITICAL for v in violations)


def aggregate_score(
    checklist: list[ChecklistResult], violations: list[Violation]
) -> tuple[int, bool]:
    """Final compliance score and auto-fail flag.

    Any critical-severity violation forces the score to 0, however much of the
    checklist passed.

    Returns:
        (compliance_score, auto_fail_triggered)
    """
    score = compute_compliance_score(checklist)
    auto_fail = has_critical_violation(violations)
    if auto_fail:
        codes = sorted({v.code.value for v in violations if v.severity == Severity.CRITICAL})
        logger.info(f"Auto-fail override: checklist score {score} → 0 ({', '.join(codes)})")
        score = 0
    return score, auto_fail
