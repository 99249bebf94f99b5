"""Checklist evidence extraction — resolves each weighted checklist item to PASS / FAIL / N/A.

Upstream (AI) analysis is trusted when it carries evidence with a timestamp.
Otherwise the agent's lines are searched for the item's key phrases. The
results also drive two auto-fail codes:
- AF-02 Skipping Compliance: a critical item did not pass
- AF-06 Unconfirmed Compliance: an item needing the customer's answer passed
  but no acknowledgement follows it (warning only; upstream review may have
  verified it already)
"""

from loguru import logger

from analysis.scoring import normalize_status
from analysis.transcript_index import TranscriptIndex, quote_line
from config.rules import ACKNOWLEDGEMENT_WORDS, CHECKLIST_SEARCH_PATTERNS, RULES_BY_CODE
from config.schemas import (
    AutoFailCode,
    CampaignTemplate,
    ChecklistItemSpec,
    ChecklistResult,
    ChecklistStatus,
    FailedItem,
    Severity,
    Speaker,
    TranscriptLine,
    Violation,
)

NO_EVIDENCE = "No clear evidence found"
DEFAULT_CONFIDENCE = 50
SEARCH_CONFIDENCE = 75
RESPONSE_LOOKAHEAD = 3


def _find_upstream_item(spec: ChecklistItemSpec, upstream: list) -> dict | None:
    """Upstream checklist entry for an item: exact key first, then name prefix match."""
    items = [u for u in upstream if isinstance(u, dict)]
    for item in items:
        if item.get("key") == spec.key:
            return item
    first_word = spec.name.lower().split(" ")[0]
    for item in items:
        name = item.get("name")
        if isinstance(name, str) and first_word in name.lower():
            return item
    return None


def _confidence(raw) -> int:
    try:
        value = int(float(raw))
    except (TypeError, ValueError, OverflowError):
        return DEFAULT_CONFIDENCE
    return max(0, min(100, value)) or DEFAULT_CONFIDENCE


def _search_patterns(spec: ChecklistItemSpec) -> tuple[str, ...]:
    if spec.key == "company_name" and spec.valid_names:
        return spec.valid_names
    return CHECKLIST_SEARCH_PATTERNS.get(spec.key, ())


def _search_agent_lines(index: TranscriptIndex, patterns: tuple[str, ...]) -> TranscriptLine | None:
    """First agent line matching the highest-priority pattern that matches at all."""
    for pattern in patterns:
        line = index.first_line(pattern, Speaker.AGENT)
        if line is not None:
            return line
    return None


def resolve_item(spec: ChecklistItemSpec, index: TranscriptIndex, upstream: list) -> ChecklistResult:
    existing = _find_upstream_item(spec, upstream) or {}

    status = normalize_status(existing.get("status"))
    evidence = existing.get("evidence") or NO_EVIDENCE
    time = existing.get("time") or existing.get("timestamp") or None
    confidence = _confidence(existing.get("confidence"))

    if evidence == NO_EVIDENCE or not time:
        line = _search_agent_lines(index, _search_patterns(spec))
        if line is not None:
            status = ChecklistStatus.PASS
            evidence = quote_line(line)
            time = line.timestamp
            confidence = SEARCH_CONFIDENCE

    return ChecklistResult(
        order=spec.order,
        key=spec.key,
        name=spec.name,
        status=status,
        weight=spec.weight,
        critical=spec.critical,
        requires_customer_response=spec.requires_customer_response,
        evidence=str(evidence),
        time=str(time) if time is not None else None,
        confidence=confidence,
    )


def extract_checklist(
    index: TranscriptIndex, template: CampaignTemplate, upstream: list | None = None
) -> list[ChecklistResult]:
    """Resolve every checklist item of the campaign, in campaign order."""
    upstream = upstream if isinstance(upstream, list) else []
    results = [resolve_item(spec, index, upstream) for spec in template.checklist]
    passed = sum(1 for r in results if r.status == ChecklistStatus.PASS)
    logger.info(f"Checklist: {passed}/{len(results)} items passed ({template.name.value})")
    return results


def skipped_compliance_violation(checklist: list[ChecklistResult]) -> Violation | None:
    """AF-02 when any critical checklist item did not pass."""
    failed = [FailedItem(key=i.key, name=i.name)
              for i in checklist if i.critical and i.status != ChecklistStatus.PASS]
    if not failed:
        return None
    rule = RULES_BY_CODE[AutoFailCode.AF_02]
    names = ", ".join(f.name for f in failed)
    return Violation(
        code=rule.code,
        violation=rule.name,
        description="Critical compliance steps were not completed",
        trigger=f"Missing: {names}",
        timestamp=None,
        evidence=f"Failed critical items: {names}",
        speaker="system",
        severity=Severity.CRITICAL,
        failed_items=failed,
    )


def _evidence_line_index(index: TranscriptIndex, item: ChecklistResult) -> int | None:
    """Position in index.lines of the agent line that evidenced a checklist item."""
    for i, line in enumerate(index.lines):
        if line.speaker != Speaker.AGENT:
            continue
        if line.timestamp == item.time or (line.text and line.text[:30] in item.evidence):
            return i
    return None


def customer_responded(index: TranscriptIndex, line_idx: int,
                       vocabulary: tuple[str, ...] = ACKNOWLEDGEMENT_WORDS) -> TranscriptLine | None:
    """Acknowledging customer line within the next 3 customer lines after line_idx."""
    seen = 0
    for line in index.lines[line_idx + 1:]:
        if line.speaker != Speaker.CUSTOMER:
            continue
        seen += 1
        text = line.text.lower()
        if any(word in text for word in vocabulary):
            return line
        if seen >= RESPONSE_LOOKAHEAD:
            break
    return None


def unconfirmed_compliance_warnings(
    index: TranscriptIndex, checklist: list[ChecklistResult]
) -> list[Violation]:
    """AF-06 warnings for passed items that need, but lack, a customer acknowledgement."""
    rule = RULES_BY_CODE[AutoFailCode.AF_06]
    warnings = []
    for item in checklist:
        if not (item.requires_customer_response and item.status == ChecklistStatus.PASS):
            continue
        line_idx = _evidence_line_index(index, item)
        if line_idx is None:
            continue
        if customer_responded(index, line_idx) is None:
            warnings.append(Violation(
                code=rule.code,
                violation=rule.name,
                description=f"Customer response not detected for: {item.name}",
                trigger=item.name,
                timestamp=item.time,
                evidence=f"No customer confirmation found after agent asked about {item.name}",
                speaker="system",
                severity=Severity.WARNING,
            ))
    return warnings
