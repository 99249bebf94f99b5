"""Auto-fail violation detection (AF-01 .. AF-14) — rule-table driven keyword matching.

Each rule's detection method decides how it is evaluated:
- pattern                  trigger substrings, suppressed by safe exceptions
- campaign_disqualifier    AF-10, customer disqualified yet transfer proceeds
- checklist_completion     AF-02, derived from the checklist (analysis.checklist)
- customer_response_check  AF-06, derived from the checklist (analysis.checklist)
- disposition_validation   AF-07, needs dialer disposition data; not evaluated here

Warning-severity rules (AF-13) are reported but never trigger auto-fail.
"""

from loguru import logger

from analysis.transcript_index import TranscriptIndex
from config.rules import AUTO_FAIL_RULES, DISQUALIFIERS, TRANSFER_TERMS
from config.schemas import (
    Campaign,
    DetectionMethod,
    Severity,
    Speaker,
    Violation,
    ViolationRule,
)

# Minimum agent lines before a customer-silent call counts as a no-response transfer
NO_RESPONSE_AGENT_LINES = 3


def _is_safe(index: TranscriptIndex, rule: ViolationRule, line_idx: int | None,
             window: int | None) -> bool:
    """True if any of the rule's safe exceptions appears in scope.

    Scope is the whole transcript unless a window is configured and the
    trigger was located on a line, in which case only lines within `window`
    of the trigger line are searched.
    """
    for safe in rule.safe_exceptions:
        if window is not None and line_idx is not None:
            if index.window_contains(safe, line_idx, window):
                return True
        elif index.contains(safe):
            return True
    return False


def _detect_pattern(index: TranscriptIndex, rule: ViolationRule,
                    window: int | None) -> Violation | None:
    """First unsuppressed trigger for a rule, or None. One violation per rule at most."""
    for trigger in rule.triggers:
        if not index.contains(trigger):
            continue
        line_idx = index.first_line_index(trigger)
        if _is_safe(index, rule, line_idx, window):
            logger.debug(f"{rule.code.value}: '{trigger}' suppressed by safe exception")
            continue
        line = index.lines[line_idx] if line_idx is not None else None
        return Violation(
            code=rule.code,
            violation=rule.name,
            description=rule.description,
            trigger=trigger,
            timestamp=line.timestamp if line else None,
            evidence=line.text if line else f'Transcript contains: "{trigger}"',
            speaker=line.speaker.value if line else "unknown",
            severity=rule.severity,
        )
    return None


def _detect_no_response(index: TranscriptIndex, rule: ViolationRule) -> Violation | None:
    """Agent kept talking but the customer never said anything."""
    if index.customer_lines or len(index.agent_lines) <= NO_RESPONSE_AGENT_LINES:
        return None
    return Violation(
        code=rule.code,
        violation=rule.name,
        description="No customer responses detected in transcript",
        trigger="No customer engagement",
        timestamp=None,
        evidence="Transcript shows agent speaking but no customer responses",
        speaker="system",
        severity=Severity.CRITICAL,
    )


def _detect_disqualified_transfer(index: TranscriptIndex, rule: ViolationRule,
                                  campaign: Campaign) -> Violation | None:
    """Customer disqualified themselves, yet the call still moved toward a transfer."""
    transfer_mentioned = any(index.contains(term) for term in TRANSFER_TERMS)
    if not transfer_mentioned:
        return None
    for disqualifier in DISQUALIFIERS[campaign]:
        line = index.first_line(disqualifier, Speaker.CUSTOMER)
        if line is None:
            continue
        return Violation(
            code=rule.code,
            violation=rule.name,
            description=rule.description,
            trigger=disqualifier,
            timestamp=line.timestamp,
            evidence=line.text,
            speaker=Speaker.CUSTOMER.value,
            severity=rule.severity,
        )
    return None


def detect_violations(
    index: TranscriptIndex,
    campaign: Campaign,
    safe_exception_window: int | None = None,
    rules: tuple[ViolationRule, ...] = AUTO_FAIL_RULES,
) -> tuple[list[Violation], list[Violation]]:
    """Evaluate the transcript-driven auto-fail rules.

    Args:
        index: Parsed transcript
        campaign: Resolved campaign (selects the AF-10 disqualifier list)
        safe_exception_window: Lines either side of a trigger searched for safe
            exceptions; None searches the whole transcript
        rules: Rule table, AF-01..AF-14 in code order

    Returns:
        (auto_fails, warnings) in rule order
    """
    auto_fails: list[Violation] = []
    warnings: list[Violation] = []

    if index.is_empty:
        return auto_fails, warnings

    for rule in rules:
        found: list[Violation] = []

        if rule.detection_method == DetectionMethod.PATTERN:
            if rule.requires_customer_engagement:
                no_response = _detect_no_response(index, rule)
                if no_response is not None:
                    found.append(no_response)
            violation = _detect_pattern(index, rule, safe_exception_window)
            if violation is not None:
                found.append(violation)
        elif rule.detection_method == DetectionMethod.CAMPAIGN_DISQUALIFIER:
            violation = _detect_disqualified_transfer(index, rule, campaign)
            if violation is not None:
                found.append(violation)
        elif rule.detection_method in (
            DetectionMethod.CHECKLIST_COMPLETION,
            DetectionMethod.CUSTOMER_RESPONSE_CHECK,
            DetectionMethod.DISPOSITION_VALIDATION,
        ):
            continue
        else:
            raise ValueError(f"Unhandled detection method {rule.detection_method!r} for {rule.code.value}")

        for violation in found:
            if violation.severity == Severity.WARNING:
                warnings.append(violation)
            else:
                auto_fails.append(violation)

    if auto_fails or warnings:
        logger.info(
            f"Violation detection: {len(auto_fails)} auto-fail(s) "
            f"[{', '.join(v.code.value for v in auto_fails)}], {len(warnings)} warning(s)"
        )
    return auto_fails, warnings
