"""Script adherence — key phrase matching, sequence order, response handling, terminology.

Sub-scores (out of 100):
- phrase match  40  required key phrases found
- sequence      20  -5 per phrase whose order is below an earlier template entry
- response      20  customer engagement on critical questions
- terminology   20  -10 per critical banned term, -5 per warning term
"""

from loguru import logger

from analysis.scoring import round_half_up
from analysis.transcript_index import TranscriptIndex
from config.rules import BANNED_TERMS, CRITICAL_QUESTION_TERMS, EMPATHY_PATTERNS
from config.schemas import (
    AdherenceCalculation,
    AdherenceLevel,
    CampaignTemplate,
    EmpathyPhrase,
    EmpathyResult,
    KeyPhraseMatch,
    ScriptAdherence,
    Severity,
    Speaker,
    TerminologyIssue,
)

PHRASE_WEIGHT = 40
SEQUENCE_WEIGHT = 20
SEQUENCE_PENALTY = 5
RESPONSE_WEIGHT = 20
TERMINOLOGY_WEIGHT = 20
TERMINOLOGY_PENALTY = {Severity.CRITICAL: 10, Severity.WARNING: 5}


def adherence_level(score: int) -> AdherenceLevel:
    if score >= 80:
        return AdherenceLevel.HIGH
    if score >= 60:
        return AdherenceLevel.MODERATE
    return AdherenceLevel.LOW


def count_sequence_violations(found_orders: list[int]) -> int:
    """Count found phrases whose script order is below the running maximum.

    Args:
        found_orders: script order of each phrase found, in template order

    Skipped steps are not penalized.
    """
    violations = 0
    highest = 0
    for order in found_orders:
        if order < highest:
            violations += 1
        highest = max(highest, order)
    return violations


def response_handling_score(index: TranscriptIndex) -> int:
    if not index.customer_lines:
        return 0
    critical_questions = sum(
        1 for line in index.agent_lines
        if "?" in line.text and any(term in line.text.lower() for term in CRITICAL_QUESTION_TERMS)
    )
    if critical_questions == 0:
        return RESPONSE_WEIGHT
    ratio = min(len(index.customer_lines) / critical_questions, 1)
    return round_half_up(ratio * RESPONSE_WEIGHT)


def find_terminology_issues(index: TranscriptIndex) -> list[TerminologyIssue]:
    """Banned terms present in the call.

    Financial-context terms are only an issue when the agent says them; a
    customer saying "money" is not the agent's fault.
    """
    issues = []
    for banned in BANNED_TERMS:
        if not index.contains(banned.term):
            continue
        if banned.context == "financial" and index.first_line(banned.term, Speaker.AGENT) is None:
            continue
        issues.append(TerminologyIssue(term=banned.term, replacement=banned.replacement, severity=banned.severity))
    return issues


def terminology_score(issues: list[TerminologyIssue]) -> int:
    score = TERMINOLOGY_WEIGHT - sum(TERMINOLOGY_PENALTY[i.severity] for i in issues)
    return max(0, score)


def score_script_adherence(index: TranscriptIndex, template: CampaignTemplate) -> ScriptAdherence:
    """Deterministic script adherence score for one call against its campaign script."""
    if index.is_empty:
        logger.warning("Script adherence: empty transcript — all sub-scores 0")
        return ScriptAdherence(
            sequence_correct=True,
            key_phrases_missing=[p.phrase for p in template.key_phrases if p.required],
        )

    found: list[KeyPhraseMatch] = []
    missing: list[str] = []
    found_orders: list[int] = []
    required_total = 0
    required_found = 0

    for key_phrase in template.key_phrases:
        if key_phrase.required:
            required_total += 1
        evidence = index.find_phrase(key_phrase.phrase, key_phrase.variations)
        if evidence.found:
            if key_phrase.required:
                required_found += 1
            found.append(KeyPhraseMatch(
                phrase=key_phrase.phrase,
                order=key_phrase.order,
                timestamp=evidence.timestamp,
                evidence=evidence.snippet,
            ))
            found_orders.append(key_phrase.order)
        elif key_phrase.required:
            missing.append(key_phrase.phrase)

    phrase_score = required_found / required_total * PHRASE_WEIGHT if required_total else 0
    violations = count_sequence_violations(found_orders)
    sequence_score = max(0, SEQUENCE_WEIGHT - violations * SEQUENCE_PENALTY)
    response_score = response_handling_score(index)
    issues = find_terminology_issues(index)
    term_score = terminology_score(issues)

    total = round_half_up(phrase_score + sequence_score + response_score + term_score)
    logger.debug(
        f"Script adherence: phrases {required_found}/{required_total}, "
        f"{violations} sequence violation(s), response {response_score}, terminology {term_score}"
    )

    return ScriptAdherence(
        score=total,
        level=adherence_level(total),
        key_phrases_found=found,
        key_phrases_missing=missing,
        sequence_correct=violations == 0,
        terminology_issues=issues,
        calculation=AdherenceCalculation(
            phrase_match_score=round_half_up(phrase_score),
            sequence_score=sequence_score,
            response_handling_score=response_score,
            terminology_score=term_score,
        ),
    )


def detect_empathy(index: TranscriptIndex) -> EmpathyResult:
    """Empathy phrases used by the agent; +10 per distinct phrase, capped at 100."""
    phrases = []
    for pattern in EMPATHY_PATTERNS:
        for line in index.agent_lines:
            if pattern in line.text.lower():
                phrases.append(EmpathyPhrase(phrase=pattern, timestamp=line.timestamp, context=line.text[:80]))
                break
    return EmpathyResult(
        displayed=bool(phrases),
        phrases_found=phrases,
        score=min(100, len(phrases) * 10),
    )
