"""Pipeline Orchestrator — runs one call through merge and compliance scoring.

  Stage 1-2: merge the two STT channels into exclusive turns + timeline
  Stage 3:   format and index the transcript
  Stage 4:   resolve the campaign rule set
  Stage 5-7: script adherence, violations, checklist evidence (independent)
  Stage 8:   aggregate the score and apply the auto-fail override

Every stage is a pure function of its inputs and the immutable rule tables, so
the same call always produces the same result (apart from processed_at).
"""

import time
from datetime import datetime, timezone

from loguru import logger

from analysis.campaign import get_script_template, resolve_campaign
from analysis.checklist import (
    extract_checklist,
    skipped_compliance_violation,
    unconfirmed_compliance_warnings,
)
from analysis.scoring import aggregate_score
from analysis.script_adherence import detect_empathy, score_script_adherence
from analysis.timeline import build_timeline
from analysis.transcript_index import TranscriptIndex, format_transcript
from analysis.transcript_merge import merge_channels
from analysis.violations import detect_violations
from config import settings
from config.rules import AUTO_FAIL_RULES
from config.schemas import (
    CallPayload,
    ChecklistStatus,
    ComplianceResult,
    CriticalMoment,
    CriticalMoments,
    LanguageAssessment,
    MergedTranscript,
    ScoringMetadata,
    Segment,
)


def merge_call_channels(
    agent_segments: list[Segment], customer_segments: list[Segment]
) -> MergedTranscript:
    """Stages 1-3: overlap-split both channels, build the timeline, render the transcript."""
    agent_turns, customer_turns, all_turns = merge_channels(agent_segments, customer_segments)
    timeline = build_timeline(agent_turns, customer_turns, all_turns)
    metrics = timeline.metrics
    logger.info(
        f"Timeline: {metrics.call_duration_seconds}s call, agent {metrics.agent_speaking_pct}% / "
        f"customer {metrics.customer_speaking_pct}%, silence {metrics.silence_time}s, "
        f"{len(timeline.markers)} markers"
    )
    return MergedTranscript(
        transcript=format_transcript(all_turns),
        agent_segments=agent_turns,
        customer_segments=customer_turns,
        all_segments=all_turns,
        total_segments=len(all_turns),
        speaker_metrics=metrics,
        speaker_timeline=timeline.seconds,
        timeline_markers=timeline.markers,
        call_duration_seconds=metrics.call_duration_seconds,
        overlap_splitting_applied=True,
        original_agent_segment_count=len(agent_segments),
        original_customer_segment_count=len(customer_segments),
    )


def _moments(violations) -> list[CriticalMoment]:
    return [
        CriticalMoment(code=v.code, name=v.violation, time=v.timestamp, evidence=v.evidence)
        for v in violations
    ]


def score_transcript(
    transcript: str | None,
    product_type: str | None = None,
    existing_analysis: dict | None = None,
    *,
    call_id: str | None = None,
    job_id: str | None = None,
    batch_id: str | None = None,
    file_name: str | None = None,
    recording_url: str | None = None,
    safe_exception_window: int | None = None,
    processed_at: str | None = None,
) -> ComplianceResult:
    """Stages 3-8: score a merged '[m:ss] Speaker: text' transcript.

    Args:
        transcript: Merged transcript text (empty or None scores as no evidence)
        product_type: Free-text product type; falls back to the upstream
            analysis' campaign, then ACA
        existing_analysis: Upstream (AI) analysis with an optional `checklist`
            list and `language_assessment` dict
        safe_exception_window: Overrides SAFE_EXCEPTION_WINDOW_LINES
        processed_at: Fixed ISO timestamp for reproducible output

    Returns:
        ComplianceResult ready for persistence
    """
    existing_analysis = existing_analysis if isinstance(existing_analysis, dict) else {}
    tag = call_id or job_id or "call"
    if safe_exception_window is None:
        safe_exception_window = settings.SAFE_EXCEPTION_WINDOW_LINES

    # ── STAGE 3: INDEX TRANSCRIPT ──
    index = TranscriptIndex(transcript)
    logger.info(
        f"[{tag}] Stage 3: {len(index.lines)} lines parsed "
        f"({len(index.agent_lines)} agent, {len(index.customer_lines)} customer, {index.dropped} dropped)"
    )
    if index.is_empty:
        logger.warning(f"[{tag}] Empty transcript — no evidence, no violations")

    # ── STAGE 4: CAMPAIGN RULES ──
    raw_product = product_type or existing_analysis.get("campaign") or "ACA"
    product = str(raw_product).upper()
    campaign = resolve_campaign(product)
    template = get_script_template(campaign)
    logger.info(f"[{tag}] Stage 4: campaign {campaign.value} (product_type={product})")

    # ── STAGES 5-7: MATCHERS ──
    adherence = score_script_adherence(index, template)
    empathy = detect_empathy(index)
    auto_fails, warnings = detect_violations(index, campaign, safe_exception_window)
    checklist = extract_checklist(index, template, existing_analysis.get("checklist"))

    failed_critical = [i for i in checklist if i.critical and i.status != ChecklistStatus.PASS]
    if not index.is_empty:
        skipped = skipped_compliance_violation(checklist)
        if skipped is not None:
            auto_fails.append(skipped)
        warnings.extend(unconfirmed_compliance_warnings(index, checklist))

    # ── STAGE 8: SCORE ──
    score, auto_fail = aggregate_score(checklist, [*auto_fails, *warnings])
    logger.info(
        f"[{tag}] Stage 8: compliance {score}/100, script adherence {adherence.score} "
        f"({adherence.level.value}), auto-fail={auto_fail}, {len(warnings)} warning(s)"
    )

    upstream_language = existing_analysis.get("language_assessment")
    language = LanguageAssessment.model_validate({
        **(upstream_language if isinstance(upstream_language, dict) else {}),
        "script_adherence": adherence.level,
        "empathy_displayed": empathy.displayed,
        "empathy_details": empathy,
    })

    return ComplianceResult(
        call_id=call_id,
        job_id=job_id,
        batch_id=batch_id,
        file_name=file_name,
        recording_url=recording_url,
        campaign=campaign,
        product_type=product,
        compliance_score=score,
        auto_fail_triggered=auto_fail,
        auto_fail_reasons=auto_fails,
        compliance_warnings=warnings,
        critical_moments=CriticalMoments(
            auto_fails=_moments(auto_fails),
            warnings=_moments(warnings),
            passes=[
                CriticalMoment(name=i.name, time=i.time, evidence=i.evidence)
                for i in checklist if i.critical and i.status == ChecklistStatus.PASS
            ],
        ),
        checklist=checklist,
        script_adherence=adherence,
        language_assessment=language,
        scoring_metadata=ScoringMetadata(
            processor=settings.PROCESSOR_NAME,
            processed_at=processed_at or datetime.now(timezone.utc).isoformat(),
            campaign_detected=campaign,
            script_template_applied=f"{campaign.value}_TEMPLATE",
            transcript_lines_parsed=len(index.lines),
            transcript_lines_dropped=index.dropped,
            agent_lines=len(index.agent_lines),
            customer_lines=len(index.customer_lines),
            auto_fail_codes_checked=len(AUTO_FAIL_RULES),
            critical_items_failed=len(failed_critical),
            terminology_issues_found=len(adherence.terminology_issues),
            safe_exception_window=safe_exception_window,
        ),
    )


def process_call(
    payload: CallPayload, processed_at: str | None = None
) -> tuple[ComplianceResult, MergedTranscript | None]:
    """Run one call end to end.

    Channel segments take precedence over a pre-merged transcript when both
    are present.

    Returns:
        (result, merged) where merged is None for pre-merged transcript input
    """
    tag = payload.call_id or payload.job_id or "call"
    start = time.perf_counter()
    logger.info(f"[{tag}] Starting compliance scoring")

    merged = None
    transcript = payload.transcript
    if payload.has_segments:
        logger.info(
            f"[{tag}] Stage 1-2: merging {len(payload.agent_segments)} agent + "
            f"{len(payload.customer_segments)} customer segments"
        )
        merged = merge_call_channels(payload.agent_segments, payload.customer_segments)
        transcript = merged.transcript

    result = score_transcript(
        transcript,
        payload.product_type,
        payload.analysis,
        call_id=payload.call_id,
        job_id=payload.job_id,
        batch_id=payload.batch_id,
        file_name=payload.file_name,
        recording_url=payload.recording_url,
        processed_at=processed_at,
    )
    logger.info(f"[{tag}] Pipeline complete in {time.perf_counter() - start:.2f}s")
    return result, merged
