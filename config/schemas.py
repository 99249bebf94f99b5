"""Compliance scoring schemas — structured definitions for all pipeline stages."""

from enum import Enum
from typing import Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator


# ── SPEAKERS & SEGMENTS ──

class Speaker(str, Enum):
    AGENT = "agent"
    CUSTOMER = "customer"

    @property
    def label(self) -> str:
        """Display label used in canonical transcript lines ('Agent', 'Customer')."""
        return self.value.capitalize()


class Word(BaseModel):
    """A single word with optional timing. WhisperX emits the text under 'word'."""
    text: str = Field(default="", validation_alias=AliasChoices("text", "word"))
    start: Optional[float] = None
    end: Optional[float] = None

    @field_validator("text", mode="before")
    @classmethod
    def _none_text(cls, v):
        return "" if v is None else v


class Segment(BaseModel):
    """One STT segment from a single channel."""
    model_config = ConfigDict(frozen=True)

    speaker: Optional[Speaker] = None
    start: float = Field(default=0.0, description="Segment start in seconds")
    end: float = Field(default=0.0, description="Segment end in seconds")
    text: str = ""
    words: list[Word] = Field(default_factory=list)

    @field_validator("speaker", mode="before")
    @classmethod
    def _lower_speaker(cls, v):
        return v.strip().lower() if isinstance(v, str) else v

    @field_validator("start", "end", mode="before")
    @classmethod
    def _none_time(cls, v):
        return 0.0 if v is None else v

    @field_validator("text", mode="before")
    @classmethod
    def _none_text(cls, v):
        return "" if v is None else v

    @field_validator("words", mode="before")
    @classmethod
    def _none_words(cls, v):
        return [] if v is None else v


class MergedTurn(Segment):
    """A segment after overlap splitting, always attributed to one speaker."""
    speaker: Speaker
    split_from_overlap: bool = False


class TranscriptLine(BaseModel):
    """One parsed '[m:ss] Speaker: text' line."""
    timestamp: str = Field(description="Raw 'm:ss' marker as written in the transcript")
    speaker: Speaker
    text: str
    seconds: int = Field(ge=0)


# ── TIMELINE ──

class TimelineMarker(BaseModel):
    """Sparse playback marker for jumping into the recording."""
    time_seconds: int
    time_formatted: str
    speaker: str = Field(description="'agent', 'customer' or 'end'")
    is_speaker_change: bool = False
    has_pause_before: bool = False
    pause_duration: int = 0
    text_preview: str = ""
    segment_index: int


class SpeakerMetrics(BaseModel):
    agent_turn_count: int = 0
    customer_turn_count: int = 0
    agent_speaking_time: int = 0
    customer_speaking_time: int = 0
    total_speaking_time: int = 0
    silence_time: int = 0
    agent_speaking_pct: int = 0
    customer_speaking_pct: int = 0
    agent_time_formatted: str = "0m 0s"
    customer_time_formatted: str = "0m 0s"
    talk_ratio: str = Field(default="N/A", description="agent/customer seconds, 2 decimals, or 'N/A'")
    dominant_speaker: str = Field(default="balanced", description="'agent', 'customer' or 'balanced'")
    call_duration_seconds: int = 0


class Timeline(BaseModel):
    """Exclusive per-second speaker assignment plus derived metrics."""
    seconds: list[Optional[Speaker]] = Field(
        default_factory=list,
        description="One entry per second of call time; None means silence",
    )
    metrics: SpeakerMetrics = Field(default_factory=SpeakerMetrics)
    markers: list[TimelineMarker] = Field(default_factory=list)


class MergedTranscript(BaseModel):
    """Output of the dual-channel merge stage."""
    transcript: str = Field(description="Canonical '[m:ss] Speaker: text' lines")
    agent_segments: list[MergedTurn] = Field(default_factory=list)
    customer_segments: list[MergedTurn] = Field(default_factory=list)
    all_segments: list[MergedTurn] = Field(default_factory=list)
    total_segments: int = 0
    speaker_metrics: SpeakerMetrics = Field(default_factory=SpeakerMetrics)
    speaker_timeline: list[Optional[Speaker]] = Field(default_factory=list)
    timeline_markers: list[TimelineMarker] = Field(default_factory=list)
    call_duration_seconds: int = 0
    overlap_splitting_applied: bool = True
    original_agent_segment_count: int = 0
    original_customer_segment_count: int = 0


# ── RULE CONFIGURATION (immutable) ──

class Campaign(str, Enum):
    ACA = "ACA"
    MEDICARE = "MEDICARE"


class Severity(str, Enum):
    CRITICAL = "critical"
    WARNING = "warning"


class DetectionMethod(str, Enum):
    PATTERN = "pattern"
    CHECKLIST_COMPLETION = "checklist_completion"
    CUSTOMER_RESPONSE_CHECK = "customer_response_check"
    DISPOSITION_VALIDATION = "disposition_validation"
    CAMPAIGN_DISQUALIFIER = "campaign_disqualifier"


class AutoFailCode(str, Enum):
    AF_01 = "AF-01"
    AF_02 = "AF-02"
    AF_03 = "AF-03"
    AF_04 = "AF-04"
    AF_05 = "AF-05"
    AF_06 = "AF-06"
    AF_07 = "AF-07"
    AF_08 = "AF-08"
    AF_09 = "AF-09"
    AF_10 = "AF-10"
    AF_11 = "AF-11"
    AF_12 = "AF-12"
    AF_13 = "AF-13"
    AF_14 = "AF-14"


class KeyPhrase(BaseModel):
    model_config = ConfigDict(frozen=True)

    phrase: str
    variations: tuple[str, ...] = ()
    required: bool = True
    order: int = Field(ge=1, description="Expected position in the script")


class ChecklistItemSpec(BaseModel):
    model_config = ConfigDict(frozen=True)

    order: int
    key: str
    name: str
    weight: int = Field(gt=0)
    critical: bool = False
    requires_customer_response: bool = False
    valid_names: tuple[str, ...] = ()


class CampaignTemplate(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: Campaign
    target: str = Field(description="Eligible prospect profile for this campaign")
    key_phrases: tuple[KeyPhrase, ...]
    checklist: tuple[ChecklistItemSpec, ...]


class ViolationRule(BaseModel):
    model_config = ConfigDict(frozen=True)

    code: AutoFailCode
    name: str
    description: str
    triggers: tuple[str, ...] = ()
    safe_exceptions: tuple[str, ...] = ()
    severity: Severity = Severity.CRITICAL
    detection_method: DetectionMethod = DetectionMethod.PATTERN
    requires_customer_engagement: bool = Field(
        False, description="Also fire when the customer never speaks (AF-08)"
    )


class BannedTerm(BaseModel):
    model_config = ConfigDict(frozen=True)

    term: str
    replacement: str
    severity: Severity
    context: Optional[str] = Field(None, description="'financial' or 'promise'")


# ── EVIDENCE & VIOLATIONS ──

class Evidence(BaseModel):
    """Where (and whether) something was found in the transcript."""
    found: bool = False
    timestamp: Optional[str] = None
    speaker: Optional[Speaker] = None
    snippet: Optional[str] = Field(None, description="Quoted line text, capped at 100 chars")
    term: Optional[str] = Field(None, description="The search term that matched")
    position: Optional[int] = Field(None, description="Offset of the match in the transcript")


class FailedItem(BaseModel):
    key: str
    name: str


class Violation(BaseModel):
    """A detected auto-fail or warning, in the persisted record shape."""
    code: AutoFailCode
    violation: str = Field(description="Rule name, e.g. 'Making Promises'")
    description: str
    trigger: str
    timestamp: Optional[str] = None
    evidence: str
    speaker: str = Field(description="'agent', 'customer', 'system' or 'unknown'")
    severity: Severity
    failed_items: list[FailedItem] = Field(default_factory=list)


# ── CHECKLIST ──

class ChecklistStatus(str, Enum):
    PASS = "PASS"
    FAIL = "FAIL"
    NA = "N/A"


class ChecklistResult(BaseModel):
    order: int
    key: str
    name: str
    status: ChecklistStatus
    weight: int
    critical: bool = False
    requires_customer_response: bool = Field(
        False, serialization_alias="requiresCustomerResponse"
    )
    evidence: str
    time: Optional[str] = None
    confidence: int = Field(ge=0, le=100)


# ── SCRIPT ADHERENCE & LANGUAGE ──

class AdherenceLevel(str, Enum):
    HIGH = "high"
    MODERATE = "moderate"
    LOW = "low"


class KeyPhraseMatch(BaseModel):
    phrase: str
    order: int
    timestamp: Optional[str] = None
    evidence: str


class TerminologyIssue(BaseModel):
    term: str
    replacement: str
    severity: Severity


class AdherenceCalculation(BaseModel):
    phrase_match_score: int = 0
    sequence_score: int = 0
    response_handling_score: int = 0
    terminology_score: int = 0


class ScriptAdherence(BaseModel):
    score: int = Field(0, ge=0, le=100)
    level: AdherenceLevel = AdherenceLevel.LOW
    key_phrases_found: list[KeyPhraseMatch] = Field(default_factory=list)
    key_phrases_missing: list[str] = Field(default_factory=list)
    sequence_correct: bool = True
    terminology_issues: list[TerminologyIssue] = Field(default_factory=list)
    calculation: AdherenceCalculation = Field(default_factory=AdherenceCalculation)


class EmpathyPhrase(BaseModel):
    phrase: str
    timestamp: str
    context: str


class EmpathyResult(BaseModel):
    displayed: bool = False
    phrases_found: list[EmpathyPhrase] = Field(default_factory=list)
    score: int = Field(0, ge=0, le=100)


class LanguageAssessment(BaseModel):
    """Upstream language assessment keys are kept; these three are always ours."""
    model_config = ConfigDict(extra="allow")

    script_adherence: AdherenceLevel
    empathy_displayed: bool
    empathy_details: EmpathyResult


# ── MASTER OUTPUT: COMPLIANCE RESULT ──

class CriticalMoment(BaseModel):
    code: Optional[AutoFailCode] = None
    name: str
    time: Optional[str] = None
    evidence: Optional[str] = None


class CriticalMoments(BaseModel):
    auto_fails: list[CriticalMoment] = Field(default_factory=list)
    warnings: list[CriticalMoment] = Field(default_factory=list)
    passes: list[CriticalMoment] = Field(default_factory=list)


class ScoringMetadata(BaseModel):
    processor: str
    processed_at: str = Field(description="ISO-8601 UTC timestamp")
    campaign_detected: Campaign
    script_template_applied: str
    transcript_lines_parsed: int = 0
    transcript_lines_dropped: int = Field(0, description="Non-blank lines that failed to parse")
    agent_lines: int = 0
    customer_lines: int = 0
    auto_fail_codes_checked: int = 0
    critical_items_failed: int = 0
    terminology_issues_found: int = 0
    safe_exception_window: Optional[int] = Field(
        None, description="Lines either side of a trigger searched for safe exceptions; None = whole call"
    )


class ComplianceResult(BaseModel):
    """Complete, auditable scoring output for one call."""

    # Identifiers, passed through unchanged
    call_id: Optional[str] = None
    job_id: Optional[str] = None
    batch_id: Optional[str] = None
    file_name: Optional[str] = None
    recording_url: Optional[str] = None

    campaign: Campaign
    product_type: str
    compliance_score: int = Field(ge=0, le=100, description="100 = fully compliant")
    auto_fail_triggered: bool
    auto_fail_reasons: list[Violation] = Field(default_factory=list)
    compliance_warnings: list[Violation] = Field(default_factory=list)
    critical_moments: CriticalMoments = Field(default_factory=CriticalMoments)
    checklist: list[ChecklistResult] = Field(default_factory=list)
    script_adherence: ScriptAdherence = Field(default_factory=ScriptAdherence)
    language_assessment: LanguageAssessment
    scoring_metadata: ScoringMetadata

    def to_record(self) -> dict:
        """Serialize to the JSON-safe record handed to persistence."""
        return self.model_dump(mode="json", by_alias=True)


# ── INGESTION ──

class CallPayload(BaseModel):
    """One call as delivered by the ingestion layer."""
    call_id: Optional[str] = None
    job_id: Optional[str] = None
    batch_id: Optional[str] = None
    file_name: Optional[str] = None
    recording_url: Optional[str] = None
    product_type: Optional[str] = None
    transcript: Optional[str] = Field(None, description="Pre-merged '[m:ss] Speaker: text' transcript")
    agent_segments: list[Segment] = Field(default_factory=list)
    customer_segments: list[Segment] = Field(default_factory=list)
    analysis: dict = Field(default_factory=dict, description="Upstream (AI) analysis, if any")

    @property
    def has_segments(self) -> bool:
        return bool(self.agent_segments or self.customer_segments)
