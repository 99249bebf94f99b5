"""Compliance rule tables — script templates, auto-fail rules, banned terminology.

Built once at import and never mutated. Templates and rules are frozen pydantic
models held in tuples and read-only mappings, so they can be shared freely
between concurrent evaluations.
"""

from types import MappingProxyType

from config.schemas import (
    AutoFailCode,
    BannedTerm,
    Campaign,
    CampaignTemplate,
    ChecklistItemSpec,
    DetectionMethod,
    KeyPhrase,
    Severity,
    ViolationRule,
)


# ── SCRIPT TEMPLATES ──

_ACA_TEMPLATE = CampaignTemplate(
    name=Campaign.ACA,
    target="18+ without Medicare, Medicaid, or employer insurance",
    key_phrases=(
        KeyPhrase(phrase="recorded line", order=1,
                  variations=("recorded call", "call is recorded", "on a recorded", "call is being recorded")),
        KeyPhrase(phrase="free health", order=2,
                  variations=("government subsidy", "health subsidy", "free health government subsidy")),
        KeyPhrase(phrase="affordable care act", order=3, variations=("aca", "obamacare")),
        KeyPhrase(phrase="medicare or medicaid or work insurance", order=4,
                  variations=("medicare, medicaid", "don't have medicare", "no medicare", "do not have medicare")),
        KeyPhrase(phrase="still living in", order=5,
                  variations=("state of", "you're in", "residing in", "located in")),
        KeyPhrase(phrase="just to be sure", order=6,
                  variations=("just to confirm", "double check", "to confirm", "just to double check")),
        KeyPhrase(phrase="filed taxes", order=7, variations=("tax return", "past two years", "last two years")),
        KeyPhrase(phrase="may qualify", order=8,
                  variations=("might qualify", "may be eligible", "see what you may")),
    ),
    checklist=(
        ChecklistItemSpec(order=1, key="client_name_confirmation", name="Confirm Client Name", weight=12),
        ChecklistItemSpec(order=2, key="agent_introduction", name="Agent Introduction", weight=10),
        ChecklistItemSpec(order=3, key="company_name", name="Company Name Stated", weight=12,
                          valid_names=("america's health", "americas health", "benefit link", "health benefit guide")),
        ChecklistItemSpec(order=4, key="recorded_line_disclosure", name="Recorded Line Disclosure",
                          weight=14, critical=True),
        ChecklistItemSpec(order=5, key="subsidy_mention", name="FREE Health Subsidy/ACA Mention", weight=10),
        ChecklistItemSpec(order=6, key="mmw_check_first", name="No M/M/W Check (First)", weight=12,
                          critical=True, requires_customer_response=True),
        ChecklistItemSpec(order=7, key="state_confirmation", name="State Confirmation", weight=10),
        ChecklistItemSpec(order=8, key="mmw_check_second", name="No M/M/W Check (Second)", weight=14,
                          critical=True, requires_customer_response=True),
        ChecklistItemSpec(order=9, key="tax_filing_question", name="Tax Filing Question", weight=8,
                          requires_customer_response=True),
        ChecklistItemSpec(order=10, key="verbal_consent_to_transfer", name="Verbal Consent to Transfer",
                          weight=8, critical=True, requires_customer_response=True),
        ChecklistItemSpec(order=11, key="cold_transfer", name="Cold Transfer Execution", weight=6),
    ),
)

_MEDICARE_TEMPLATE = CampaignTemplate(
    name=Campaign.MEDICARE,
    target="65+ with Medicare Part A AND Part B",
    key_phrases=(
        KeyPhrase(phrase="recorded line", order=1,
                  variations=("recorded call", "on a recorded", "call is being recorded")),
        KeyPhrase(phrase="food and utility card", order=2,
                  variations=("food card", "utility card", "benefits card", "grocery card")),
        KeyPhrase(phrase="medicare parts a and b", order=3,
                  variations=("part a and part b", "medicare a and b", "parts a and b")),
        KeyPhrase(phrase="red, white, and blue", order=4,
                  variations=("red white and blue", "rwb card", "red, white and blue card")),
        KeyPhrase(phrase="additional food benefits", order=5, variations=("food benefits", "grocery benefits")),
        KeyPhrase(phrase="food prices", order=6, required=False,
                  variations=("prices have gone up", "rising food prices")),
        KeyPhrase(phrase="zip code", order=7, variations=("your zip", "zipcode")),
        KeyPhrase(phrase="medicare specialist", order=8,
                  variations=("specialist coming on", "specialist is coming")),
        KeyPhrase(phrase="hear a little bit of ringing", order=9, required=False,
                  variations=("hear some ringing", "hear ringing")),
    ),
    checklist=(
        ChecklistItemSpec(order=1, key="client_name_confirmation", name="Confirm Client Name", weight=12),
        ChecklistItemSpec(order=2, key="agent_introduction", name="Agent Introduction", weight=10),
        ChecklistItemSpec(order=3, key="company_name", name="Company Name Stated", weight=12,
                          valid_names=("america's health", "americas health")),
        ChecklistItemSpec(order=4, key="recorded_line_disclosure", name="Recorded Line Disclosure",
                          weight=14, critical=True),
        ChecklistItemSpec(order=5, key="food_utility_card_mention", name="Food/Utility Card Mention", weight=10),
        ChecklistItemSpec(order=6, key="medicare_ab_verification", name="Medicare Part A & B Verification",
                          weight=14, critical=True, requires_customer_response=True),
        ChecklistItemSpec(order=7, key="rwb_card_verification", name="Red, White, Blue Card Question",
                          weight=12, critical=True, requires_customer_response=True),
        ChecklistItemSpec(order=8, key="state_zipcode_confirmation", name="State AND Zip Code Confirmation",
                          weight=12),
        ChecklistItemSpec(order=9, key="food_benefits_mention", name="Additional Food Benefits Mention", weight=8),
        ChecklistItemSpec(order=10, key="verbal_consent_to_transfer", name="Verbal Consent to Transfer",
                          weight=8, critical=True, requires_customer_response=True),
        ChecklistItemSpec(order=11, key="cold_transfer", name="Cold Transfer Explanation", weight=6),
    ),
)

# WHATIF calls run the Medicare script: same object, not a copy.
SCRIPT_TEMPLATES = MappingProxyType({
    "ACA": _ACA_TEMPLATE,
    "MEDICARE": _MEDICARE_TEMPLATE,
    "WHATIF": _MEDICARE_TEMPLATE,
})


# ── CHECKLIST EVIDENCE SEARCH ──

# Candidate substrings per checklist key, searched against agent lines in order.
# company_name is searched with the item's valid_names.
CHECKLIST_SEARCH_PATTERNS = MappingProxyType({
    "client_name_confirmation": ("hi ", "hello ", "good morning", "good afternoon", "speaking with", "is this"),
    "agent_introduction": ("my name is", "this is ", "i'm ", "it's "),
    "company_name": ("america's health", "benefit link"),
    "recorded_line_disclosure": ("recorded line", "recorded call", "call is recorded", "call is being recorded"),
    "mmw_check_first": ("medicare", "medicaid", "work insurance", "employer insurance"),
    "mmw_check_second": ("medicare", "medicaid", "work insurance", "employer insurance"),
    "state_confirmation": ("living in", "state of", "you're in", "located in"),
    "tax_filing_question": ("filed taxes", "tax return"),
    "verbal_consent_to_transfer": ("transfer", "connect you", "someone on the line", "okay?"),
    "food_utility_card_mention": ("food", "utility", "card"),
    "medicare_ab_verification": ("part a", "part b", "parts a and b"),
    "rwb_card_verification": ("red", "white", "blue"),
    "food_benefits_mention": ("food benefits", "food prices"),
    "subsidy_mention": ("subsidy", "affordable care", "aca", "free health"),
    "state_zipcode_confirmation": ("state", "zip", "zipcode"),
    "cold_transfer": ("everything i need", "connecting", "transferring", "ringing"),
})

ACKNOWLEDGEMENT_WORDS = ("yes", "yeah", "correct", "right", "okay", "ok", "no", "nope", "uh-huh", "mhm")

# Agent questions that expect a customer answer (response handling sub-score)
CRITICAL_QUESTION_TERMS = ("medicare", "medicaid", "work insurance", "okay", "correct")


# ── AUTO-FAIL RULES (AF-01 .. AF-14) ──

AUTO_FAIL_RULES: tuple[ViolationRule, ...] = (
    ViolationRule(
        code=AutoFailCode.AF_01,
        name="Making Promises",
        description="Do not imply eligibility, qualification, or benefits",
        triggers=(
            "you will get", "you will receive", "you're going to get", "you're entitled to",
            "you are entitled to", "you qualify for", "you are qualified", "you're qualified",
            "guaranteed to", "i guarantee", "we guarantee", "definitely get", "definitely receive",
            "for sure get", "100% get", "will definitely", "you're approved", "you are approved",
            "you've been approved",
        ),
        safe_exceptions=(
            "you may qualify", "you may be eligible", "you may be entitled", "you might qualify",
            "see what you may", "see if you qualify", "see what's available", "we can review", "let's see if",
        ),
    ),
    ViolationRule(
        code=AutoFailCode.AF_02,
        name="Skipping Compliance",
        description="All required compliance steps must be followed",
        detection_method=DetectionMethod.CHECKLIST_COMPLETION,
    ),
    ViolationRule(
        code=AutoFailCode.AF_03,
        name="Discussing Money",
        description="Do not mention income, expenses, payments, or financial benefits",
        triggers=(
            "how much money", "save you money", "save money", "cost you", "pay you",
            "payment", "cash back", "cash benefit", "dollar amount", "how much do you make",
            "your income", "what's your income", "annual income", "monthly income",
        ),
        safe_exceptions=("benefits", "food benefits", "health benefits", "subsidy", "assistance", "support"),
    ),
    ViolationRule(
        code=AutoFailCode.AF_04,
        name="Discussing Politics/Religion",
        description="Avoid topics like government, presidents, or faith",
        triggers=(
            "trump", "biden", "obama", "republican", "democrat", "political", "vote", "election",
            "god bless", "praise god", "church", "jesus", "pray", "amen",
        ),
        safe_exceptions=("government subsidy", "government program", "government benefits"),
    ),
    ViolationRule(
        code=AutoFailCode.AF_05,
        name="Incorrect Transfers",
        description="Do not transfer gatekeepers or non-English speakers without verified POA",
        triggers=(
            "speaking on behalf", "i'm their son", "i'm their daughter", "i'm his son", "i'm her son",
            "i'm his daughter", "i'm her daughter", "i'm the caregiver", "power of attorney",
            "they don't speak english", "no habla", "no english", "doesn't speak english",
            "can't speak english", "i'm calling for", "calling on behalf",
        ),
    ),
    ViolationRule(
        code=AutoFailCode.AF_06,
        name="Unconfirmed Compliance",
        description="All compliance questions must be answered and confirmed by prospect",
        detection_method=DetectionMethod.CUSTOMER_RESPONSE_CHECK,
    ),
    ViolationRule(
        code=AutoFailCode.AF_07,
        name="Wrong Disposition",
        description="Do not code incorrectly (e.g., AM as transfer)",
        detection_method=DetectionMethod.DISPOSITION_VALIDATION,
    ),
    ViolationRule(
        code=AutoFailCode.AF_08,
        name="No-Response Transfer",
        description="Do not proceed or transfer without prospect responses",
        triggers=(
            "hello?", "are you there?", "can you hear me?", "anyone there?",
            "is anyone there", "are you still there",
        ),
        requires_customer_engagement=True,
    ),
    ViolationRule(
        code=AutoFailCode.AF_09,
        name="Ignoring DNC Requests",
        description="If prospect asks to be Do-Not-Called, end call immediately",
        triggers=(
            "do not call", "don't call me", "stop calling", "take me off", "remove me",
            "dnc", "never call again", "quit calling", "don't call again", "stop calling me",
        ),
    ),
    ViolationRule(
        code=AutoFailCode.AF_10,
        name="Transferring DQ Prospects",
        description="Do not transfer prospects who are ineligible",
        detection_method=DetectionMethod.CAMPAIGN_DISQUALIFIER,
    ),
    ViolationRule(
        code=AutoFailCode.AF_11,
        name="Misrepresenting Affiliation",
        description="Do not claim partnership with specific insurance companies",
        triggers=(
            "we're with blue cross", "calling from aetna", "calling from united",
            "calling from humana", "cigna representative", "we partner with",
            "affiliated with", "from blue shield", "from kaiser",
        ),
    ),
    ViolationRule(
        code=AutoFailCode.AF_12,
        name="Incorrect Insurance Messaging",
        description='"This call is not about insurance" or "You will not change your insurance"',
        triggers=(
            "not about insurance", "nothing to do with insurance", "won't change your insurance",
            "won't affect your insurance", "keep your same insurance", "this isn't about insurance",
        ),
    ),
    ViolationRule(
        code=AutoFailCode.AF_13,
        name="Poor Call Quality",
        description="Do not transfer if call audio is unclear or breaking up",
        triggers=(
            "can't hear you", "you're breaking up", "bad connection", "call is cutting out",
            "audio is choppy", "can barely hear", "very hard to hear",
        ),
        severity=Severity.WARNING,
    ),
    ViolationRule(
        code=AutoFailCode.AF_14,
        name="Poor Prospect State",
        description="Do not proceed if prospect is busy, distracted, angry, or shouting",
        triggers=(
            "i'm busy", "not a good time", "call me back", "in the middle of something",
            "stop calling", "leave me alone", "this is harassment", "i'm at work",
            "can't talk right now", "you people keep calling",
        ),
    ),
)

# AF-10 disqualifiers: phrases a customer says that make them ineligible
DISQUALIFIERS = MappingProxyType({
    Campaign.ACA: (
        "i have medicare", "i'm on medicare", "i have medicaid", "i'm on medicaid",
        "my job provides", "employer insurance", "work insurance", "i have work insurance",
        "veteran", "va benefits", "military insurance", "ssdi", "disability insurance",
        "under 18", "i'm 17", "i'm 16",
    ),
    Campaign.MEDICARE: (
        "i don't have medicare", "no medicare", "not on medicare",
        "only part a", "only part b", "just part a", "just part b",
    ),
})

TRANSFER_TERMS = ("transfer", "connect you")


# ── BANNED TERMINOLOGY ──

BANNED_TERMS: tuple[BannedTerm, ...] = (
    BannedTerm(term="pitch perfect", replacement="Use DBA name for campaign", severity=Severity.CRITICAL),
    BannedTerm(term="pitch perfect solutions", replacement="Use DBA name for campaign", severity=Severity.CRITICAL),
    BannedTerm(term="money", replacement="benefits", severity=Severity.WARNING, context="financial"),
    BannedTerm(term="cash", replacement="incentives", severity=Severity.WARNING, context="financial"),
    BannedTerm(term="check", replacement="support", severity=Severity.WARNING, context="financial"),
    BannedTerm(term="funds", replacement="assistance", severity=Severity.WARNING, context="financial"),
    BannedTerm(term="you qualify", replacement="you MAY be eligible", severity=Severity.WARNING, context="promise"),
    BannedTerm(term="guaranteed", replacement="we can review", severity=Severity.WARNING, context="promise"),
    BannedTerm(term="approved", replacement="see what's available", severity=Severity.WARNING, context="promise"),
    BannedTerm(term="you will get", replacement="you MAY receive", severity=Severity.WARNING, context="promise"),
)

EMPATHY_PATTERNS = (
    "i understand", "i hear you", "that makes sense", "i appreciate",
    "thank you for", "i'm sorry to hear", "i can help", "let me help",
    "no problem", "absolutely", "of course", "great question",
    "that's a great question",
)


def _validate_rule_table() -> MappingProxyType:
    """Index AUTO_FAIL_RULES by code, failing fast if any AF code is missing or duplicated."""
    by_code = {}
    for rule in AUTO_FAIL_RULES:
        if rule.code in by_code:
            raise RuntimeError(f"Duplicate auto-fail rule for {rule.code.value}")
        by_code[rule.code] = rule
    missing = [code.value for code in AutoFailCode if code not in by_code]
    if missing:
        raise RuntimeError(f"Auto-fail rule table missing codes: {', '.join(missing)}")
    return MappingProxyType(by_code)


RULES_BY_CODE = _validate_rule_table()
