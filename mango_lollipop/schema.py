"""
Schema & validation for Mango Lollipop records.

Two record kinds come back from the content-generation skills:
    analysis.json  — one Analysis per project
    matrix.json    — {"messages": [Message, ...]}

Both are plain JSON-decoded dicts. The TypedDicts below document the shape
the builders (journey_map, workbook, html_views) rely on; the builders do
not re-check it. Use validate_message / validate_analysis at the boundary.

Validation never raises. Every violation is collected in one pass and
returned as a ValidationResult.
"""
import re
from dataclasses import dataclass, field
from typing import Any, Dict, List, Literal, Optional, TypedDict


# ── Enumerations ───────────────────────────────────────────────

CHANNELS = ["email", "sms", "in-app", "push"]
AARRR_STAGES = ["AQ", "AC", "RV", "RT", "RF"]
STAGES = ["AQ", "AC", "RV", "RT", "RF", "TX"]
# Order used everywhere a diagram, sheet or page walks stages
STAGE_ORDER = ["TX", "AQ", "AC", "RV", "RT", "RF"]

STAGE_LABELS = {
    "TX": "Transactional",
    "AQ": "Acquisition",
    "AC": "Activation",
    "RV": "Revenue",
    "RT": "Retention",
    "RF": "Referral",
}

CLASSIFICATIONS = ["transactional", "lifecycle"]
TRIGGER_TYPES = ["event", "scheduled", "behavioral"]
FORMATS = ["plain", "rich"]
EMOJI_USAGE = ["none", "light", "heavy"]
ANALYSIS_PATHS = ["fresh", "existing"]
EVENT_CATEGORIES = ["identity", "activation", "engagement", "conversion", "retention"]
COMPANY_FIELDS = ["name", "product_type", "target_audience", "key_value_prop", "aha_moment", "pricing_model"]
MESSAGE_REQUIRED_STRINGS = ["id", "name", "subject", "body", "from", "segment", "goal", "wait"]

# ISO 8601 duration: P[nY][nM][nD][T[nH][nM][nS]] or PnW
ISO_8601_DURATION_RE = re.compile(
    r"^P(?:(\d+)Y)?(?:(\d+)M)?(?:(\d+)D)?(?:T(?:(\d+)H)?(?:(\d+)M)?(?:(\d+)S)?)?$|^P(\d+)W$"
)


# ── Record shapes ──────────────────────────────────────────────

Channel = Literal["email", "sms", "in-app", "push"]
Stage = Literal["TX", "AQ", "AC", "RV", "RT", "RF"]


class _TriggerBase(TypedDict):
    event: str
    type: Literal["event", "scheduled", "behavioral"]


class Trigger(_TriggerBase, total=False):
    schedule: str


class Condition(TypedDict):
    condition: str
    expression: str


class _CTABase(TypedDict):
    text: str


class CTA(_CTABase, total=False):
    url: str


_MessageBase = TypedDict("_MessageBase", {
    "id": str,
    "stage": Stage,
    "name": str,
    "classification": Literal["transactional", "lifecycle"],
    "trigger": Trigger,
    "wait": str,
    "guards": List[Condition],
    "suppressions": List[Condition],
    "subject": str,
    "body": str,
    "cta": CTA,
    "channels": List[Channel],
    "format": Literal["plain", "rich"],
    "from": str,
    "segment": str,
    "tags": List[str],
    "goal": str,
    "comments": str,
})


class Message(_MessageBase, total=False):
    preheader: str
    # Single-channel alias still found in older matrices
    channel: Channel


class EventTaxonomy(TypedDict):
    identity: List[str]
    activation: List[str]
    engagement: List[str]
    conversion: List[str]
    retention: List[str]


class AnalysisTags(TypedDict):
    sources: List[str]
    plans: List[str]
    segments: List[str]
    features: List[str]


class _AnalysisBase(TypedDict):
    path: Literal["fresh", "existing"]
    company: Dict[str, Any]
    channels: List[Channel]
    voice: Dict[str, Any]
    events: EventTaxonomy
    tags: AnalysisTags
    recommendations: List[str]


class Analysis(_AnalysisBase, total=False):
    existing: Dict[str, Any]


@dataclass
class ValidationResult:
    errors: List[str] = field(default_factory=list)

    @property
    def valid(self) -> bool:
        return len(self.errors) == 0

    def to_dict(self):
        return {"valid": self.valid, "errors": list(self.errors)}


# ── Type guards ────────────────────────────────────────────────

def is_valid_channel(value) -> bool:
    return isinstance(value, str) and value in CHANNELS


def is_valid_stage(value) -> bool:
    """True for the five AARRR stages. TX is a valid message stage but not an AARRR one."""
    return isinstance(value, str) and value in AARRR_STAGES


def is_valid_wait_duration(wait) -> bool:
    """ISO 8601 duration check. A bare "P" (or "PT") carries no quantity and is rejected."""
    if not isinstance(wait, str):
        return False
    if not ISO_8601_DURATION_RE.fullmatch(wait):
        return False
    return any(ch.isdigit() for ch in wait)


# ── Helpers ────────────────────────────────────────────────────

def _show(value) -> str:
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def _is_number(value) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _non_empty_string(value) -> bool:
    return isinstance(value, str) and len(value) > 0


def _check_channels(channels, errors):
    if not isinstance(channels, list) or len(channels) == 0:
        errors.append("Must have at least one channel")
        return
    for ch in channels:
        if not is_valid_channel(ch):
            errors.append(f'Invalid channel: "{_show(ch)}". Must be one of: {", ".join(CHANNELS)}')


# ── Validators ─────────────────────────────────────────────────

def validate_message(msg) -> ValidationResult:
    """Validate one matrix.json message. Reports every violation found."""
    result = ValidationResult()
    errors = result.errors

    if not isinstance(msg, dict):
        errors.append("Message must be a non-null object")
        return result

    for name in MESSAGE_REQUIRED_STRINGS:
        if not _non_empty_string(msg.get(name)):
            errors.append(f"Missing or empty required field: {name}")

    stage = msg.get("stage")
    if not isinstance(stage, str) or stage not in STAGES:
        errors.append(f'Invalid stage: "{_show(stage)}". Must be one of: {", ".join(STAGES)}')

    classification = msg.get("classification")
    if classification not in CLASSIFICATIONS:
        errors.append(f'Invalid classification: "{_show(classification)}". Must be "transactional" or "lifecycle"')

    wait = msg.get("wait")
    if isinstance(wait, str) and not is_valid_wait_duration(wait):
        errors.append(f'Invalid wait duration: "{wait}". Must be ISO 8601 duration (e.g. "P0D", "PT5M", "P2D")')

    fmt = msg.get("format")
    if fmt not in FORMATS:
        errors.append(f'Invalid format: "{_show(fmt)}". Must be "plain" or "rich"')

    _check_channels(msg.get("channels"), errors)

    for name in ("tags", "guards", "suppressions"):
        if not isinstance(msg.get(name), list):
            errors.append(f"{name} must be an array")

    trigger = msg.get("trigger")
    if not isinstance(trigger, dict):
        errors.append("trigger must be a non-null object")
    else:
        if not _non_empty_string(trigger.get("event")):
            errors.append("trigger.event is required")
        if trigger.get("type") not in TRIGGER_TYPES:
            errors.append(
                f'Invalid trigger.type: "{_show(trigger.get("type"))}". '
                f'Must be "event", "scheduled", or "behavioral"'
            )

    cta = msg.get("cta")
    if not isinstance(cta, dict):
        errors.append("cta must be a non-null object")
    elif not _non_empty_string(cta.get("text")):
        errors.append("cta.text is required")

    return result


def validate_analysis(analysis) -> ValidationResult:
    """Validate analysis.json. The `existing` block is only checked on the existing path."""
    result = ValidationResult()
    errors = result.errors

    if not isinstance(analysis, dict):
        errors.append("Analysis must be a non-null object")
        return result

    path = analysis.get("path")
    if path not in ANALYSIS_PATHS:
        errors.append(f'Invalid path: "{_show(path)}". Must be "fresh" or "existing"')

    company = analysis.get("company")
    if not isinstance(company, dict):
        errors.append("company is required")
    else:
        for name in COMPANY_FIELDS:
            if not _non_empty_string(company.get(name)):
                errors.append(f"Missing or empty company.{name}")
        features = company.get("key_features")
        if not isinstance(features, list) or len(features) == 0:
            errors.append("company.key_features must be a non-empty array")

    _check_channels(analysis.get("channels"), errors)

    voice = analysis.get("voice")
    if not isinstance(voice, dict):
        errors.append("voice profile is required")
    else:
        if not _non_empty_string(voice.get("tone")):
            errors.append("voice.tone is required")
        formality = voice.get("formality")
        if not _is_number(formality) or formality < 1 or formality > 5:
            errors.append("voice.formality must be a number between 1 and 5")
        if voice.get("emoji_usage") not in EMOJI_USAGE:
            errors.append(
                f'Invalid voice.emoji_usage: "{_show(voice.get("emoji_usage"))}". '
                f'Must be "none", "light", or "heavy"'
            )
        if not isinstance(voice.get("sample_phrases"), list):
            errors.append("voice.sample_phrases must be an array")
        if not isinstance(voice.get("sender_personas"), list):
            errors.append("voice.sender_personas must be an array")

    events = analysis.get("events")
    if not isinstance(events, dict):
        errors.append("events taxonomy is required")
    else:
        for category in EVENT_CATEGORIES:
            if not isinstance(events.get(category), list):
                errors.append(f"events.{category} must be an array")

    if not isinstance(analysis.get("tags"), dict):
        errors.append("tags is required")

    if not isinstance(analysis.get("recommendations"), list):
        errors.append("recommendations must be an array")

    if path == "existing":
        existing = analysis.get("existing")
        if not isinstance(existing, dict):
            errors.append('existing messaging data is required when path is "existing"')
        else:
            if not _is_number(existing.get("messages_count")):
                errors.append("existing.messages_count must be a number")
            if not isinstance(existing.get("stages_covered"), list):
                errors.append("existing.stages_covered must be an array")
            if not isinstance(existing.get("stages_missing"), list):
                errors.append("existing.stages_missing must be an array")
            if not isinstance(existing.get("primary_goal"), str):
                errors.append("existing.primary_goal is required")

    return result


def message_channels(msg) -> List[str]:
    """Channels of a message, honouring the single `channel` alias."""
    channels = msg.get("channels")
    if isinstance(channels, list) and channels:
        return list(channels)
    single: Optional[str] = msg.get("channel")
    return [single] if single else []
