from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from enum import Enum
from typing import Any, Callable, Mapping


class ProviderKind(str, Enum):
    CHAT_MESSAGE = "chat_message"
    TASK = "task"


class SignalType(str, Enum):
    PROBLEM = "problem"
    POSITIVE = "positive"
    NEUTRAL = "neutral"


class SignalCategory(str, Enum):
    COMMITMENT = "commitment"
    DEADLINE = "deadline"
    MENTION = "mention"
    QUESTION = "question"
    BLOCKER = "blocker"
    DECISION = "decision"
    ESCALATION = "escalation"
    UPDATE = "update"


class IntentMode(str, Enum):
    CALM = "calm"
    ON_THE_GO = "on_the_go"
    WORK = "work"
    FOCUS = "focus"

    @property
    def label(self) -> str:
        return MODE_LABELS[self][0]

    @property
    def description(self) -> str:
        return MODE_LABELS[self][1]


MODE_LABELS: dict[IntentMode, tuple[str, str]] = {
    IntentMode.CALM: ("Calm", "Critical only (vacation)"),
    IntentMode.ON_THE_GO: ("On-the-Go", "Critical + high (commute)"),
    IntentMode.WORK: ("Work", "Standard (default)"),
    IntentMode.FOCUS: ("Focus", "Only what could derail deep work"),
}


class CoverageLevel(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


@dataclass(frozen=True)
class CanonicalItem:
    provider: ProviderKind
    external_id: str
    title: str
    description: str | None = None
    owner_name: str | None = None
    owner_email: str | None = None
    due_date: date | None = None
    status: str = ""
    last_activity_at: datetime | None = None
    channel_or_project: str | None = None
    url: str | None = None
    comments_text: tuple[str, ...] = ()
    source: str = ""
    metadata: Mapping[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        object.__setattr__(self, "status", (self.status or "").strip().lower())
        object.__setattr__(self, "comments_text", tuple(self.comments_text or ()))
        object.__setattr__(self, "source", (self.source or "").strip().lower())

    @property
    def key(self) -> tuple[ProviderKind, str]:
        return (self.provider, self.external_id)


@dataclass(frozen=True)
class SignalFlags:
    has_commitment: bool = False
    has_time_pressure: bool = False
    has_movement_gap: bool = False
    has_dependency: bool = False
    has_escalation: bool = False
    has_appreciation: bool = False
    has_milestone: bool = False
    has_positive_feedback: bool = False

    def active(self) -> list[str]:
        return [name for name, value in self.__dict__.items() if value]


@dataclass(frozen=True)
class SurfaceVerdict:
    surface: bool
    reason: str | None
    confidence: float
    signal_type: SignalType
    rule: str | None = None


@dataclass(frozen=True)
class UnifiedSignal:
    id: str
    source: str
    source_id: str
    category: SignalCategory
    confidence: float
    snippet: str = ""
    title: str = ""
    channel: str | None = None
    sender: str | None = None
    timestamp: datetime | None = None
    url: str = ""
    metadata: Mapping[str, Any] = field(default_factory=dict)

    @property
    def key(self) -> tuple[str, str]:
        return (self.source, self.source_id)


@dataclass(frozen=True)
class CoverageAssessment:
    overall: CoverageLevel
    percentage: int
    communication_coverage: int
    task_coverage: int
    connected_tools: frozenset[str]
    missing_tools: frozenset[str]
    message: str
    recommended_tools: tuple[str, ...] = ()


@dataclass(frozen=True)
class TriagedItem:
    item: CanonicalItem
    flags: SignalFlags
    score: int
    verdict: SurfaceVerdict
    signal: UnifiedSignal
    score_reasons: tuple[str, ...] = ()


@dataclass(frozen=True)
class Brief:
    needs_attention: tuple[Any, ...] = ()
    fyi: tuple[Any, ...] = ()
    handled: tuple[Any, ...] = ()
    summary_text: str = ""
    counts: Mapping[str, int] = field(default_factory=dict)


def parse_timestamp(value: Any) -> datetime | None:
    """Parse an ISO string or epoch value; ``None`` when the value is unusable."""
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value if value.tzinfo else value.replace(tzinfo=timezone.utc)
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day, tzinfo=timezone.utc)
    if isinstance(value, (int, float)):
        try:
            return datetime.fromtimestamp(float(value), tz=timezone.utc)
        except (OverflowError, OSError, ValueError):
            return None
    text = str(value).strip()
    if text.endswith("Z"):
        text = text.replace("Z", "+00:00")
    try:
        dt = datetime.fromisoformat(text)
        if dt.tzinfo is None:
            return dt.replace(tzinfo=timezone.utc)
        return dt
    except ValueError:
        try:
            return datetime.fromtimestamp(float(text), tz=timezone.utc)
        except (OverflowError, OSError, ValueError):
            return None


def parse_date(value: Any) -> date | None:
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    text = str(value).strip()
    try:
        return date.fromisoformat(text[:10])
    except ValueError:
        parsed = parse_timestamp(text)
        return parsed.date() if parsed else None


def _optional_str(value: Any) -> str | None:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def item_from_dict(
    payload: Mapping[str, Any],
    on_malformed: Callable[[CanonicalItem, str, Any], None] | None = None,
) -> CanonicalItem:
    """Build an item from a plain record; unparseable dates become ``None`` and go to ``on_malformed``."""
    external_id = _optional_str(payload.get("external_id") or payload.get("id"))
    if not external_id:
        raise ValueError("Canonical item requires an external_id")
    provider = ProviderKind(str(payload.get("provider", ProviderKind.TASK.value)).replace("-", "_"))
    comments = payload.get("comments_text") or payload.get("comments") or []
    raw_due = payload.get("due_date")
    raw_activity = payload.get("last_activity_at")
    item = CanonicalItem(
        provider=provider,
        external_id=external_id,
        title=str(payload.get("title") or ""),
        description=_optional_str(payload.get("description")),
        owner_name=_optional_str(payload.get("owner_name")),
        owner_email=_optional_str(payload.get("owner_email")),
        due_date=parse_date(raw_due),
        status=str(payload.get("status") or ""),
        last_activity_at=parse_timestamp(raw_activity),
        channel_or_project=_optional_str(payload.get("channel_or_project")),
        url=_optional_str(payload.get("url")),
        comments_text=tuple(str(c) for c in comments),
        source=str(payload.get("source") or ""),
        metadata=dict(payload.get("metadata") or {}),
    )
    if on_malformed is not None:
        if item.due_date is None and raw_due not in (None, ""):
            on_malformed(item, "due_date", raw_due)
        if item.last_activity_at is None and raw_activity not in (None, ""):
            on_malformed(item, "last_activity_at", raw_activity)
    return item


def item_to_dict(item: CanonicalItem) -> dict[str, Any]:
    return {
        "provider": item.provider.value,
        "external_id": item.external_id,
        "source": item.source,
        "title": item.title,
        "description": item.description,
        "owner_name": item.owner_name,
        "owner_email": item.owner_email,
        "due_date": item.due_date.isoformat() if item.due_date else None,
        "status": item.status,
        "last_activity_at": item.last_activity_at.isoformat() if item.last_activity_at else None,
        "channel_or_project": item.channel_or_project,
        "url": item.url,
        "comments_text": list(item.comments_text),
        "metadata": dict(item.metadata),
    }


def signal_to_dict(signal: UnifiedSignal) -> dict[str, Any]:
    return {
        "id": signal.id,
        "source": signal.source,
        "source_id": signal.source_id,
        "category": signal.category.value,
        "confidence": signal.confidence,
        "title": signal.title,
        "snippet": signal.snippet,
        "channel": signal.channel,
        "sender": signal.sender,
        "timestamp": signal.timestamp.isoformat() if signal.timestamp else None,
        "url": signal.url,
        "metadata": dict(signal.metadata),
    }


def signal_from_dict(payload: Mapping[str, Any]) -> UnifiedSignal:
    source = str(payload.get("source") or "")
    source_id = str(payload.get("source_id") or payload.get("sourceId") or "")
    return UnifiedSignal(
        id=str(payload.get("id") or f"{source}-{source_id}"),
        source=source,
        source_id=source_id,
        category=SignalCategory(str(payload.get("category", SignalCategory.UPDATE.value))),
        confidence=float(payload.get("confidence", 0.0)),
        title=str(payload.get("title") or ""),
        snippet=str(payload.get("snippet") or ""),
        channel=_optional_str(payload.get("channel")),
        sender=_optional_str(payload.get("sender")),
        timestamp=parse_timestamp(payload.get("timestamp")),
        url=str(payload.get("url") or ""),
        metadata=dict(payload.get("metadata") or {}),
    )


def verdict_to_dict(verdict: SurfaceVerdict) -> dict[str, Any]:
    return {
        "surface": verdict.surface,
        "reason": verdict.reason,
        "confidence": verdict.confidence,
        "signal_type": verdict.signal_type.value,
        "rule": verdict.rule,
    }


def triaged_to_dict(triaged: TriagedItem) -> dict[str, Any]:
    return {
        "item": item_to_dict(triaged.item),
        "flags": triaged.flags.active(),
        "score": triaged.score,
        "score_reasons": list(triaged.score_reasons),
        "verdict": verdict_to_dict(triaged.verdict),
        "signal": signal_to_dict(triaged.signal),
    }


def coverage_to_dict(coverage: CoverageAssessment) -> dict[str, Any]:
    return {
        "overall": coverage.overall.value,
        "percentage": coverage.percentage,
        "communication_coverage": coverage.communication_coverage,
        "task_coverage": coverage.task_coverage,
        "connected_tools": sorted(coverage.connected_tools),
        "missing_tools": sorted(coverage.missing_tools),
        "recommended_tools": list(coverage.recommended_tools),
        "message": coverage.message,
    }


def brief_to_dict(brief: Brief) -> dict[str, Any]:
    def _entry(entry: Any) -> dict[str, Any]:
        if isinstance(entry, TriagedItem):
            return triaged_to_dict(entry)
        return signal_to_dict(entry)

    return {
        "needs_attention": [_entry(e) for e in brief.needs_attention],
        "fyi": [_entry(e) for e in brief.fyi],
        "handled": [_entry(e) for e in brief.handled],
        "summary_text": brief.summary_text,
        "counts": dict(brief.counts),
    }
