from __future__ import annotations

from datetime import datetime

from .classifier import MalformedHook, checked_due_date, days_until
from .matching import DEFAULT_MATCHER, KeywordMatcher
from .models import CanonicalItem, ProviderKind, SignalCategory, SurfaceVerdict, UnifiedSignal

SNIPPET_LIMIT = 300

# Category for each surfacing rule; a surfaced item carries the verdict's confidence.
RULE_CATEGORIES: dict[str, SignalCategory] = {
    "milestone": SignalCategory.UPDATE,
    "appreciation": SignalCategory.UPDATE,
    "positive_feedback": SignalCategory.UPDATE,
    "escalation": SignalCategory.ESCALATION,
    "stalled_deadline": SignalCategory.DEADLINE,
    "blocked_deadline": SignalCategory.BLOCKER,
}

MESSAGE_BLOCKER_MARKERS = ("blocked", "stuck", "can't proceed")
MESSAGE_DECISION_MARKERS = ("approve", "sign off", "decision needed")
MESSAGE_ESCALATION_MARKERS = ("urgent", "asap", "immediately")
MESSAGE_GREETING_MARKERS = ("hey ", "hi ")
MESSAGE_REQUEST_MARKERS = ("can you", "could you", "please")
MESSAGE_QUESTION_MARKERS = ("what", "how", "when")
MESSAGE_DEADLINE_MARKERS = ("deadline", "due", "by eod", "by end of")
MESSAGE_FYI_MARKERS = ("fyi", "heads up", "just letting you know")

TASK_BLOCKER_MARKERS = ("blocked", "stuck")
TASK_DECISION_MARKERS = ("review", "approve", "decision", "sign off")
TASK_URGENT_MARKERS = ("urgent", "asap")
TASK_URGENT_TAGS = {"urgent", "high priority"}
TASK_BLOCKER_TAGS = {"blocked", "blocker"}


def categorize_message(text: str, matcher: KeywordMatcher | None = None) -> tuple[SignalCategory, float]:
    match = matcher or DEFAULT_MATCHER
    body = text or ""

    if match.matches(body, MESSAGE_BLOCKER_MARKERS):
        return SignalCategory.BLOCKER, 0.90
    if match.matches(body, MESSAGE_DECISION_MARKERS):
        return SignalCategory.DECISION, 0.85
    if match.matches(body, MESSAGE_ESCALATION_MARKERS):
        return SignalCategory.ESCALATION, 0.85
    if "@" in body or match.matches(body, MESSAGE_GREETING_MARKERS):
        if match.matches(body, MESSAGE_REQUEST_MARKERS):
            return SignalCategory.COMMITMENT, 0.70
        return SignalCategory.MENTION, 0.75
    if "?" in body or match.matches(body, MESSAGE_QUESTION_MARKERS):
        return SignalCategory.QUESTION, 0.70
    if match.matches(body, MESSAGE_DEADLINE_MARKERS):
        return SignalCategory.DEADLINE, 0.75
    if match.matches(body, MESSAGE_FYI_MARKERS):
        return SignalCategory.UPDATE, 0.80
    return SignalCategory.UPDATE, 0.30


def categorize_task(
    item: CanonicalItem,
    now: datetime,
    matcher: KeywordMatcher | None = None,
    on_malformed: MalformedHook | None = None,
) -> tuple[SignalCategory, float]:
    match = matcher or DEFAULT_MATCHER
    title = item.title or ""
    notes = item.description or ""
    tags = {str(tag).strip().lower() for tag in item.metadata.get("tags", ()) or ()}

    if match.matches(title, TASK_BLOCKER_MARKERS) or tags & TASK_BLOCKER_TAGS:
        return SignalCategory.BLOCKER, 0.90

    due = checked_due_date(item, on_malformed)
    if due is not None:
        due_in = days_until(due, now)
        if due_in < 0:
            return SignalCategory.DEADLINE, 0.95
        if due_in <= 1:
            return SignalCategory.DEADLINE, 0.85
        if due_in <= 3:
            return SignalCategory.DEADLINE, 0.70

    if match.matches(title, TASK_DECISION_MARKERS):
        return SignalCategory.DECISION, 0.80
    if "?" in title or "?" in notes:
        return SignalCategory.QUESTION, 0.70
    if tags & TASK_URGENT_TAGS or match.matches(title, TASK_URGENT_MARKERS):
        return SignalCategory.ESCALATION, 0.80
    return SignalCategory.UPDATE, 0.50


def signal_from_item(
    item: CanonicalItem,
    verdict: SurfaceVerdict,
    now: datetime,
    *,
    matcher: KeywordMatcher | None = None,
    on_malformed: MalformedHook | None = None,
) -> UnifiedSignal:
    if verdict.surface and verdict.rule in RULE_CATEGORIES:
        category, confidence = RULE_CATEGORIES[verdict.rule], verdict.confidence
    elif item.provider is ProviderKind.CHAT_MESSAGE:
        text = " ".join(part for part in (item.title, item.description or "") if part)
        category, confidence = categorize_message(text, matcher)
    else:
        category, confidence = categorize_task(item, now, matcher, on_malformed)

    source = item.source or item.provider.value
    snippet = (item.description or item.title or "")[:SNIPPET_LIMIT]
    return UnifiedSignal(
        id=f"{source}-{item.external_id}",
        source=source,
        source_id=item.external_id,
        category=category,
        confidence=confidence,
        title=item.title,
        snippet=snippet,
        channel=item.channel_or_project,
        sender=item.owner_name,
        timestamp=item.last_activity_at if isinstance(item.last_activity_at, datetime) else None,
        url=item.url or "",
        metadata={"provider": item.provider.value, "status": item.status},
    )
