from __future__ import annotations

import logging
import math
from datetime import date, datetime, timezone
from typing import Any, Callable

from .matching import DEFAULT_MATCHER, KeywordMatcher
from .models import CanonicalItem, SignalFlags

logger = logging.getLogger(__name__)

BLOCKING_KEYWORDS = ("blocked", "waiting", "pending", "on hold", "depends", "stuck")
ESCALATION_KEYWORDS = ("urgent", "asap", "critical", "escalat*", "emergency", "blocker", "p0", "p1")
APPRECIATION_KEYWORDS = (
    "thank",
    "thanks",
    "great job",
    "well done",
    "awesome",
    "amazing",
    "excellent",
    "kudos",
    "shoutout",
    "appreciate",
    "fantastic",
    "brilliant",
    "proud of",
    "crushed it",
    "nailed it",
    "killed it",
)
MILESTONE_KEYWORDS = (
    "launched",
    "shipped",
    "completed",
    "released",
    "achieved",
    "milestone",
    "reached",
    "hit the goal",
    "done!",
    "finished",
    "accomplished",
    "delivered",
    "went live",
    "production",
    "deployed",
)
POSITIVE_FEEDBACK_KEYWORDS = (
    "love this",
    "looks great",
    "perfect",
    "exactly what",
    "nice work",
    "impressive",
    "solid",
    "clean",
    "beautiful",
)

TIME_PRESSURE_DAYS = 3
MOVEMENT_GAP_IDLE_DAYS = 3
MOVEMENT_GAP_DUE_WINDOW_DAYS = 7

MalformedHook = Callable[[CanonicalItem, str, Any], None]


def log_malformed(item: CanonicalItem, field_name: str, value: Any) -> None:
    logger.warning(
        "Ignoring malformed %s on %s item %s: %r",
        field_name,
        item.provider.value,
        item.external_id,
        value,
    )


def as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def days_until(due: date, now: datetime) -> int:
    """Whole days from today to ``due``; zero for today, negative when overdue."""
    return (due - now.date()).days


def days_since(moment: datetime, now: datetime) -> int:
    elapsed = as_utc(now) - as_utc(moment)
    return math.floor(elapsed.total_seconds() / 86400)


def checked_due_date(item: CanonicalItem, on_malformed: MalformedHook | None = None) -> date | None:
    value = item.due_date
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    (on_malformed or log_malformed)(item, "due_date", value)
    return None


def checked_last_activity(item: CanonicalItem, on_malformed: MalformedHook | None = None) -> datetime | None:
    value = item.last_activity_at
    if value is None:
        return None
    if isinstance(value, datetime):
        return value
    (on_malformed or log_malformed)(item, "last_activity_at", value)
    return None


def item_text(item: CanonicalItem) -> str:
    parts = [item.title or "", item.description or "", *item.comments_text]
    return " ".join(part.lower() for part in parts)


def classify(
    item: CanonicalItem,
    now: datetime,
    *,
    matcher: KeywordMatcher | None = None,
    on_malformed: MalformedHook | None = None,
) -> SignalFlags:
    """Compute the behavioural flags of one item as of ``now``.

    Missing fields mean the rule that needs them does not apply. Malformed
    dates are reported through ``on_malformed`` and then treated as missing.
    """
    match = matcher or DEFAULT_MATCHER
    due = checked_due_date(item, on_malformed)
    last_activity = checked_last_activity(item, on_malformed)
    title = item.title or ""
    everything = item_text(item)

    due_in = days_until(due, now) if due is not None else None
    idle = days_since(last_activity, now) if last_activity is not None else None

    has_time_pressure = due_in is not None and due_in <= TIME_PRESSURE_DAYS
    has_movement_gap = (
        due_in is not None
        and idle is not None
        and idle >= MOVEMENT_GAP_IDLE_DAYS
        and due_in <= MOVEMENT_GAP_DUE_WINDOW_DAYS
    )

    return SignalFlags(
        has_commitment=bool(item.owner_name) and due is not None,
        has_time_pressure=has_time_pressure,
        has_movement_gap=has_movement_gap,
        has_dependency=match.matches(item.status, BLOCKING_KEYWORDS) or match.matches(title, BLOCKING_KEYWORDS),
        has_escalation=match.matches(title, ESCALATION_KEYWORDS),
        has_appreciation=match.matches(everything, APPRECIATION_KEYWORDS),
        has_milestone=match.matches(everything, MILESTONE_KEYWORDS),
        has_positive_feedback=match.matches(everything, POSITIVE_FEEDBACK_KEYWORDS),
    )
