from __future__ import annotations

from datetime import datetime

from .classifier import MalformedHook, checked_due_date, checked_last_activity, classify, days_since, days_until
from .models import CanonicalItem, SignalFlags, TriagedItem

MAX_SCORE = 100


def _due_contribution(days_to_due: int) -> tuple[int, str] | None:
    if days_to_due < 0:
        overdue = abs(days_to_due)
        return min(40 + overdue * 2, 60), f"overdue by {overdue}d"
    if days_to_due == 0:
        return 35, "due today"
    if days_to_due == 1:
        return 28, "due tomorrow"
    if days_to_due <= 3:
        return 15, f"due in {days_to_due}d"
    return None


def _staleness_contribution(idle_days: int) -> tuple[int, str] | None:
    if idle_days >= 7:
        return 25, f"no activity for {idle_days}d"
    if idle_days >= 5:
        return 20, f"no activity for {idle_days}d"
    if idle_days >= 3:
        return 15, f"no activity for {idle_days}d"
    return None


def score_with_reasons(
    item: CanonicalItem,
    now: datetime,
    flags: SignalFlags | None = None,
    *,
    on_malformed: MalformedHook | None = None,
) -> tuple[int, list[str]]:
    if flags is None:
        flags = classify(item, now, on_malformed=on_malformed)

    total = 0
    reasons: list[str] = []

    due = checked_due_date(item, on_malformed)
    if due is not None:
        part = _due_contribution(days_until(due, now))
        if part:
            total += part[0]
            reasons.append(f"+{part[0]} {part[1]}")

    last_activity = checked_last_activity(item, on_malformed)
    if last_activity is not None:
        part = _staleness_contribution(days_since(last_activity, now))
        if part:
            total += part[0]
            reasons.append(f"+{part[0]} {part[1]}")

    if flags.has_dependency:
        total += 15
        reasons.append("+15 blocked or waiting")
    if flags.has_escalation:
        total += 20
        reasons.append("+20 escalation keyword")

    return min(total, MAX_SCORE), reasons


def score(item: CanonicalItem, now: datetime, flags: SignalFlags | None = None) -> int:
    """Advisory 0-100 urgency; surfacing is decided separately by ``decide``."""
    value, _ = score_with_reasons(item, now, flags)
    return value


def rank_items(items: list[TriagedItem]) -> list[TriagedItem]:
    return sorted(items, key=lambda t: (-t.score, t.item.title, t.item.external_id))
