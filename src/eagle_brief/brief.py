from __future__ import annotations

from typing import Iterable, Union

from .models import Brief, SignalCategory, SignalType, TriagedItem, UnifiedSignal

BriefEntry = Union[TriagedItem, UnifiedSignal]

ALL_CLEAR_TEXT = "All clear! No urgent items need your attention."

HANDLED_STATUSES = frozenset(
    {"completed", "complete", "done", "resolved", "closed", "archived", "cancelled", "canceled", "won't do"}
)

ATTENTION_CATEGORIES = frozenset(
    {
        SignalCategory.BLOCKER,
        SignalCategory.DECISION,
        SignalCategory.ESCALATION,
        SignalCategory.MENTION,
        SignalCategory.DEADLINE,
        SignalCategory.COMMITMENT,
    }
)

# Summary order is fixed: (category, singular, plural). Escalations come last so
# the sentence never reads "all clear" while one is open.
SUMMARY_PARTS = (
    (SignalCategory.BLOCKER, "blocker", "blockers"),
    (SignalCategory.DECISION, "decision needed", "decisions needed"),
    (SignalCategory.DEADLINE, "deadline", "deadlines"),
    (SignalCategory.MENTION, "@mention", "@mentions"),
    (SignalCategory.QUESTION, "question", "questions"),
    (SignalCategory.ESCALATION, "escalation", "escalations"),
)


def _signal_of(entry: BriefEntry) -> UnifiedSignal:
    return entry.signal if isinstance(entry, TriagedItem) else entry


def _bucket(entry: BriefEntry, handled_statuses: frozenset[str]) -> str | None:
    if isinstance(entry, TriagedItem):
        verdict = entry.verdict
        if verdict.surface:
            return "needs_attention" if verdict.signal_type is SignalType.PROBLEM else "fyi"
        if entry.item.status in handled_statuses:
            return "handled"
        return None
    return "needs_attention" if entry.category in ATTENTION_CATEGORIES else "fyi"


def count_categories(entries: Iterable[BriefEntry]) -> dict[str, int]:
    counts = {category.value: 0 for category, _, _ in SUMMARY_PARTS}
    for entry in entries:
        category = _signal_of(entry).category.value
        if category in counts:
            counts[category] += 1
    return counts


def summarize(counts: dict[str, int]) -> str:
    parts: list[str] = []
    for category, singular, plural in SUMMARY_PARTS:
        count = counts.get(category.value, 0)
        if count > 0:
            parts.append(f"{count} {singular if count == 1 else plural}")
    if not parts:
        return ALL_CLEAR_TEXT
    return f"Today you have: {', '.join(parts)}."


def compile_brief(
    filtered_items: Iterable[BriefEntry],
    *,
    handled_statuses: Iterable[str] = HANDLED_STATUSES,
    max_items_per_bucket: int | None = None,
) -> Brief:
    """Bucket already-filtered entries; counts cover needs_attention and fyi before truncation."""
    statuses = frozenset(s.strip().lower() for s in handled_statuses)
    buckets: dict[str, list[BriefEntry]] = {"needs_attention": [], "fyi": [], "handled": []}
    for entry in filtered_items:
        name = _bucket(entry, statuses)
        if name is not None:
            buckets[name].append(entry)

    counts = count_categories(buckets["needs_attention"] + buckets["fyi"])
    limit = max_items_per_bucket
    return Brief(
        needs_attention=tuple(buckets["needs_attention"][:limit]),
        fyi=tuple(buckets["fyi"][:limit]),
        handled=tuple(buckets["handled"][:limit]),
        summary_text=summarize(counts),
        counts=counts,
    )
