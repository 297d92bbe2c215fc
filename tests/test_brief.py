from __future__ import annotations

from datetime import datetime, timezone

from eagle_brief.brief import ALL_CLEAR_TEXT, compile_brief, summarize
from eagle_brief.models import CanonicalItem, ProviderKind, SignalCategory, UnifiedSignal
from eagle_brief.pipeline import triage_item


NOW = datetime(2026, 2, 16, 9, 0, tzinfo=timezone.utc)


def _signal(category: SignalCategory, source_id: str, confidence: float = 0.9) -> UnifiedSignal:
    return UnifiedSignal(
        id=f"slack-{source_id}",
        source="slack",
        source_id=source_id,
        category=category,
        confidence=confidence,
    )


def _task(external_id: str, title: str, status: str = "") -> CanonicalItem:
    return CanonicalItem(provider=ProviderKind.TASK, external_id=external_id, title=title, status=status, source="asana")


def test_empty_input_is_all_clear() -> None:
    brief = compile_brief([])
    assert brief.needs_attention == ()
    assert brief.fyi == ()
    assert brief.handled == ()
    assert brief.summary_text == ALL_CLEAR_TEXT == "All clear! No urgent items need your attention."


def test_signals_bucket_by_category_and_summarize_in_fixed_order() -> None:
    signals = [
        _signal(SignalCategory.QUESTION, "1"),
        _signal(SignalCategory.BLOCKER, "2"),
        _signal(SignalCategory.DECISION, "3"),
        _signal(SignalCategory.BLOCKER, "4"),
        _signal(SignalCategory.UPDATE, "5"),
    ]
    brief = compile_brief(signals)
    assert [s.source_id for s in brief.needs_attention] == ["2", "3", "4"]
    assert [s.source_id for s in brief.fyi] == ["1", "5"]
    assert brief.summary_text == "Today you have: 2 blockers, 1 decision needed, 1 question."
    assert brief.counts["blocker"] == 2


def test_summary_pluralization() -> None:
    counts = {"decision": 2, "mention": 1, "deadline": 3}
    assert summarize(counts) == "Today you have: 2 decisions needed, 3 deadlines, 1 @mention."
    assert summarize({"blocker": 0}) == ALL_CLEAR_TEXT


def test_triaged_items_bucket_by_verdict_and_status() -> None:
    entries = [
        triage_item(_task("1", "Critical: checkout errors"), NOW),
        triage_item(_task("2", "Shipped onboarding v2"), NOW),
        triage_item(_task("3", "Update docs", status="Completed"), NOW),
        triage_item(_task("4", "Refactor settings page", status="in progress"), NOW),
    ]
    brief = compile_brief(entries)
    assert [t.item.external_id for t in brief.needs_attention] == ["1"]
    assert [t.item.external_id for t in brief.fyi] == ["2"]
    assert [t.item.external_id for t in brief.handled] == ["3"]
    assert brief.summary_text == "Today you have: 1 escalation."


def test_surfaced_win_on_closed_item_stays_in_fyi() -> None:
    entry = triage_item(_task("9", "Shipped v2 to customers", status="done"), NOW)
    brief = compile_brief([entry])
    assert brief.fyi == (entry,)
    assert brief.handled == ()


def test_custom_handled_statuses() -> None:
    entry = triage_item(_task("5", "Migrate billing tables", status="Merged"), NOW)
    assert compile_brief([entry]).handled == ()
    assert compile_brief([entry], handled_statuses=["merged"]).handled == (entry,)


def test_bucket_limit_keeps_full_counts() -> None:
    signals = [_signal(SignalCategory.BLOCKER, str(i)) for i in range(3)]
    brief = compile_brief(signals, max_items_per_bucket=1)
    assert len(brief.needs_attention) == 1
    assert brief.summary_text == "Today you have: 3 blockers."
