from __future__ import annotations

import json
from datetime import datetime, timezone
from pathlib import Path

import pytest

from eagle_brief.errors import InvalidModeError
from eagle_brief.models import IntentMode, SignalCategory, brief_to_dict
from eagle_brief.normalizers import ProviderBatch, messages_from_slack_channels, tasks_from_asana
from eagle_brief.pipeline import run_cycle, run_fetch_cycle, run_signal_cycle


ROOT = Path(__file__).resolve().parents[1]
NOW = datetime(2026, 2, 16, 9, 0, tzinfo=timezone.utc)


def _load_fixture(name: str) -> dict:
    return json.loads((ROOT / "tests" / "fixtures" / name).read_text(encoding="utf-8"))


def _batches() -> list[ProviderBatch]:
    return [
        ProviderBatch(source="asana", items=tuple(tasks_from_asana(_load_fixture("asana_tasks.json")["data"]))),
        ProviderBatch(
            source="slack",
            items=tuple(messages_from_slack_channels(_load_fixture("slack_channels.json")["channels"])),
        ),
    ]


def _ids(entries) -> list[str]:
    return [entry.item.external_id for entry in entries]


def test_work_mode_brief_from_fixtures() -> None:
    result = run_cycle(_batches(), "work", NOW)

    assert result.mode is IntentMode.WORK
    assert len(result.items) == 9
    assert _ids(result.brief.needs_attention) == ["1001", "1006", "1002"]
    assert _ids(result.brief.fyi) == ["1003", "C100:1771232400.000100"]
    assert _ids(result.brief.handled) == ["1004"]
    assert result.brief.summary_text == "Today you have: 1 blocker, 1 deadline, 1 escalation."

    top = result.brief.needs_attention[0]
    assert top.score == 58
    assert top.verdict.reason == "deadline approaching with no activity"
    assert top.signal.category is SignalCategory.DEADLINE
    assert top.signal.confidence == 0.85

    outage = result.brief.needs_attention[2]
    assert outage.verdict.reason == "escalation detected"
    assert outage.signal.category is SignalCategory.ESCALATION
    assert outage.score == 20

    assert result.coverage.connected_tools == frozenset({"asana", "slack"})
    assert result.coverage.percentage == 35


def test_calm_and_focus_modes_narrow_the_brief() -> None:
    calm = run_cycle(_batches(), IntentMode.CALM, NOW)
    assert _ids(calm.brief.needs_attention) == ["1006", "1002"]
    assert calm.brief.fyi == ()
    assert _ids(calm.brief.handled) == ["1004"]
    assert calm.brief.summary_text == "Today you have: 1 blocker, 1 escalation."

    focus = run_cycle(_batches(), "focus", NOW)
    assert _ids(focus.brief.needs_attention) == ["1001", "1006", "1002"]
    assert focus.brief.fyi == ()


def test_admitted_items_nest_across_modes() -> None:
    admitted = {
        mode: set(_ids(run_cycle(_batches(), mode, NOW).admitted))
        for mode in (IntentMode.CALM, IntentMode.ON_THE_GO, IntentMode.WORK)
    }
    assert admitted[IntentMode.CALM] <= admitted[IntentMode.ON_THE_GO] <= admitted[IntentMode.WORK]


def test_cycle_is_deterministic() -> None:
    first = run_cycle(_batches(), "work", NOW)
    second = run_cycle(_batches(), "work", NOW)
    assert brief_to_dict(first.brief) == brief_to_dict(second.brief)
    assert [t.score for t in first.items] == [t.score for t in second.items]


def test_invalid_mode_fails_fast() -> None:
    with pytest.raises(InvalidModeError):
        run_cycle(_batches(), "vacation", NOW)


def test_empty_cycle_is_all_clear() -> None:
    result = run_cycle([], "work", NOW)
    assert result.items == ()
    assert result.brief.summary_text == "All clear! No urgent items need your attention."
    assert result.coverage.percentage == 0


def test_failed_provider_lowers_coverage_only() -> None:
    batches = _batches() + [ProviderBatch(source="linear", error="timeout")]
    result = run_cycle(batches, "work", NOW)
    assert "linear" not in result.coverage.connected_tools
    assert len(result.items) == 9

    explicit = run_cycle(batches, "work", NOW, ["slack", "asana", "linear"])
    assert explicit.coverage.percentage == 45


def test_signal_cycle_filters_message_signals() -> None:
    result = run_signal_cycle(
        [
            {"source": "slack", "source_id": "1", "category": "update", "confidence": 0.65},
            {"source": "slack", "source_id": "2", "category": "blocker", "confidence": 0.65},
        ],
        "work",
        ["slack"],
    )
    assert [s.source_id for s in result.admitted] == ["2"]
    assert result.brief.summary_text == "Today you have: 1 blocker."
    assert result.coverage.percentage == 25


def test_fetch_cycle_runs_providers_concurrently() -> None:
    def failing():
        raise RuntimeError("401 unauthorized")

    tasks = _load_fixture("asana_tasks.json")["data"]
    result = run_fetch_cycle({"asana": lambda: tasks_from_asana(tasks), "jira": failing}, "work", NOW)
    assert _ids(result.brief.needs_attention) == ["1001", "1006", "1002"]
    assert result.coverage.connected_tools == frozenset({"asana"})
    assert result.coverage.percentage == 10


def test_malformed_record_dates_reach_the_cycle_hook() -> None:
    seen: list[tuple[str, str, object]] = []

    def hook(item, field_name: str, value: object) -> None:
        seen.append((item.external_id, field_name, value))

    result = run_cycle(
        {"asana": [{"external_id": "T-1", "owner_name": "Dana", "due_date": "2026-13-45"}]},
        "work",
        NOW,
        on_malformed=hook,
    )
    assert seen == [("T-1", "due_date", "2026-13-45")]
    assert not result.items[0].flags.has_commitment
    assert result.brief.summary_text == "All clear! No urgent items need your attention."
