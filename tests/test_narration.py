from __future__ import annotations

from types import SimpleNamespace

from eagle_brief.brief import compile_brief
from eagle_brief.coverage import assess_coverage
from eagle_brief.models import IntentMode, SignalCategory, UnifiedSignal
from eagle_brief.narration import BriefNarrator, narration_payload


def _brief():
    return compile_brief(
        [
            UnifiedSignal(
                id="asana-1",
                source="asana",
                source_id="1",
                category=SignalCategory.BLOCKER,
                confidence=0.9,
                title="Secret merger plan",
                snippet="Term sheet attached",
            )
        ]
    )


class _FakeResponses:
    def __init__(self, text: str = "", error: Exception | None = None):
        self.text = text
        self.error = error
        self.calls: list[dict] = []

    def create(self, **kwargs):
        self.calls.append(kwargs)
        if self.error is not None:
            raise self.error
        return SimpleNamespace(output_text=self.text)


def test_narrator_sends_counts_only() -> None:
    responses = _FakeResponses(text="One blocker is waiting on you.")
    narrator = BriefNarrator("gpt-4o-mini", client=SimpleNamespace(responses=responses))
    text = narrator.narrate(_brief(), IntentMode.WORK, assess_coverage(["asana"]))

    assert text == "One blocker is waiting on you."
    assert len(responses.calls) == 1
    call = responses.calls[0]
    assert call["model"] == "gpt-4o-mini"
    assert call["max_output_tokens"] == 300
    sent = str(call["input"])
    assert "Secret merger plan" not in sent
    assert "Term sheet" not in sent
    assert "Needs attention: 1" in sent


def test_narrator_falls_back_on_error_or_empty_output() -> None:
    brief = _brief()
    failing = BriefNarrator("m", client=SimpleNamespace(responses=_FakeResponses(error=RuntimeError("rate limited"))))
    assert failing.narrate(brief, IntentMode.WORK) == "Today you have: 1 blocker."

    empty = BriefNarrator("m", client=SimpleNamespace(responses=_FakeResponses(text="   ")))
    assert empty.narrate(brief, IntentMode.WORK) == "Today you have: 1 blocker."


def test_narrator_without_api_key_is_deterministic(monkeypatch) -> None:
    monkeypatch.delenv("OPENAI_API_KEY", raising=False)
    assert BriefNarrator("m").narrate(_brief(), IntentMode.CALM) == "Today you have: 1 blocker."


def test_narration_payload() -> None:
    payload = narration_payload(_brief(), IntentMode.ON_THE_GO, assess_coverage(["slack", "asana"]))
    assert payload == {
        "mode": "On-the-Go",
        "needs_attention": 1,
        "fyi": 0,
        "handled": 0,
        "categories": {
            "blocker": 1,
            "decision": 0,
            "deadline": 0,
            "mention": 0,
            "question": 0,
            "escalation": 0,
        },
        "coverage_percent": 35,
    }
