from __future__ import annotations

import logging
import os
from typing import Any

from openai import OpenAI

from .models import Brief, CoverageAssessment, IntentMode

logger = logging.getLogger(__name__)

SYSTEM_PROMPT = (
    "You write one or two sentences summarising a daily work brief. "
    "Be direct and calm. Do not use lists. Do not invent items."
)


def narration_payload(brief: Brief, mode: IntentMode, coverage: CoverageAssessment | None = None) -> dict[str, Any]:
    """Counts only; item titles and text never leave the process."""
    payload: dict[str, Any] = {
        "mode": mode.label,
        "needs_attention": len(brief.needs_attention),
        "fyi": len(brief.fyi),
        "handled": len(brief.handled),
        "categories": dict(brief.counts),
    }
    if coverage is not None:
        payload["coverage_percent"] = coverage.percentage
    return payload


class BriefNarrator:
    def __init__(self, model: str, *, client: Any = None, max_output_tokens: int = 300):
        self.model = model
        self.max_output_tokens = max_output_tokens
        self._client = client

    def _get_client(self) -> Any:
        if self._client is None:
            if not os.getenv("OPENAI_API_KEY"):
                return None
            self._client = OpenAI()
        return self._client

    def narrate(self, brief: Brief, mode: IntentMode, coverage: CoverageAssessment | None = None) -> str:
        client = self._get_client()
        if client is None:
            return brief.summary_text

        payload = narration_payload(brief, mode, coverage)
        user = (
            f"Mode: {payload['mode']}\n"
            f"Needs attention: {payload['needs_attention']}\n"
            f"FYI: {payload['fyi']}\n"
            f"Handled without the user: {payload['handled']}\n"
            f"By category: {payload['categories']}\n"
            f"Coverage: {payload.get('coverage_percent', 'unknown')}%\n"
            f"Plain version: {brief.summary_text}"
        )
        try:
            response = client.responses.create(
                model=self.model,
                input=[
                    {"role": "system", "content": SYSTEM_PROMPT},
                    {"role": "user", "content": user},
                ],
                max_output_tokens=self.max_output_tokens,
            )
        except Exception as exc:
            logger.warning("Narration failed, using deterministic summary: %s", exc)
            return brief.summary_text
        text = (getattr(response, "output_text", "") or "").strip()
        return text or brief.summary_text
