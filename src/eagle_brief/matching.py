"""Keyword matchers used by the classifier.

Keywords ending in ``*`` are prefixes (``escalat*`` covers ``escalate`` and
``escalation``). ``SubstringMatcher`` is the default and matches anywhere in the
text, so ``asap`` also fires inside ``asappointment``. ``WordBoundaryMatcher``
requires the keyword to stand on its own.
"""

from __future__ import annotations

import re
from functools import lru_cache
from typing import Iterable, Protocol


class KeywordMatcher(Protocol):
    name: str

    def find(self, text: str, keywords: Iterable[str]) -> list[str]: ...

    def matches(self, text: str, keywords: Iterable[str]) -> bool: ...


def _stem(keyword: str) -> str:
    return keyword[:-1] if keyword.endswith("*") else keyword


class SubstringMatcher:
    name = "substring"

    def find(self, text: str, keywords: Iterable[str]) -> list[str]:
        lowered = (text or "").lower()
        return [kw for kw in keywords if _stem(kw).lower() in lowered]

    def matches(self, text: str, keywords: Iterable[str]) -> bool:
        lowered = (text or "").lower()
        return any(_stem(kw).lower() in lowered for kw in keywords)


@lru_cache(maxsize=512)
def _boundary_pattern(keyword: str) -> re.Pattern[str]:
    stem = re.escape(_stem(keyword).lower())
    tail = r"\w*" if keyword.endswith("*") else ""
    return re.compile(rf"(?<!\w){stem}{tail}(?!\w)")


class WordBoundaryMatcher:
    name = "word_boundary"

    def find(self, text: str, keywords: Iterable[str]) -> list[str]:
        lowered = (text or "").lower()
        return [kw for kw in keywords if _boundary_pattern(kw).search(lowered)]

    def matches(self, text: str, keywords: Iterable[str]) -> bool:
        lowered = (text or "").lower()
        return any(_boundary_pattern(kw).search(lowered) for kw in keywords)


MATCHERS: dict[str, type] = {
    SubstringMatcher.name: SubstringMatcher,
    WordBoundaryMatcher.name: WordBoundaryMatcher,
}

DEFAULT_MATCHER: KeywordMatcher = SubstringMatcher()


def get_matcher(name: str) -> KeywordMatcher:
    try:
        return MATCHERS[name.strip().lower()]()
    except KeyError as exc:
        raise ValueError(f"Unknown keyword matcher: {name!r}; expected one of {sorted(MATCHERS)}") from exc
