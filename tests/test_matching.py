from __future__ import annotations

import pytest

from eagle_brief.matching import SubstringMatcher, WordBoundaryMatcher, get_matcher


def test_substring_matcher_finds_keywords_anywhere() -> None:
    matcher = SubstringMatcher()
    assert matcher.find("Please escalate ASAP", ["asap", "escalat*", "p0"]) == ["asap", "escalat*"]
    assert matcher.matches("reschedule the p1x sync", ["p1"])


def test_word_boundary_matcher_requires_whole_words() -> None:
    matcher = WordBoundaryMatcher()
    assert not matcher.matches("reschedule the p1x sync", ["p1"])
    assert matcher.matches("this is a P1 incident", ["p1"])
    assert matcher.matches("we escalated it", ["escalat*"])
    assert matcher.matches("all done!", ["done!"])
    assert matcher.find("", ["urgent"]) == []


def test_get_matcher_by_name() -> None:
    assert isinstance(get_matcher("substring"), SubstringMatcher)
    assert isinstance(get_matcher(" Word_Boundary "), WordBoundaryMatcher)
    with pytest.raises(ValueError, match="Unknown keyword matcher"):
        get_matcher("regex")
