"""Surfacing policy: an ordered list of rules where the first match wins.

Positive rules come before problem rules so that a shipped milestone which
also mentions an urgent keyword is reported as a win.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable

from .models import SignalFlags, SignalType, SurfaceVerdict


@dataclass(frozen=True)
class SurfaceRule:
    name: str
    predicate: Callable[[SignalFlags], bool]
    verdict: SurfaceVerdict


def _rule(name: str, predicate: Callable[[SignalFlags], bool], reason: str, confidence: float, kind: SignalType) -> SurfaceRule:
    return SurfaceRule(
        name=name,
        predicate=predicate,
        verdict=SurfaceVerdict(surface=True, reason=reason, confidence=confidence, signal_type=kind, rule=name),
    )


SURFACE_POLICY: tuple[SurfaceRule, ...] = (
    _rule("milestone", lambda f: f.has_milestone, "milestone achieved", 0.90, SignalType.POSITIVE),
    _rule("appreciation", lambda f: f.has_appreciation, "team appreciation", 0.85, SignalType.POSITIVE),
    _rule("positive_feedback", lambda f: f.has_positive_feedback, "positive feedback", 0.80, SignalType.POSITIVE),
    _rule("escalation", lambda f: f.has_escalation, "escalation detected", 0.95, SignalType.PROBLEM),
    _rule(
        "stalled_deadline",
        lambda f: f.has_commitment and f.has_time_pressure and f.has_movement_gap,
        "deadline approaching with no activity",
        0.85,
        SignalType.PROBLEM,
    ),
    _rule(
        "blocked_deadline",
        lambda f: f.has_commitment and f.has_time_pressure and f.has_dependency,
        "deadline approaching with dependency",
        0.85,
        SignalType.PROBLEM,
    ),
)

NO_SURFACE = SurfaceVerdict(surface=False, reason=None, confidence=0.0, signal_type=SignalType.NEUTRAL)


def decide(flags: SignalFlags, policy: tuple[SurfaceRule, ...] = SURFACE_POLICY) -> SurfaceVerdict:
    for rule in policy:
        if rule.predicate(flags):
            return rule.verdict
    return NO_SURFACE
