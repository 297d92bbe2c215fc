from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Iterable, Mapping

from .errors import InvalidModeError
from .models import IntentMode, SignalCategory, UnifiedSignal

C = SignalCategory


@dataclass(frozen=True)
class ModePolicy:
    """Minimum confidence per admitted category; categories not listed are rejected."""

    mode: IntentMode
    thresholds: Mapping[SignalCategory, float] = field(default_factory=dict)

    def admits(self, signal: UnifiedSignal) -> bool:
        minimum = self.thresholds.get(signal.category)
        return minimum is not None and signal.confidence >= minimum

    def is_within(self, other: "ModePolicy") -> bool:
        """True when every signal this policy admits is also admitted by ``other``."""
        for category, minimum in self.thresholds.items():
            other_minimum = other.thresholds.get(category)
            if other_minimum is None or other_minimum > minimum:
                return False
        return True


def _policy(mode: IntentMode, groups: Iterable[tuple[Iterable[SignalCategory], float]]) -> ModePolicy:
    thresholds: dict[SignalCategory, float] = {}
    for categories, minimum in groups:
        for category in categories:
            thresholds[category] = minimum
    return ModePolicy(mode=mode, thresholds=thresholds)


DEFAULT_POLICIES: dict[IntentMode, ModePolicy] = {
    # Vacation: only what cannot wait.
    IntentMode.CALM: _policy(IntentMode.CALM, [((C.BLOCKER, C.DECISION, C.ESCALATION), 0.80)]),
    IntentMode.ON_THE_GO: _policy(
        IntentMode.ON_THE_GO,
        [((C.BLOCKER, C.DECISION, C.ESCALATION), 0.70), ((C.MENTION, C.DEADLINE), 0.75)],
    ),
    # Deep work: decisions and mentions are not work-derailing.
    IntentMode.FOCUS: _policy(IntentMode.FOCUS, [((C.BLOCKER, C.DEADLINE, C.ESCALATION), 0.70)]),
    IntentMode.WORK: _policy(
        IntentMode.WORK,
        [
            ((C.BLOCKER, C.DECISION, C.ESCALATION), 0.60),
            ((C.MENTION, C.QUESTION, C.COMMITMENT, C.DEADLINE), 0.65),
            ((C.UPDATE,), 0.70),
        ],
    ),
}

NESTED_MODES = (IntentMode.CALM, IntentMode.ON_THE_GO, IntentMode.WORK)


def resolve_mode(value: IntentMode | str) -> IntentMode:
    if isinstance(value, IntentMode):
        return value
    text = str(value).strip().lower().replace("-", "_") if isinstance(value, str) else value
    try:
        return IntentMode(text)
    except ValueError as exc:
        raise InvalidModeError(value, [mode.value for mode in IntentMode]) from exc


def policies_from_dict(overrides: Mapping[str, Any] | None) -> dict[IntentMode, ModePolicy]:
    """Apply configured ``{mode: {category: min_confidence}}`` overrides to the defaults."""
    policies = dict(DEFAULT_POLICIES)
    for raw_mode, raw_thresholds in (overrides or {}).items():
        mode = resolve_mode(raw_mode)
        if not isinstance(raw_thresholds, Mapping):
            raise ValueError(f"modes.{mode.value} must be a mapping of category to confidence")
        thresholds: dict[SignalCategory, float] = {}
        for raw_category, raw_minimum in raw_thresholds.items():
            try:
                category = SignalCategory(str(raw_category))
            except ValueError as exc:
                raise ValueError(f"modes.{mode.value}: unknown category {raw_category!r}") from exc
            minimum = float(raw_minimum)
            if not 0.0 <= minimum <= 1.0:
                raise ValueError(f"modes.{mode.value}.{category.value} must be within [0, 1]")
            thresholds[category] = minimum
        policies[mode] = ModePolicy(mode=mode, thresholds=thresholds)
    validate_nesting(policies)
    return policies


def validate_nesting(policies: Mapping[IntentMode, ModePolicy]) -> None:
    for narrower, wider in zip(NESTED_MODES, NESTED_MODES[1:]):
        if not policies[narrower].is_within(policies[wider]):
            raise ValueError(
                f"Mode policy '{narrower.value}' must admit a subset of '{wider.value}'"
            )


def filter_by_mode(
    signals: Iterable[UnifiedSignal],
    mode: IntentMode | str,
    policies: Mapping[IntentMode, ModePolicy] | None = None,
) -> list[UnifiedSignal]:
    policy = (policies or DEFAULT_POLICIES)[resolve_mode(mode)]
    return [signal for signal in signals if policy.admits(signal)]
