from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable

from .models import CoverageAssessment, CoverageLevel

HIGH_COVERAGE_PERCENT = 80
MEDIUM_COVERAGE_PERCENT = 40
MAX_RECOMMENDATIONS = 3

# Most impactful first when recommending what to connect next.
IMPACT_ORDER = ("slack", "asana", "linear", "teams")


@dataclass(frozen=True)
class ToolCatalog:
    communication: tuple[str, ...] = ("slack", "teams")
    task: tuple[str, ...] = ("asana", "linear", "clickup", "jira", "notion")

    @property
    def all_tools(self) -> tuple[str, ...]:
        return self.communication + tuple(t for t in self.task if t not in self.communication)


DEFAULT_CATALOG = ToolCatalog()


def _percent(connected: set[str], known: tuple[str, ...]) -> float:
    if not known:
        return 0.0
    return len(connected & set(known)) / len(known) * 100


def coverage_level(percentage: int) -> CoverageLevel:
    if percentage >= HIGH_COVERAGE_PERCENT:
        return CoverageLevel.HIGH
    if percentage >= MEDIUM_COVERAGE_PERCENT:
        return CoverageLevel.MEDIUM
    return CoverageLevel.LOW


def _message(level: CoverageLevel, has_chat: bool, any_connected: bool) -> str:
    if level is CoverageLevel.HIGH:
        return "Great coverage! The brief can see most of your team's work."
    if level is CoverageLevel.MEDIUM:
        if has_chat:
            return "Good start! Connect a task manager for better deadline tracking."
        return "Connect Slack or Teams to catch team discussions."
    if any_connected:
        return "Limited coverage. Connect more tools to improve signal detection."
    return "No tools connected yet. Connect your workspace to get started."


def assess_coverage(
    connected_providers: Iterable[str],
    catalog: ToolCatalog = DEFAULT_CATALOG,
) -> CoverageAssessment:
    """Score how much of the user's tool landscape feeds the brief.

    Communication and task tools weigh equally. Connected names outside the
    catalog are reported but do not move the percentages.
    """
    connected = {str(name).strip().lower() for name in connected_providers if str(name).strip()}
    known = catalog.all_tools

    communication = _percent(connected, catalog.communication)
    task = _percent(connected, catalog.task)
    percentage = max(0, min(100, round((communication + task) / 2)))
    level = coverage_level(percentage)

    missing = [tool for tool in known if tool not in connected]
    ranked_missing = [tool for tool in IMPACT_ORDER if tool in missing]
    ranked_missing += [tool for tool in missing if tool not in ranked_missing]

    return CoverageAssessment(
        overall=level,
        percentage=percentage,
        communication_coverage=round(communication),
        task_coverage=round(task),
        connected_tools=frozenset(connected),
        missing_tools=frozenset(missing),
        message=_message(level, bool(connected & set(catalog.communication)), bool(connected)),
        recommended_tools=tuple(ranked_missing[:MAX_RECOMMENDATIONS]),
    )
