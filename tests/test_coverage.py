from __future__ import annotations

from itertools import combinations

from eagle_brief.coverage import DEFAULT_CATALOG, ToolCatalog, assess_coverage, coverage_level
from eagle_brief.models import CoverageLevel


def test_nothing_connected() -> None:
    coverage = assess_coverage([])
    assert coverage.percentage == 0
    assert coverage.overall is CoverageLevel.LOW
    assert coverage.message == "No tools connected yet. Connect your workspace to get started."
    assert coverage.missing_tools == frozenset(DEFAULT_CATALOG.all_tools)
    assert coverage.recommended_tools == ("slack", "asana", "linear")


def test_one_chat_tool_and_one_task_tool() -> None:
    coverage = assess_coverage(["Slack", " ASANA "])
    assert coverage.communication_coverage == 50
    assert coverage.task_coverage == 20
    assert coverage.percentage == 35
    assert coverage.overall is CoverageLevel.LOW
    assert coverage.message == "Limited coverage. Connect more tools to improve signal detection."
    assert coverage.connected_tools == frozenset({"slack", "asana"})
    assert coverage.missing_tools == frozenset({"teams", "linear", "clickup", "jira", "notion"})
    assert coverage.recommended_tools == ("linear", "teams", "clickup")


def test_medium_messages_depend_on_chat() -> None:
    chat_only = assess_coverage(["slack", "teams"])
    assert chat_only.percentage == 50
    assert chat_only.overall is CoverageLevel.MEDIUM
    assert chat_only.message == "Good start! Connect a task manager for better deadline tracking."

    tasks_only = assess_coverage(["asana", "linear", "clickup", "jira", "notion"])
    assert tasks_only.percentage == 50
    assert tasks_only.message == "Connect Slack or Teams to catch team discussions."


def test_high_coverage() -> None:
    coverage = assess_coverage(["slack", "teams", "asana", "linear", "clickup"])
    assert coverage.percentage == 80
    assert coverage.overall is CoverageLevel.HIGH
    assert coverage.message == "Great coverage! The brief can see most of your team's work."


def test_bucket_edges() -> None:
    assert coverage_level(0) is CoverageLevel.LOW
    assert coverage_level(39) is CoverageLevel.LOW
    assert coverage_level(40) is CoverageLevel.MEDIUM
    assert coverage_level(79) is CoverageLevel.MEDIUM
    assert coverage_level(80) is CoverageLevel.HIGH
    assert coverage_level(100) is CoverageLevel.HIGH
    assert assess_coverage(["asana", "linear", "clickup", "jira"]).overall is CoverageLevel.MEDIUM


def test_unknown_tools_are_reported_but_not_counted() -> None:
    coverage = assess_coverage(["github", "slack"])
    assert "github" in coverage.connected_tools
    assert "github" not in coverage.missing_tools
    assert coverage.percentage == 25


def test_percentage_bounds_for_every_combination() -> None:
    tools = DEFAULT_CATALOG.all_tools
    for size in range(len(tools) + 1):
        for combo in combinations(tools, size):
            coverage = assess_coverage(combo)
            assert 0 <= coverage.percentage <= 100
            assert coverage.overall is coverage_level(coverage.percentage)
    assert assess_coverage(tools).percentage == 100


def test_custom_catalog() -> None:
    catalog = ToolCatalog(communication=("slack",), task=("jira",))
    coverage = assess_coverage(["slack", "jira"], catalog)
    assert coverage.percentage == 100
    assert coverage.missing_tools == frozenset()
    assert coverage.recommended_tools == ()
