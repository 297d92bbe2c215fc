from __future__ import annotations

import time

from eagle_brief.fetching import fetch_all


def test_slow_and_failing_providers_are_isolated() -> None:
    def failing():
        raise RuntimeError("boom")

    def slow():
        time.sleep(0.5)
        return [{"external_id": "late"}]

    batches = fetch_all(
        {
            "asana": lambda: [{"external_id": "T-1"}],
            "linear": failing,
            "slack": slow,
        },
        timeout_seconds=5.0,
        timeouts={"slack": 0.05},
    )
    assert [b.source for b in batches] == ["asana", "linear", "slack"]

    asana, linear, slack = batches
    assert asana.ok
    assert asana.items == ({"external_id": "T-1"},)
    assert asana.fetched_at is not None
    assert linear.error == "boom"
    assert linear.items == ()
    assert slack.error == "timeout"
    assert slack.items == ()


def test_items_are_capped_per_provider() -> None:
    batches = fetch_all({"jira": lambda: iter(range(10))}, max_items=3)
    assert batches[0].items == (0, 1, 2)


def test_error_while_iterating_fails_the_provider() -> None:
    def partial():
        yield {"external_id": "1"}
        raise ConnectionError("reset by peer")

    batches = fetch_all({"notion": partial})
    assert batches[0].error == "reset by peer"
    assert batches[0].items == ()


def test_no_fetchers() -> None:
    assert fetch_all({}) == []


def test_fast_provider_is_not_queued_behind_slow_ones() -> None:
    def slow():
        time.sleep(1.0)
        return []

    fetchers = {f"slow-{i}": slow for i in range(4)}
    fetchers["asana"] = lambda: [{"external_id": "T-1"}]

    batches = {b.source: b for b in fetch_all(fetchers, timeout_seconds=0.3)}
    assert batches["asana"].ok
    assert batches["asana"].items == ({"external_id": "T-1"},)
    assert all(batches[f"slow-{i}"].error == "timeout" for i in range(4))


def test_fetch_that_overran_its_deadline_is_a_timeout() -> None:
    def medium():
        time.sleep(0.4)
        return [{"external_id": "M-1"}]

    def quick_but_late():
        time.sleep(0.2)
        return [{"external_id": "Q-1"}]

    batches = fetch_all(
        {"linear": medium, "jira": quick_but_late},
        timeout_seconds=1.0,
        timeouts={"jira": 0.1},
    )
    assert batches[0].ok
    assert batches[1].error == "timeout"
