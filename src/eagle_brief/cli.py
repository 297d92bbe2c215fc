from __future__ import annotations

import argparse
import json
import os
import sys
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from .config import EngineConfig, load_config
from .errors import InvalidModeError
from .log import configure_logging
from .models import brief_to_dict, coverage_to_dict, triaged_to_dict
from .narration import BriefNarrator
from .normalizers import ProviderBatch, messages_from_slack_channels, tasks_from_asana
from .pipeline import CycleResult, run_cycle


def _read_json_file(path: str | None) -> Any:
    if not path:
        return None
    return json.loads(Path(path).read_text(encoding="utf-8"))


def _task_records(payload: Any) -> list[Any]:
    if payload is None:
        return []
    if isinstance(payload, dict):
        if isinstance(payload.get("data"), list):
            return tasks_from_asana(payload["data"])
        if isinstance(payload.get("items"), list):
            return payload["items"]
        return []
    if isinstance(payload, list):
        if payload and isinstance(payload[0], dict) and "gid" in payload[0]:
            return tasks_from_asana(payload)
        return payload
    return []


def _message_records(payload: Any) -> list[Any]:
    if payload is None:
        return []
    if isinstance(payload, dict):
        if isinstance(payload.get("channels"), list):
            return messages_from_slack_channels(payload["channels"])
        if isinstance(payload.get("items"), list):
            return payload["items"]
        return []
    if isinstance(payload, list):
        return payload
    return []


def _parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Triage collaboration-tool items into a daily brief.")
    parser.add_argument("--config", default=os.getenv("EAGLE_BRIEF_CONFIG"), help="Path to eagle_brief.yaml")
    parser.add_argument("--tasks-json", help="Task payload: Asana tasks or canonical items")
    parser.add_argument("--tasks-source", default="asana", help="Tool name for --tasks-json")
    parser.add_argument("--messages-json", help="Chat payload: Slack channels or canonical items")
    parser.add_argument("--messages-source", default="slack", help="Tool name for --messages-json")
    parser.add_argument("--connected", help="Comma-separated connected tools (defaults to sources with data)")
    parser.add_argument("--mode", help="Intent mode: calm, on_the_go, work, focus")
    parser.add_argument("--now", help="Optional ISO timestamp for deterministic runs")
    parser.add_argument("--format", choices=["text", "json"], default="text")
    parser.add_argument("--narrate", action="store_true", help="Ask the language model for a friendlier summary")
    parser.add_argument("--output-file", help="Write output to file instead of stdout")
    return parser.parse_args(argv)


def _parse_now(text: str | None) -> datetime:
    if not text:
        return datetime.now(tz=timezone.utc)
    value = text.replace("Z", "+00:00")
    parsed = datetime.fromisoformat(value)
    if parsed.tzinfo is None:
        return parsed.replace(tzinfo=timezone.utc)
    return parsed


def render_text(result: CycleResult, summary: str) -> str:
    lines: list[str] = []
    lines.append(f"# Daily Brief ({result.mode.label})")
    lines.append("")
    lines.append(summary)
    lines.append("")
    lines.append(f"Coverage: {result.coverage.percentage}% ({result.coverage.overall.value}) - {result.coverage.message}")

    sections = (
        ("Needs Attention", result.brief.needs_attention, "- Nothing needs your attention."),
        ("FYI", result.brief.fyi, "- No FYI items."),
        ("Handled", result.brief.handled, "- Nothing was handled without you."),
    )
    for title, entries, empty in sections:
        lines.append("")
        lines.append(f"## {title}")
        if not entries:
            lines.append(empty)
            continue
        for entry in entries:
            reason = entry.verdict.reason or entry.item.status or "no action needed"
            link = f" ({entry.item.url})" if entry.item.url else ""
            lines.append(f"- [{entry.signal.source}] {entry.item.title} (score: {entry.score}) - {reason}{link}")
    return "\n".join(lines)


def main(argv: list[str] | None = None) -> int:
    args = _parse_args(argv)
    configure_logging()
    config = load_config(args.config) if args.config else EngineConfig.default()
    now = _parse_now(args.now)

    batches: list[ProviderBatch] = []
    if args.tasks_json:
        batches.append(ProviderBatch(source=args.tasks_source, items=tuple(_task_records(_read_json_file(args.tasks_json)))))
    if args.messages_json:
        batches.append(
            ProviderBatch(source=args.messages_source, items=tuple(_message_records(_read_json_file(args.messages_json))))
        )
    connected = [t.strip() for t in args.connected.split(",") if t.strip()] if args.connected else None

    try:
        result = run_cycle(batches, args.mode or config.default_mode, now, connected, config=config)
    except InvalidModeError as exc:
        print(str(exc), file=sys.stderr)
        return 2

    summary = result.brief.summary_text
    if args.narrate or config.narration.enabled:
        narrator = BriefNarrator(config.narration.model, max_output_tokens=config.narration.max_output_tokens)
        summary = narrator.narrate(result.brief, result.mode, result.coverage)

    if args.format == "json":
        payload = {
            "mode": result.mode.value,
            "summary_text": summary,
            "brief": brief_to_dict(result.brief),
            "coverage": coverage_to_dict(result.coverage),
            "items": [triaged_to_dict(t) for t in result.items],
        }
        output = json.dumps(payload, indent=2, ensure_ascii=False)
    else:
        output = render_text(result, summary)

    if args.output_file:
        Path(args.output_file).write_text(output, encoding="utf-8")
    else:
        print(output)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
