from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from typing import Any, Iterable, Mapping, Sequence, Union

from .classifier import MalformedHook, log_malformed
from .models import (
    CanonicalItem,
    ProviderKind,
    UnifiedSignal,
    item_from_dict,
    parse_date,
    parse_timestamp,
    signal_from_dict,
)

logger = logging.getLogger(__name__)

TITLE_LIMIT = 100
SLACK_MAX_CHANNELS = 10
SLACK_MAX_MESSAGES_PER_CHANNEL = 25

_EPOCH = datetime.min.replace(tzinfo=timezone.utc)


@dataclass(frozen=True)
class ProviderBatch:
    """Everything one provider returned in a cycle, or why it returned nothing."""

    source: str
    items: tuple[Any, ...] = ()
    fetched_at: datetime | None = None
    error: str | None = None
    metadata: Mapping[str, Any] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return self.error is None


Contribution = Union[ProviderBatch, Sequence[Any], BaseException, None]
RawItemsByProvider = Union[Mapping[str, Contribution], Sequence[ProviderBatch]]


def as_batches(raw: RawItemsByProvider) -> list[ProviderBatch]:
    if isinstance(raw, Mapping):
        batches: list[ProviderBatch] = []
        for source, contribution in raw.items():
            if isinstance(contribution, ProviderBatch):
                batches.append(contribution)
            elif contribution is None:
                batches.append(ProviderBatch(source=str(source), error="no data returned"))
            elif isinstance(contribution, BaseException):
                batches.append(ProviderBatch(source=str(source), error=str(contribution) or type(contribution).__name__))
            else:
                batches.append(ProviderBatch(source=str(source), items=tuple(contribution)))
        return batches
    return [batch for batch in raw if isinstance(batch, ProviderBatch)]


def _coerce_item(record: Any, source: str, on_malformed: MalformedHook) -> CanonicalItem:
    if isinstance(record, CanonicalItem):
        item = record
    elif isinstance(record, Mapping):
        item = item_from_dict({**record, "source": record.get("source") or source}, on_malformed)
    else:
        raise TypeError(f"unsupported record type {type(record).__name__}")
    if not item.source and source:
        item = replace(item, source=source)
    return item


def _fetched_rank(fetched_at: datetime | None) -> datetime:
    if fetched_at is None:
        return _EPOCH
    return fetched_at if fetched_at.tzinfo else fetched_at.replace(tzinfo=timezone.utc)


def normalize(
    raw_items_by_provider: RawItemsByProvider,
    *,
    on_malformed: MalformedHook | None = None,
) -> list[CanonicalItem]:
    """Merge every provider's items into one deduplicated, order-stable list.

    Items are keyed by ``(provider, external_id)``. On collision the record
    from the most recently fetched batch wins; untimed or equally timed
    batches resolve to the later one. Output keeps first-appearance order.
    Failed or missing providers contribute nothing. Unparseable dates in
    plain records are dropped and reported through ``on_malformed``.

    The key carries the provider kind, not the tool, so two task trackers
    that hand out the same id collapse into one item. Adapters keep ids
    unique across tools of a kind: Asana gids are global and Slack uses
    ``channel:ts``. A tracker with small per-instance numbers must prefix
    them before they get here.
    """
    report = on_malformed or log_malformed
    order: list[tuple[ProviderKind, str]] = []
    winners: dict[tuple[ProviderKind, str], tuple[datetime, CanonicalItem]] = {}

    for batch in as_batches(raw_items_by_provider):
        if not batch.ok:
            logger.warning("Provider %s contributed no items: %s", batch.source, batch.error)
            continue
        rank = _fetched_rank(batch.fetched_at)
        for record in batch.items:
            try:
                item = _coerce_item(record, batch.source, report)
            except (TypeError, ValueError) as exc:
                logger.warning("Skipping malformed %s record: %s", batch.source, exc)
                continue
            current = winners.get(item.key)
            if current is None:
                order.append(item.key)
                winners[item.key] = (rank, item)
            elif rank >= current[0]:
                winners[item.key] = (rank, item)

    return [winners[key][1] for key in order]


def normalize_signals(signals: Iterable[UnifiedSignal | Mapping[str, Any]]) -> list[UnifiedSignal]:
    """Deduplicate message-path signals by ``(source, source_id)``; the later record wins."""
    order: list[tuple[str, str]] = []
    winners: dict[tuple[str, str], UnifiedSignal] = {}
    for record in signals:
        try:
            signal = record if isinstance(record, UnifiedSignal) else signal_from_dict(record)
        except (TypeError, ValueError) as exc:
            logger.warning("Skipping malformed signal record: %s", exc)
            continue
        if signal.key not in winners:
            order.append(signal.key)
        winners[signal.key] = signal
    return [winners[key] for key in order]


def _slack_title(text: str) -> str:
    clean = re.sub(r"<@[A-Z0-9]+>", "@user", text)
    clean = re.sub(r"<#[A-Z0-9]+\|([^>]+)>", r"#\1", clean)
    clean = re.sub(r"<[^>]+>", "", clean).strip()
    first_sentence = re.split(r"[.!?]", clean)[0]
    if len(first_sentence) > TITLE_LIMIT:
        return f"{first_sentence[:TITLE_LIMIT - 3]}..."
    return first_sentence


def _slack_sender(raw: Mapping[str, Any]) -> str | None:
    profile = raw.get("user_profile") or {}
    name = raw.get("user_name") or profile.get("real_name") or profile.get("name") or raw.get("user")
    return str(name) if name else None


def message_from_slack(raw: Mapping[str, Any], channel_id: str, channel_name: str) -> CanonicalItem | None:
    text = str(raw.get("text") or "")
    ts = str(raw.get("ts") or "")
    if not text.strip() or not ts or raw.get("subtype"):
        return None
    thread = raw.get("thread_messages") or raw.get("replies") or []
    replies = [str(r.get("text") or "") for r in thread if isinstance(r, Mapping)]
    return CanonicalItem(
        provider=ProviderKind.CHAT_MESSAGE,
        external_id=f"{channel_id}:{ts}",
        source="slack",
        title=_slack_title(text),
        description=text,
        owner_name=_slack_sender(raw),
        owner_email=(raw.get("user_profile") or {}).get("email"),
        status="",
        last_activity_at=parse_timestamp(raw.get("latest_reply") or ts),
        channel_or_project=f"#{channel_name}",
        url=f"https://slack.com/archives/{channel_id}/p{ts.replace('.', '')}",
        comments_text=tuple(replies),
        metadata={"thread_ts": raw.get("thread_ts"), "reply_count": raw.get("reply_count")},
    )


def messages_from_slack_channels(
    channels: Iterable[Mapping[str, Any]],
    *,
    max_channels: int = SLACK_MAX_CHANNELS,
    max_messages: int = SLACK_MAX_MESSAGES_PER_CHANNEL,
) -> list[CanonicalItem]:
    output: list[CanonicalItem] = []
    member_channels = [c for c in channels if c.get("id") and c.get("is_member", True)][:max_channels]
    for channel in member_channels:
        channel_id = str(channel["id"])
        channel_name = str(channel.get("name") or "unknown")
        for raw in list(channel.get("messages") or [])[:max_messages]:
            item = message_from_slack(raw, channel_id, channel_name)
            if item is not None:
                output.append(item)
    return output


def task_from_asana(raw: Mapping[str, Any]) -> CanonicalItem:
    gid = str(raw.get("gid") or "").strip()
    if not gid:
        raise ValueError("Asana task requires a gid")
    assignee = raw.get("assignee") or {}
    projects = [p for p in raw.get("projects") or [] if isinstance(p, Mapping)]
    project_gid = str(projects[0].get("gid")) if projects and projects[0].get("gid") else "0"
    stories = [str(s.get("text") or "") for s in raw.get("stories") or [] if isinstance(s, Mapping)]
    status = "completed" if raw.get("completed") else str(raw.get("status") or "")
    return CanonicalItem(
        provider=ProviderKind.TASK,
        external_id=gid,
        source="asana",
        title=str(raw.get("name") or ""),
        description=str(raw.get("notes") or "") or None,
        owner_name=assignee.get("name"),
        owner_email=assignee.get("email"),
        due_date=parse_date(raw.get("due_on") or raw.get("due_at")),
        status=status,
        last_activity_at=parse_timestamp(raw.get("modified_at")),
        channel_or_project=str(projects[0].get("name")) if projects else "No Project",
        url=str(raw.get("permalink_url") or f"https://app.asana.com/0/{project_gid}/{gid}"),
        comments_text=tuple(stories),
        metadata={
            "projects": [str(p.get("name") or "") for p in projects],
            "tags": [str(t.get("name") or "") for t in raw.get("tags") or [] if isinstance(t, Mapping)],
        },
    )


def tasks_from_asana(tasks: Iterable[Mapping[str, Any]]) -> list[CanonicalItem]:
    output: list[CanonicalItem] = []
    for raw in tasks:
        try:
            output.append(task_from_asana(raw))
        except ValueError as exc:
            logger.warning("Skipping Asana task: %s", exc)
    return output
