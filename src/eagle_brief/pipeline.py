from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Iterable, Mapping

from .brief import compile_brief
from .classifier import MalformedHook, classify
from .config import EngineConfig
from .coverage import assess_coverage
from .decision import decide
from .fetching import ProviderFetcher, fetch_all
from .matching import KeywordMatcher
from .models import Brief, CanonicalItem, CoverageAssessment, IntentMode, TriagedItem, UnifiedSignal
from .modes import filter_by_mode, resolve_mode
from .normalizers import RawItemsByProvider, as_batches, normalize, normalize_signals
from .scoring import rank_items, score_with_reasons
from .signals import signal_from_item


@dataclass(frozen=True)
class CycleResult:
    mode: IntentMode
    items: tuple[TriagedItem, ...]
    admitted: tuple[TriagedItem, ...]
    brief: Brief
    coverage: CoverageAssessment


@dataclass(frozen=True)
class SignalCycleResult:
    mode: IntentMode
    signals: tuple[UnifiedSignal, ...]
    admitted: tuple[UnifiedSignal, ...]
    brief: Brief
    coverage: CoverageAssessment


def triage_item(
    item: CanonicalItem,
    now: datetime,
    *,
    matcher: KeywordMatcher | None = None,
    on_malformed: MalformedHook | None = None,
) -> TriagedItem:
    flags = classify(item, now, matcher=matcher, on_malformed=on_malformed)
    value, reasons = score_with_reasons(item, now, flags, on_malformed=on_malformed)
    verdict = decide(flags)
    signal = signal_from_item(item, verdict, now, matcher=matcher, on_malformed=on_malformed)
    return TriagedItem(item=item, flags=flags, score=value, verdict=verdict, signal=signal, score_reasons=tuple(reasons))


def triage_items(
    items: Iterable[CanonicalItem],
    now: datetime,
    *,
    matcher: KeywordMatcher | None = None,
    on_malformed: MalformedHook | None = None,
) -> list[TriagedItem]:
    return [triage_item(item, now, matcher=matcher, on_malformed=on_malformed) for item in items]


def run_cycle(
    raw_items_by_provider: RawItemsByProvider,
    mode: IntentMode | str,
    now: datetime,
    connected_providers: Iterable[str] | None = None,
    *,
    config: EngineConfig | None = None,
    on_malformed: MalformedHook | None = None,
) -> CycleResult:
    """Normalize, triage, filter by mode, compile the brief, and assess coverage."""
    cfg = config or EngineConfig.default()
    intent = resolve_mode(mode)
    batches = as_batches(raw_items_by_provider)
    if connected_providers is None:
        connected_providers = [batch.source for batch in batches if batch.ok]

    items = normalize(batches, on_malformed=on_malformed)
    triaged = rank_items(triage_items(items, now, matcher=cfg.classifier.build_matcher(), on_malformed=on_malformed))

    surfaced = [t for t in triaged if t.verdict.surface]
    allowed = {id(s) for s in filter_by_mode([t.signal for t in surfaced], intent, cfg.modes)}
    admitted = [t for t in surfaced if id(t.signal) in allowed]
    unsurfaced = [t for t in triaged if not t.verdict.surface]

    brief = compile_brief(
        admitted + unsurfaced,
        handled_statuses=cfg.brief.handled_statuses,
        max_items_per_bucket=cfg.brief.max_items_per_bucket,
    )
    return CycleResult(
        mode=intent,
        items=tuple(triaged),
        admitted=tuple(admitted),
        brief=brief,
        coverage=assess_coverage(connected_providers, cfg.coverage),
    )


def run_signal_cycle(
    signals: Iterable[UnifiedSignal],
    mode: IntentMode | str,
    connected_providers: Iterable[str],
    *,
    config: EngineConfig | None = None,
) -> SignalCycleResult:
    cfg = config or EngineConfig.default()
    intent = resolve_mode(mode)
    unique = normalize_signals(signals)
    admitted = filter_by_mode(unique, intent, cfg.modes)
    return SignalCycleResult(
        mode=intent,
        signals=tuple(unique),
        admitted=tuple(admitted),
        brief=compile_brief(admitted, max_items_per_bucket=cfg.brief.max_items_per_bucket),
        coverage=assess_coverage(connected_providers, cfg.coverage),
    )


def run_fetch_cycle(
    fetchers: Mapping[str, ProviderFetcher],
    mode: IntentMode | str,
    now: datetime,
    connected_providers: Iterable[str] | None = None,
    *,
    config: EngineConfig | None = None,
    on_malformed: MalformedHook | None = None,
) -> CycleResult:
    cfg = config or EngineConfig.default()
    # Fail on a bad mode before any provider is contacted.
    intent = resolve_mode(mode)
    batches = fetch_all(
        fetchers,
        timeout_seconds=cfg.fetch.timeout_seconds,
        timeouts=cfg.fetch.timeouts,
        max_items=cfg.fetch.max_items_per_provider,
    )
    return run_cycle(batches, intent, now, connected_providers, config=cfg, on_malformed=on_malformed)
