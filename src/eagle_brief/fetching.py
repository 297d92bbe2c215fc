from __future__ import annotations

import logging
import time
from concurrent.futures import Future, ThreadPoolExecutor
from concurrent.futures import TimeoutError as FutureTimeout
from datetime import datetime, timezone
from typing import Any, Callable, Iterable, Mapping

from .normalizers import ProviderBatch

logger = logging.getLogger(__name__)

ProviderFetcher = Callable[[], Iterable[Any]]


def _run_fetcher(fetcher: ProviderFetcher, max_items: int | None) -> tuple[tuple[Any, ...], datetime, float]:
    began = time.monotonic()
    items: list[Any] = []
    for record in fetcher():
        if max_items is not None and len(items) >= max_items:
            break
        items.append(record)
    return tuple(items), datetime.now(tz=timezone.utc), time.monotonic() - began


def fetch_all(
    fetchers: Mapping[str, ProviderFetcher],
    *,
    timeout_seconds: float = 20.0,
    timeouts: Mapping[str, float] | None = None,
    max_items: int | None = 200,
) -> list[ProviderBatch]:
    """Run every provider fetch concurrently, each behind its own deadline.

    Every provider gets its own worker, so all deadlines start together and
    no fetch waits in a queue behind a slow one. A provider that raises or
    runs past its deadline becomes an error batch with no items; the others
    are unaffected. Batches come back in the order of ``fetchers``.
    """
    if not fetchers:
        return []

    per_source = dict(timeouts or {})
    started = time.monotonic()
    executor = ThreadPoolExecutor(max_workers=len(fetchers), thread_name_prefix="provider-fetch")
    futures: dict[str, Future] = {
        source: executor.submit(_run_fetcher, fetcher, max_items) for source, fetcher in fetchers.items()
    }

    batches: list[ProviderBatch] = []
    try:
        for source, future in futures.items():
            limit = float(per_source.get(source, timeout_seconds))
            remaining = max(0.0, started + limit - time.monotonic())
            try:
                items, fetched_at, elapsed = future.result(timeout=remaining)
                if elapsed > limit:
                    raise FutureTimeout()
            except FutureTimeout:
                future.cancel()
                logger.warning("Provider %s timed out after %.1fs", source, limit)
                batches.append(ProviderBatch(source=source, error="timeout"))
                continue
            except Exception as exc:
                logger.warning("Provider %s fetch failed: %s", source, exc)
                batches.append(ProviderBatch(source=source, error=str(exc) or type(exc).__name__))
                continue
            logger.info("Provider %s returned %d items", source, len(items))
            batches.append(ProviderBatch(source=source, items=items, fetched_at=fetched_at))
    finally:
        executor.shutdown(wait=False, cancel_futures=True)
    return batches
