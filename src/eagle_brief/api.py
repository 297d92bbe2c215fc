from __future__ import annotations

import os
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any

from fastapi import APIRouter, FastAPI, HTTPException, Query
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from .config import EngineConfig, load_config
from .coverage import assess_coverage
from .errors import InvalidModeError
from .log import configure_logging
from .models import (
    IntentMode,
    brief_to_dict,
    coverage_to_dict,
    signal_to_dict,
    triaged_to_dict,
)
from .narration import BriefNarrator
from .normalizers import ProviderBatch, messages_from_slack_channels, tasks_from_asana
from .pipeline import run_cycle, run_signal_cycle


@dataclass
class ApiContext:
    config: EngineConfig
    narrator: BriefNarrator | None


class ProviderPayload(BaseModel):
    source: str
    items: list[dict[str, Any]] = Field(default_factory=list)
    format: str = "canonical"
    fetched_at: datetime | None = None
    error: str | None = None


class TriageRequest(BaseModel):
    providers: list[ProviderPayload] = Field(default_factory=list)
    mode: str | None = None
    now: datetime | None = None
    connected: list[str] | None = None
    narrate: bool = False


class SignalFilterRequest(BaseModel):
    signals: list[dict[str, Any]] = Field(default_factory=list)
    mode: str | None = None
    connected: list[str] = Field(default_factory=list)


def _to_batch(payload: ProviderPayload) -> ProviderBatch:
    if payload.format == "asana":
        items: tuple[Any, ...] = tuple(tasks_from_asana(payload.items))
    elif payload.format == "slack":
        items = tuple(messages_from_slack_channels(payload.items))
    elif payload.format == "canonical":
        items = tuple(payload.items)
    else:
        raise HTTPException(status_code=400, detail=f"Unsupported provider format: {payload.format}")
    return ProviderBatch(source=payload.source, items=items, fetched_at=payload.fetched_at, error=payload.error)


def build_router(ctx: ApiContext) -> APIRouter:
    router = APIRouter()

    @router.get("/health")
    def health() -> JSONResponse:
        return JSONResponse({"status": "ok"})

    @router.get("/api/modes")
    def api_modes() -> JSONResponse:
        return JSONResponse(
            {
                "default": ctx.config.default_mode.value,
                "modes": [
                    {
                        "id": mode.value,
                        "label": mode.label,
                        "description": mode.description,
                        "thresholds": {c.value: v for c, v in ctx.config.modes[mode].thresholds.items()},
                    }
                    for mode in IntentMode
                ],
            }
        )

    @router.get("/api/coverage")
    def api_coverage(connected: str = Query("")) -> JSONResponse:
        tools = [t for t in connected.split(",") if t.strip()]
        return JSONResponse(coverage_to_dict(assess_coverage(tools, ctx.config.coverage)))

    @router.post("/api/triage")
    def api_triage(payload: TriageRequest) -> JSONResponse:
        batches = [_to_batch(p) for p in payload.providers]
        now = payload.now or datetime.now(tz=timezone.utc)
        try:
            result = run_cycle(batches, payload.mode or ctx.config.default_mode, now, payload.connected, config=ctx.config)
        except InvalidModeError as exc:
            raise HTTPException(status_code=400, detail=str(exc)) from exc

        summary = result.brief.summary_text
        if payload.narrate and ctx.narrator is not None:
            summary = ctx.narrator.narrate(result.brief, result.mode, result.coverage)
        return JSONResponse(
            {
                "mode": result.mode.value,
                "summary_text": summary,
                "brief": brief_to_dict(result.brief),
                "coverage": coverage_to_dict(result.coverage),
                "items": [triaged_to_dict(t) for t in result.items],
                "stats": {
                    "total_items": len(result.items),
                    "surfaced": len(result.admitted),
                    "handled": len(result.brief.handled),
                },
            }
        )

    @router.post("/api/signals/filter")
    def api_filter_signals(payload: SignalFilterRequest) -> JSONResponse:
        try:
            result = run_signal_cycle(
                payload.signals, payload.mode or ctx.config.default_mode, payload.connected, config=ctx.config
            )
        except InvalidModeError as exc:
            raise HTTPException(status_code=400, detail=str(exc)) from exc
        return JSONResponse(
            {
                "mode": result.mode.value,
                "signals": [signal_to_dict(s) for s in result.admitted],
                "brief": brief_to_dict(result.brief),
                "coverage": coverage_to_dict(result.coverage),
                "stats": {"total_signals": len(result.signals), "surfaced": len(result.admitted)},
            }
        )

    return router


def create_app(*, config_path: str | None = None, narrator: BriefNarrator | None = None) -> FastAPI:
    configure_logging()
    path = config_path or os.getenv("EAGLE_BRIEF_CONFIG", "").strip()
    config = load_config(path) if path else EngineConfig.default()
    if narrator is None and config.narration.enabled:
        narrator = BriefNarrator(config.narration.model, max_output_tokens=config.narration.max_output_tokens)

    context = ApiContext(config=config, narrator=narrator)
    app = FastAPI(title="Eagle Brief", version="0.1.0")
    app.include_router(build_router(context))
    app.state.api_context = context
    return app
