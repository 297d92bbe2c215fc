from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

from .brief import HANDLED_STATUSES
from .coverage import DEFAULT_CATALOG, ToolCatalog
from .matching import KeywordMatcher, get_matcher
from .models import IntentMode
from .modes import DEFAULT_POLICIES, ModePolicy, policies_from_dict, resolve_mode


@dataclass(frozen=True)
class ClassifierConfig:
    matcher: str = "substring"

    def build_matcher(self) -> KeywordMatcher:
        return get_matcher(self.matcher)


@dataclass(frozen=True)
class BriefConfig:
    handled_statuses: tuple[str, ...] = tuple(sorted(HANDLED_STATUSES))
    max_items_per_bucket: int | None = None


@dataclass(frozen=True)
class FetchConfig:
    timeout_seconds: float = 20.0
    max_items_per_provider: int = 200
    timeouts: dict[str, float] = field(default_factory=dict)


@dataclass(frozen=True)
class NarrationConfig:
    enabled: bool = False
    model: str = "gpt-4o-mini"
    max_output_tokens: int = 300


@dataclass(frozen=True)
class EngineConfig:
    default_mode: IntentMode
    coverage: ToolCatalog
    classifier: ClassifierConfig
    modes: dict[IntentMode, ModePolicy]
    brief: BriefConfig
    fetch: FetchConfig
    narration: NarrationConfig

    @staticmethod
    def default() -> "EngineConfig":
        return EngineConfig(
            default_mode=IntentMode.WORK,
            coverage=DEFAULT_CATALOG,
            classifier=ClassifierConfig(),
            modes=dict(DEFAULT_POLICIES),
            brief=BriefConfig(),
            fetch=FetchConfig(),
            narration=NarrationConfig(),
        )

    @staticmethod
    def from_dict(data: dict[str, Any]) -> "EngineConfig":
        for key in ["coverage", "classifier", "brief"]:
            if key not in data:
                raise ValueError(f"Missing required config key: {key}")

        coverage = data["coverage"] or {}
        classifier = data["classifier"] or {}
        brief = data["brief"] or {}
        fetch = data.get("fetch", {}) or {}
        narration = data.get("narration", {}) or {}

        communication = tuple(str(t).strip().lower() for t in coverage.get("communication", DEFAULT_CATALOG.communication))
        task = tuple(str(t).strip().lower() for t in coverage.get("task", DEFAULT_CATALOG.task))
        if not communication or not task:
            raise ValueError("coverage.communication and coverage.task must each list at least one tool")

        matcher_name = str(classifier.get("matcher", "substring"))
        get_matcher(matcher_name)

        max_items = brief.get("max_items_per_bucket")
        return EngineConfig(
            default_mode=resolve_mode(data.get("default_mode", IntentMode.WORK.value)),
            coverage=ToolCatalog(communication=communication, task=task),
            classifier=ClassifierConfig(matcher=matcher_name),
            modes=policies_from_dict(data.get("modes")),
            brief=BriefConfig(
                handled_statuses=tuple(
                    str(s).strip().lower() for s in brief.get("handled_statuses", sorted(HANDLED_STATUSES))
                ),
                max_items_per_bucket=int(max_items) if max_items is not None else None,
            ),
            fetch=FetchConfig(
                timeout_seconds=float(fetch.get("timeout_seconds", 20.0)),
                max_items_per_provider=int(fetch.get("max_items_per_provider", 200)),
                timeouts={str(k): float(v) for k, v in (fetch.get("timeouts") or {}).items()},
            ),
            narration=NarrationConfig(
                enabled=bool(narration.get("enabled", False)),
                model=str(narration.get("model", "gpt-4o-mini")),
                max_output_tokens=int(narration.get("max_output_tokens", 300)),
            ),
        )


def load_config(path: str | Path) -> EngineConfig:
    config_path = Path(path)
    raw = yaml.safe_load(config_path.read_text(encoding="utf-8"))
    if not isinstance(raw, dict):
        raise ValueError("Configuration root must be a mapping.")
    return EngineConfig.from_dict(raw)
