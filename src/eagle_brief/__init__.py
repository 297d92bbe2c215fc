"""Eagle Brief signal aggregation and prioritization engine."""

from .brief import compile_brief
from .classifier import classify
from .config import EngineConfig, load_config
from .coverage import assess_coverage
from .decision import decide
from .errors import InvalidModeError
from .models import (
    CanonicalItem,
    CoverageAssessment,
    IntentMode,
    ProviderKind,
    SignalCategory,
    SignalFlags,
    SurfaceVerdict,
    UnifiedSignal,
)
from .modes import filter_by_mode
from .normalizers import ProviderBatch, normalize
from .pipeline import run_cycle, run_signal_cycle
from .scoring import score

__all__ = [
    "CanonicalItem",
    "CoverageAssessment",
    "EngineConfig",
    "IntentMode",
    "InvalidModeError",
    "ProviderBatch",
    "ProviderKind",
    "SignalCategory",
    "SignalFlags",
    "SurfaceVerdict",
    "UnifiedSignal",
    "assess_coverage",
    "classify",
    "compile_brief",
    "decide",
    "filter_by_mode",
    "load_config",
    "normalize",
    "run_cycle",
    "run_signal_cycle",
    "score",
]
