"""Reconcile a historical BSI trend with mechanistic scenario forecasts."""

from .analysis import summarize_horizon, threshold_crossings
from .blending import blend_scenario, ensure_continuity, forecast_times
from .config import (
    ReconciliationConfig,
    ScenarioSpec,
    SmoothingSettings,
    UncertaintySettings,
    load_config,
    load_reconciliation_config,
)
from .dynamics import BaselineWindow, ScenarioDynamics, aggregate_yearly, extract_deviations
from .errors import (
    BaselineFallbackWarning,
    ConfigurationError,
    ContinuityDriftWarning,
    InsufficientDataError,
    RankingViolationDetected,
    ReconciliationWarning,
)
from .pipeline import OUTPUT_COLUMNS, ReconciliationResult, reconcile_forecasts
from .plausibility import (
    RankingCheck,
    check_ranking,
    correct_ranking,
    ranking_violation_times,
    reference_values,
)
from .smoothing import centered_mean, smooth_forecast
from .trend import LinearTrend, Observation, fit_linear_trend, select_anchor
from .uncertainty import apply_uncertainty, uncertainty_width

__all__ = [
    "OUTPUT_COLUMNS",
    "BaselineFallbackWarning",
    "BaselineWindow",
    "ConfigurationError",
    "ContinuityDriftWarning",
    "InsufficientDataError",
    "LinearTrend",
    "Observation",
    "RankingCheck",
    "RankingViolationDetected",
    "ReconciliationConfig",
    "ReconciliationResult",
    "ReconciliationWarning",
    "ScenarioDynamics",
    "ScenarioSpec",
    "SmoothingSettings",
    "UncertaintySettings",
    "aggregate_yearly",
    "apply_uncertainty",
    "blend_scenario",
    "centered_mean",
    "check_ranking",
    "correct_ranking",
    "ensure_continuity",
    "extract_deviations",
    "fit_linear_trend",
    "forecast_times",
    "load_config",
    "load_reconciliation_config",
    "ranking_violation_times",
    "reconcile_forecasts",
    "reference_values",
    "select_anchor",
    "smooth_forecast",
    "summarize_horizon",
    "threshold_crossings",
    "uncertainty_width",
]
