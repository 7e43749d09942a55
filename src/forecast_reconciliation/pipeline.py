"""End-to-end reconciliation of historical trend and mechanistic scenarios."""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import Iterable, Mapping

import numpy as np
import pandas as pd

from .analysis import summarize_horizon, threshold_crossings
from .blending import blend_scenario, ensure_continuity, forecast_times
from .config import ReconciliationConfig
from .dynamics import BaselineWindow, ScenarioDynamics, extract_deviations
from .plausibility import RankingCheck, correct_ranking
from .smoothing import smooth_forecast
from .trend import LinearTrend, Observation, fit_linear_trend, observations_frame, select_anchor
from .uncertainty import apply_uncertainty

LOGGER = logging.getLogger("forecast_reconciliation")

OUTPUT_COLUMNS = ["scenario", "time", "value", "lower", "upper"]


@dataclass(frozen=True)
class ReconciliationResult:
    """Reconciled forecast table plus the diagnostics needed to audit it."""

    table: pd.DataFrame
    anchor: Observation
    trend: LinearTrend
    baseline_window: BaselineWindow
    dynamics: dict[str, ScenarioDynamics]
    multipliers: dict[str, float]
    ranking_checks: tuple[RankingCheck, ...]
    corrected: bool
    reference_year: int

    @property
    def ranking_violation_detected(self) -> bool:
        return not self.ranking_checks[0].is_consistent

    @property
    def ranking_resolved(self) -> bool:
        return self.ranking_checks[-1].is_consistent

    @property
    def baseline_fallbacks(self) -> list[str]:
        return [sid for sid, item in self.dynamics.items() if item.used_fallback]

    def horizon_summary(self, year: int | None = None) -> pd.DataFrame:
        return summarize_horizon(self.table, self.anchor, self.reference_year if year is None else year)

    def threshold_crossings(self, thresholds: Iterable[float]) -> pd.DataFrame:
        return threshold_crossings(self.table, thresholds)


def reconcile_forecasts(
    historical: pd.DataFrame | Iterable[Observation],
    mechanistic: pd.DataFrame | None,
    config: ReconciliationConfig,
    *,
    times: np.ndarray | None = None,
) -> ReconciliationResult:
    """Produce one anchored, ranked, smoothed projection per configured scenario.

    Parameters
    ----------
    historical:
        ``time/value/stdev`` observations (or :class:`Observation` objects).
    mechanistic:
        ``scenario/time/value`` rows from the mechanistic model. Scenarios absent
        from this table are projected from the historical trend alone.
    config:
        Validated scenario coefficients and pipeline settings.
    times:
        Optional explicit forecast times; defaults to the configured horizon grid.

    Raises
    ------
    InsufficientDataError
        Fewer than two usable historical observations.
    """

    observations = observations_frame(historical)
    trend = fit_linear_trend(observations)
    anchor = select_anchor(observations)
    LOGGER.info(
        "Historical trend %+.3f/yr from %d observations; anchor %.2f (value %.1f, sd %.2f)",
        trend.slope,
        trend.n_observations,
        anchor.time,
        anchor.value,
        anchor.stdev,
    )

    window = config.baseline_window or BaselineWindow.from_anchor(
        anchor.time, config.baseline_span_years
    )
    dynamics = _extract_all_dynamics(mechanistic, config, window)

    if times is None:
        grid = forecast_times(anchor.time, config.horizon_end, config.horizon_step)
    else:
        grid = np.asarray(times, dtype=float)
    bounds = config.value_bounds

    def blend(multipliers: Mapping[str, float]) -> pd.DataFrame:
        def _one(spec) -> pd.DataFrame:
            return blend_scenario(
                spec.scenario_id,
                anchor,
                trend,
                grid,
                multiplier=multipliers[spec.scenario_id],
                dynamics_weight=spec.dynamics_weight,
                dynamics=dynamics.get(spec.scenario_id),
                bounds=bounds,
                tolerance=config.continuity_tolerance,
            )

        if config.max_workers > 1 and len(config.scenarios) > 1:
            with ThreadPoolExecutor(max_workers=config.max_workers) as executor:
                frames = list(executor.map(_one, config.scenarios))
        else:
            frames = [_one(spec) for spec in config.scenarios]
        return pd.concat(frames, ignore_index=True)

    outcome = correct_ranking(
        blend,
        config.base_multipliers(),
        config.correction_tables,
        config.severity_order,
        config.reference_year,
    )

    banded = apply_uncertainty(
        outcome.table,
        anchor,
        config.uncertainty.growth_rate,
        config.uncertainty.growth,
        bounds=bounds,
    )
    smoothing = config.smoothing
    smoothed = smooth_forecast(
        banded,
        smoothing.window,
        adaptive=smoothing.adaptive,
        near_window=smoothing.near_window,
        transition_years=smoothing.transition_years,
        anchor_time=anchor.time,
    )
    anchor_row = {
        "value": anchor.value,
        "lower": float(np.clip(anchor.value - anchor.stdev, *bounds)),
        "upper": float(np.clip(anchor.value + anchor.stdev, *bounds)),
    }
    pinned = [
        ensure_continuity(group, anchor, tolerance=config.continuity_tolerance, columns=anchor_row)
        for _, group in smoothed.groupby("scenario", sort=False)
    ]
    table = _order_output(pd.concat(pinned, ignore_index=True), config.severity_order)

    for row in summarize_horizon(table, anchor, config.reference_year).itertuples(index=False):
        LOGGER.info(
            "%s in %d: %.1f (%+.1f from anchor)", row.scenario, row.year, row.value, row.change
        )

    return ReconciliationResult(
        table=table,
        anchor=anchor,
        trend=trend,
        baseline_window=window,
        dynamics=dynamics,
        multipliers=outcome.multipliers,
        ranking_checks=outcome.checks,
        corrected=outcome.corrected,
        reference_year=config.reference_year,
    )


def _extract_all_dynamics(
    mechanistic: pd.DataFrame | None,
    config: ReconciliationConfig,
    window: BaselineWindow,
) -> dict[str, ScenarioDynamics]:
    if mechanistic is None or mechanistic.empty:
        LOGGER.info("No mechanistic forecast supplied; projecting from the trend only")
        return {}
    available = set(mechanistic["scenario"].astype(str))
    dynamics: dict[str, ScenarioDynamics] = {}
    for spec in config.scenarios:
        if spec.scenario_id not in available:
            LOGGER.warning(
                "Mechanistic forecast lacks scenario '%s'; using the trend component only",
                spec.scenario_id,
            )
            continue
        item = extract_deviations(mechanistic, window, spec.scenario_id)
        dynamics[spec.scenario_id] = item
        LOGGER.info(
            "Scenario '%s' baseline %.2f over %d-%d (%d years of dynamics)",
            spec.scenario_id,
            item.baseline,
            window.start,
            window.end,
            len(item.deviations),
        )
    return dynamics


def _order_output(table: pd.DataFrame, severity_order: list[str]) -> pd.DataFrame:
    rank = {sid: idx for idx, sid in enumerate(severity_order)}
    ordered = table.assign(_rank=table["scenario"].map(rank))
    ordered = ordered.sort_values(["_rank", "time"], kind="mergesort")
    return ordered[OUTPUT_COLUMNS].reset_index(drop=True)


__all__ = ["OUTPUT_COLUMNS", "ReconciliationResult", "reconcile_forecasts"]
