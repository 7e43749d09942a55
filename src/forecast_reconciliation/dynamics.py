"""Turn raw mechanistic scenario forecasts into baseline-relative dynamics.

The mechanistic model's absolute level is not trusted, only its shape. Each
scenario is therefore expressed as a deviation from its own early-horizon
baseline. All lookups are keyed by integer year because the mechanistic
output is annual while forecast times are fractional (quarterly).
"""

from __future__ import annotations

from dataclasses import dataclass

import numpy as np
import pandas as pd

from .errors import BaselineFallbackWarning, emit

FORECAST_COLUMNS = ("scenario", "time", "value")


@dataclass(frozen=True, slots=True)
class BaselineWindow:
    """Inclusive range of integer years used to compute a scenario baseline."""

    start: int
    end: int

    def __post_init__(self) -> None:
        if self.end < self.start:
            raise ValueError(f"Baseline window end {self.end} precedes start {self.start}.")

    @classmethod
    def from_anchor(cls, anchor_time: float, span_years: int = 3) -> "BaselineWindow":
        start = int(np.floor(anchor_time))
        return cls(start=start, end=start + max(int(span_years), 1) - 1)

    def contains(self, years: pd.Series) -> pd.Series:
        return (years >= self.start) & (years <= self.end)


@dataclass(frozen=True, slots=True)
class ScenarioDynamics:
    """Baseline and per-year deviations for one scenario."""

    scenario: str
    baseline: float
    deviations: pd.Series
    used_fallback: bool = False

    def deviation_at(self, times: np.ndarray | float) -> np.ndarray:
        """Deviation for each time via its integer year; missing years give 0."""

        years = np.floor(np.asarray(times, dtype=float)).astype(int)
        looked_up = self.deviations.reindex(years).to_numpy(dtype=float)
        return np.nan_to_num(looked_up, nan=0.0)


def aggregate_yearly(raw: pd.DataFrame) -> pd.DataFrame:
    """Collapse raw points to one mean and spread per scenario and integer year."""

    missing = [col for col in FORECAST_COLUMNS if col not in raw.columns]
    if missing:
        raise ValueError(f"Mechanistic forecast table is missing columns: {missing}")

    frame = raw[list(FORECAST_COLUMNS)].copy()
    frame["scenario"] = frame["scenario"].astype(str)
    frame["time"] = frame["time"].astype(float)
    frame["value"] = frame["value"].astype(float)
    frame = frame.dropna(subset=["time", "value"])
    frame["year"] = np.floor(frame["time"]).astype(int)

    grouped = frame.groupby(["scenario", "year"], sort=True)["value"]
    yearly = grouped.agg(["mean", "std", "count"]).reset_index()
    yearly = yearly.rename(columns={"mean": "value", "std": "spread", "count": "n_points"})
    yearly["spread"] = yearly["spread"].fillna(0.0)
    return yearly


def extract_deviations(
    raw: pd.DataFrame,
    window: BaselineWindow,
    scenario: str | None = None,
) -> ScenarioDynamics:
    """Compute the baseline-relative deviation signal for one scenario.

    ``raw`` holds ``scenario/time/value`` rows; when ``scenario`` is omitted
    the frame must contain a single scenario. An empty baseline window falls
    back to the mean of the whole series and issues
    :class:`BaselineFallbackWarning`.
    """

    yearly = aggregate_yearly(raw)
    if scenario is None:
        labels = yearly["scenario"].unique()
        if len(labels) != 1:
            raise ValueError(
                f"Expected forecasts for exactly one scenario, found {sorted(labels)}."
            )
        scenario = str(labels[0])
    series = yearly[yearly["scenario"] == str(scenario)].set_index("year")["value"]
    if series.empty:
        raise ValueError(f"No mechanistic forecast values found for scenario '{scenario}'.")

    in_window = series[window.contains(series.index.to_series())]
    used_fallback = in_window.empty
    if used_fallback:
        baseline = float(series.mean())
        emit(
            f"Baseline window {window.start}-{window.end} holds no values for scenario "
            f"'{scenario}'; using whole-series mean {baseline:.3f}.",
            BaselineFallbackWarning,
        )
    else:
        baseline = float(in_window.mean())

    deviations = (series - baseline).rename("deviation")
    deviations.index = deviations.index.astype(int)
    return ScenarioDynamics(
        scenario=str(scenario),
        baseline=baseline,
        deviations=deviations,
        used_fallback=used_fallback,
    )


def deviation_table(dynamics: dict[str, ScenarioDynamics]) -> pd.DataFrame:
    """Long ``scenario/year/deviation`` table for export or inspection."""

    frames = [
        pd.DataFrame(
            {
                "scenario": item.scenario,
                "year": item.deviations.index.to_numpy(dtype=int),
                "deviation": item.deviations.to_numpy(dtype=float),
            }
        )
        for item in dynamics.values()
    ]
    if not frames:
        return pd.DataFrame(columns=["scenario", "year", "deviation"])
    return pd.concat(frames, ignore_index=True)


__all__ = [
    "BaselineWindow",
    "ScenarioDynamics",
    "aggregate_yearly",
    "extract_deviations",
    "deviation_table",
]
