"""Linear trend fitting and anchor selection for historical BSI campaigns."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable

import numpy as np
import pandas as pd

from .errors import InsufficientDataError

HISTORICAL_COLUMNS = ("time", "value", "stdev")


@dataclass(frozen=True, slots=True)
class Observation:
    """Single historical measurement (decimal year, index value, spread)."""

    time: float
    value: float
    stdev: float = 0.0

    def __post_init__(self) -> None:
        if self.stdev < 0:
            raise ValueError(f"Observation stdev must be >= 0 (got {self.stdev}).")


@dataclass(frozen=True, slots=True)
class LinearTrend:
    """Ordinary least-squares fit ``value = intercept + slope * time``."""

    slope: float
    intercept: float
    n_observations: int

    def predict(self, time: float | np.ndarray) -> float | np.ndarray:
        return self.intercept + self.slope * np.asarray(time, dtype=float)


def observations_frame(observations: pd.DataFrame | Iterable[Observation]) -> pd.DataFrame:
    """Return a time-sorted ``time/value/stdev`` frame with non-finite rows removed."""

    if isinstance(observations, pd.DataFrame):
        missing = [col for col in ("time", "value") if col not in observations.columns]
        if missing:
            raise ValueError(f"Historical table is missing columns: {missing}")
        frame = observations.copy()
        if "stdev" not in frame.columns:
            frame["stdev"] = 0.0
    else:
        records = [(obs.time, obs.value, obs.stdev) for obs in observations]
        frame = pd.DataFrame(records, columns=list(HISTORICAL_COLUMNS))

    frame = frame[list(HISTORICAL_COLUMNS)].astype(float)
    frame["stdev"] = frame["stdev"].fillna(0.0)
    frame = frame[np.isfinite(frame["time"]) & np.isfinite(frame["value"])]
    return frame.sort_values("time", kind="mergesort").reset_index(drop=True)


def fit_linear_trend(observations: pd.DataFrame | Iterable[Observation]) -> LinearTrend:
    """Fit the historical trend by ordinary least squares.

    Raises
    ------
    InsufficientDataError
        Fewer than two usable observations, or every observation shares the
        same time (the design matrix is singular).
    """

    frame = observations_frame(observations)
    if len(frame) < 2:
        raise InsufficientDataError(
            f"At least two historical observations are required (got {len(frame)})."
        )
    times = frame["time"].to_numpy()
    values = frame["value"].to_numpy()
    if np.ptp(times) == 0:
        raise InsufficientDataError("All historical observations share the same time.")

    design = np.column_stack([np.ones_like(times), times])
    (intercept, slope), *_ = np.linalg.lstsq(design, values, rcond=None)
    return LinearTrend(slope=float(slope), intercept=float(intercept), n_observations=len(frame))


def select_anchor(observations: pd.DataFrame | Iterable[Observation]) -> Observation:
    """Return the most recent observation; ties on time keep the last row."""

    frame = observations_frame(observations)
    if frame.empty:
        raise InsufficientDataError("No historical observations available for anchoring.")
    row = frame.iloc[-1]
    return Observation(time=float(row["time"]), value=float(row["value"]), stdev=float(row["stdev"]))


__all__ = [
    "Observation",
    "LinearTrend",
    "observations_frame",
    "fit_linear_trend",
    "select_anchor",
]
