"""Centered moving averages with partial windows at the series edges."""

from __future__ import annotations

from typing import Sequence

import numpy as np
import pandas as pd

SMOOTHED_COLUMNS = ("value", "lower", "upper")


def centered_mean(values: np.ndarray | Sequence[float], window: int) -> np.ndarray:
    """Centered rolling mean; edge points average whatever neighbours exist."""

    if window < 1:
        raise ValueError("Smoothing window must be at least 1.")
    series = pd.Series(np.asarray(values, dtype=float))
    return series.rolling(window=window, center=True, min_periods=1).mean().to_numpy()


def adaptive_windows(
    elapsed: np.ndarray,
    window: int,
    near_window: int,
    transition_years: float,
) -> np.ndarray:
    """Per-point window sizes: narrow near the anchor, wide beyond the transition.

    The i-th point after the anchor is capped at ``2 * i + 1`` so its window
    stays symmetric and never reaches back past the anchor.
    """

    elapsed = np.asarray(elapsed, dtype=float)
    sizes = np.where(elapsed < transition_years, near_window, window).astype(int)
    caps = 2 * np.arange(len(elapsed)) + 1
    return np.maximum(np.minimum(sizes, caps), 1)


def variable_centered_mean(values: np.ndarray | Sequence[float], windows: np.ndarray) -> np.ndarray:
    """Centered mean with an individual window per point (partial at the edges)."""

    data = np.asarray(values, dtype=float)
    windows = np.asarray(windows, dtype=int)
    if len(windows) != len(data):
        raise ValueError("One window size is required per value.")
    smoothed = np.empty_like(data)
    last = len(data) - 1
    for idx, size in enumerate(windows):
        # Even windows lean backwards, matching pandas' center=True.
        before = size // 2
        after = (size - 1) // 2
        lo = max(idx - before, 0)
        hi = min(idx + after, last)
        smoothed[idx] = np.nanmean(data[lo : hi + 1])
    return smoothed


def smooth_forecast(
    frame: pd.DataFrame,
    window: int,
    *,
    adaptive: bool = False,
    near_window: int = 1,
    transition_years: float = 5.0,
    anchor_time: float | None = None,
    columns: Sequence[str] = SMOOTHED_COLUMNS,
) -> pd.DataFrame:
    """Smooth each scenario's columns independently, ordered by time."""

    if window < 1 or near_window < 1:
        raise ValueError("Smoothing windows must be at least 1.")
    present = [col for col in columns if col in frame.columns]
    if window == 1 and (not adaptive or near_window == 1):
        return frame.copy()

    pieces = []
    for _, group in frame.groupby("scenario", sort=False):
        group = group.sort_values("time", kind="mergesort").copy()
        if adaptive:
            start = group["time"].iloc[0] if anchor_time is None else anchor_time
            elapsed = group["time"].to_numpy(dtype=float) - start
            sizes = adaptive_windows(elapsed, window, near_window, transition_years)
            for col in present:
                group[col] = variable_centered_mean(group[col].to_numpy(), sizes)
        else:
            for col in present:
                group[col] = centered_mean(group[col].to_numpy(), window)
        pieces.append(group)
    if not pieces:
        return frame.copy()
    return pd.concat(pieces, ignore_index=True)


__all__ = [
    "SMOOTHED_COLUMNS",
    "adaptive_windows",
    "centered_mean",
    "smooth_forecast",
    "variable_centered_mean",
]
