"""Horizon summaries and threshold crossings for reconciled forecasts."""

from __future__ import annotations

from typing import Iterable

import numpy as np
import pandas as pd

from .trend import Observation


def summarize_horizon(table: pd.DataFrame, anchor: Observation, year: int) -> pd.DataFrame:
    """Mean projected value per scenario in ``year`` and its change from the anchor.

    Sorted from highest to lowest projected value.
    """

    years = np.floor(table["time"].to_numpy(dtype=float)).astype(int)
    subset = table.loc[years == int(year)]
    if subset.empty:
        return pd.DataFrame(columns=["scenario", "year", "value", "lower", "upper", "change"])
    columns = [col for col in ("value", "lower", "upper") if col in subset.columns]
    summary = subset.groupby("scenario", sort=False)[columns].mean().reset_index()
    summary.insert(1, "year", int(year))
    summary["change"] = summary["value"] - anchor.value
    return summary.sort_values("value", ascending=False, kind="mergesort").reset_index(drop=True)


def threshold_crossings(table: pd.DataFrame, thresholds: Iterable[float]) -> pd.DataFrame:
    """First time each scenario's value reaches each threshold (NaN if never)."""

    records = []
    for scenario, group in table.groupby("scenario", sort=False):
        group = group.sort_values("time", kind="mergesort")
        times = group["time"].to_numpy(dtype=float)
        values = group["value"].to_numpy(dtype=float)
        for threshold in thresholds:
            hits = np.flatnonzero(values >= float(threshold))
            first = float(times[hits[0]]) if hits.size else float("nan")
            records.append({"scenario": scenario, "threshold": float(threshold), "first_time": first})
    return pd.DataFrame(records, columns=["scenario", "threshold", "first_time"])


__all__ = ["summarize_horizon", "threshold_crossings"]
