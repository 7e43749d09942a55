"""Anchor scenario trajectories on the last observation.

Each trajectory combines the scaled historical trend with the scaled
mechanistic deviation signal, starting from the anchor value::

    value(t) = anchor + slope * m * (t - t0) + deviation(floor(t)) * m * w

where ``m`` is the scenario trend multiplier and ``w`` its dynamics weight.
"""

from __future__ import annotations

import numpy as np
import pandas as pd

from .dynamics import ScenarioDynamics
from .errors import ContinuityDriftWarning, emit
from .trend import LinearTrend, Observation


def forecast_times(anchor_time: float, end: float, step: float) -> np.ndarray:
    """Regular grid from the anchor time up to and including ``end``."""

    if step <= 0:
        raise ValueError("Forecast step must be positive.")
    if end < anchor_time:
        return np.array([anchor_time], dtype=float)
    count = int(np.floor((end - anchor_time) / step + 1e-9)) + 1
    return anchor_time + step * np.arange(count, dtype=float)


def blend_scenario(
    scenario: str,
    anchor: Observation,
    trend: LinearTrend,
    times: np.ndarray,
    multiplier: float,
    dynamics_weight: float,
    dynamics: ScenarioDynamics | None = None,
    *,
    bounds: tuple[float, float] = (0.0, 100.0),
    tolerance: float = 1e-9,
) -> pd.DataFrame:
    """Return the clamped ``scenario/time/value`` trajectory for one scenario.

    Times before the anchor are discarded. When the anchor time is missing from
    ``times`` or its blended value drifted from the anchor value, an explicit
    anchor row is inserted and :class:`ContinuityDriftWarning` is issued.
    """

    times = np.unique(np.asarray(times, dtype=float))
    times = times[times >= anchor.time]
    elapsed = times - anchor.time

    trend_component = trend.slope * multiplier * elapsed
    if dynamics is not None:
        dynamics_component = dynamics.deviation_at(times) * multiplier * dynamics_weight
    else:
        dynamics_component = np.zeros_like(times)
    values = np.clip(anchor.value + trend_component + dynamics_component, *bounds)

    frame = pd.DataFrame({"scenario": scenario, "time": times, "value": values})
    return ensure_continuity(frame, anchor, tolerance=tolerance)


def ensure_continuity(
    frame: pd.DataFrame,
    anchor: Observation,
    *,
    tolerance: float = 1e-9,
    columns: dict[str, float] | None = None,
) -> pd.DataFrame:
    """Pin the trajectory to the anchor at ``anchor.time``.

    ``columns`` supplies the values written to the anchor row (defaults to
    ``{"value": anchor.value}``); other columns of an inserted row are copied
    from the nearest existing row.
    """

    pinned = columns or {"value": anchor.value}
    at_anchor = np.isclose(frame["time"].to_numpy(dtype=float), anchor.time, rtol=0.0, atol=1e-12)
    scenario = str(frame["scenario"].iloc[0]) if not frame.empty else ""

    if at_anchor.any():
        current = frame.loc[at_anchor, list(pinned)].iloc[0]
        drift = max(abs(float(current[col]) - target) for col, target in pinned.items())
        if drift <= tolerance:
            return frame
        emit(
            f"Scenario '{scenario}' starts {drift:.3g} away from the anchor at "
            f"{anchor.time:.2f}; replacing the first point with the anchor value.",
            ContinuityDriftWarning,
        )
        repaired = frame.copy()
        index = repaired.index[at_anchor][0]
        for col, target in pinned.items():
            repaired.loc[index, col] = target
        return repaired

    emit(
        f"Scenario '{scenario}' has no point at the anchor time {anchor.time:.2f}; "
        "inserting an explicit anchor point.",
        ContinuityDriftWarning,
    )
    row = frame.iloc[[0]].copy() if not frame.empty else pd.DataFrame({"scenario": [scenario]})
    row["time"] = anchor.time
    for col, target in pinned.items():
        row[col] = target
    combined = pd.concat([row, frame], ignore_index=True)
    return combined.sort_values("time", kind="mergesort").reset_index(drop=True)


__all__ = ["blend_scenario", "ensure_continuity", "forecast_times"]
