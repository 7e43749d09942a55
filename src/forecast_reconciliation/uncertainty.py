"""Forecast uncertainty bands that widen with horizon."""

from __future__ import annotations

import numpy as np
import pandas as pd

from .trend import Observation


def uncertainty_width(
    elapsed: np.ndarray | float,
    base_stdev: float,
    growth_rate: float,
    growth: str = "linear",
) -> np.ndarray:
    """Half-width ``base_stdev + growth_rate * g(elapsed)``.

    ``growth="linear"`` uses ``g(x) = x``; ``growth="sqrt"`` uses ``g(x) = sqrt(x)``,
    which gives materially narrower bands at long horizons.
    """

    if growth_rate < 0:
        raise ValueError("growth_rate must be >= 0.")
    elapsed = np.clip(np.asarray(elapsed, dtype=float), 0.0, None)
    if growth == "linear":
        scaled = elapsed
    elif growth == "sqrt":
        scaled = np.sqrt(elapsed)
    else:
        raise ValueError(f"Unknown uncertainty growth mode '{growth}'.")
    return base_stdev + growth_rate * scaled


def apply_uncertainty(
    frame: pd.DataFrame,
    anchor: Observation,
    growth_rate: float,
    growth: str = "linear",
    *,
    bounds: tuple[float, float] = (0.0, 100.0),
) -> pd.DataFrame:
    """Add ``lower``/``upper`` band columns around ``value`` (clamped to ``bounds``)."""

    result = frame.copy()
    elapsed = result["time"].to_numpy(dtype=float) - anchor.time
    width = uncertainty_width(elapsed, anchor.stdev, growth_rate, growth)
    values = result["value"].to_numpy(dtype=float)
    result["lower"] = np.clip(values - width, *bounds)
    result["upper"] = np.clip(values + width, *bounds)
    return result


__all__ = ["uncertainty_width", "apply_uncertainty"]
