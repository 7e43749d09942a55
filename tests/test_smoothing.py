import numpy as np
import pandas as pd
import pytest

from forecast_reconciliation import centered_mean, smooth_forecast
from forecast_reconciliation.smoothing import adaptive_windows, variable_centered_mean


def _frame() -> pd.DataFrame:
    rng = np.random.default_rng(7)
    times = 2023.5 + 0.25 * np.arange(12)
    values = 50.0 + rng.normal(0.0, 2.0, size=12)
    return pd.DataFrame(
        {
            "scenario": "SSP2-4.5",
            "time": times,
            "value": values,
            "lower": values - 3.0,
            "upper": values + 3.0,
        }
    )


def test_centered_mean_uses_partial_windows_at_edges():
    smoothed = centered_mean([1.0, 2.0, 3.0, 4.0, 5.0], 3)
    np.testing.assert_allclose(smoothed, [1.5, 2.0, 3.0, 4.0, 4.5])


def test_window_of_one_returns_series_unchanged():
    frame = _frame()
    pd.testing.assert_frame_equal(smooth_forecast(frame, 1, adaptive=False), frame)
    pd.testing.assert_frame_equal(smooth_forecast(frame, 1, adaptive=True), frame)
    np.testing.assert_array_equal(centered_mean(frame["value"], 1), frame["value"].to_numpy())


def test_smoothing_keeps_every_row():
    frame = _frame()
    smoothed = smooth_forecast(frame, 8, adaptive=False)
    assert len(smoothed) == len(frame)
    assert smoothed[["value", "lower", "upper"]].notna().all().all()


def test_adaptive_windows_narrow_near_anchor():
    sizes = adaptive_windows(np.arange(6.0), window=5, near_window=1, transition_years=2.0)
    np.testing.assert_array_equal(sizes, [1, 1, 5, 5, 5, 5])
    capped = adaptive_windows(np.arange(4.0), window=9, near_window=9, transition_years=0.0)
    np.testing.assert_array_equal(capped, [1, 3, 5, 7])


def test_variable_centered_mean_matches_manual_average():
    values = np.arange(5.0)
    smoothed = variable_centered_mean(values, np.array([1, 1, 5, 5, 5]))
    np.testing.assert_allclose(smoothed, [0.0, 1.0, 2.0, 2.5, 3.0])


def test_adaptive_smoothing_preserves_anchor_point():
    frame = _frame()
    smoothed = smooth_forecast(frame, 5, adaptive=True, near_window=3, transition_years=1.0)
    assert smoothed["value"].iloc[0] == frame["value"].iloc[0]
    fixed = smooth_forecast(frame, 5, adaptive=False)
    assert fixed["value"].iloc[0] != pytest.approx(frame["value"].iloc[0])


def test_smoothing_is_applied_per_scenario():
    first = _frame()
    second = _frame().assign(scenario="SSP5-8.5", value=lambda f: f["value"] + 100.0)
    smoothed = smooth_forecast(pd.concat([first, second], ignore_index=True), 3, adaptive=False)
    low = smoothed[smoothed["scenario"] == "SSP2-4.5"]["value"]
    assert low.max() < 100.0


def test_invalid_window_rejected():
    with pytest.raises(ValueError):
        smooth_forecast(_frame(), 0)
