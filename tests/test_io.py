from pathlib import Path

import numpy as np
import pandas as pd
import pytest

from forecast_reconciliation.io import load_historical, load_mechanistic_forecast, write_table


def test_historical_year_and_month_become_decimal_time(tmp_path: Path):
    path = tmp_path / "history.csv"
    pd.DataFrame(
        {"year": [2023, 2022], "month": [7, 1], "bsi_mean": [55.0, 52.0], "bsi_sd": [3.0, None]}
    ).to_csv(path, index=False)

    frame = load_historical(path)
    assert list(frame.columns) == ["time", "value", "stdev"]
    np.testing.assert_allclose(frame["time"], [2022.0, 2023.5])
    np.testing.assert_allclose(frame["stdev"], [0.0, 3.0])


def test_historical_without_stdev_defaults_to_zero(tmp_path: Path):
    path = tmp_path / "history.csv"
    pd.DataFrame({"time": [2020.5, 2021.5], "value": [40.0, 41.0]}).to_csv(path, index=False)
    assert (load_historical(path)["stdev"] == 0.0).all()


def test_mechanistic_aliases(tmp_path: Path):
    path = tmp_path / "forecast.csv"
    pd.DataFrame(
        {"scenario_id": ["SSP2-4.5"], "year_decimal": [2030.25], "bsi_forecast": [61.0]}
    ).to_csv(path, index=False)
    frame = load_mechanistic_forecast(path)
    assert frame.to_dict("records") == [{"scenario": "SSP2-4.5", "time": 2030.25, "value": 61.0}]


def test_missing_file_and_columns(tmp_path: Path):
    with pytest.raises(FileNotFoundError):
        load_historical(tmp_path / "absent.csv")

    path = tmp_path / "broken.csv"
    pd.DataFrame({"time": [2030.0], "bsi": [50.0]}).to_csv(path, index=False)
    with pytest.raises(ValueError):
        load_mechanistic_forecast(path)


def test_write_table_creates_directories(tmp_path: Path):
    target = tmp_path / "nested" / "out.csv"
    write_table(pd.DataFrame({"value": [1.23456]}), target)
    assert target.read_text(encoding="utf-8").splitlines() == ["value", "1.2346"]
