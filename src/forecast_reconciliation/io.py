"""CSV readers and writers around the reconciliation core."""

from __future__ import annotations

from pathlib import Path
from typing import Mapping, Sequence

import pandas as pd

HISTORICAL_ALIASES: Mapping[str, Sequence[str]] = {
    "value": ("value", "bsi_mean", "bsi"),
    "stdev": ("stdev", "bsi_sd", "sd"),
}
FORECAST_ALIASES: Mapping[str, Sequence[str]] = {
    "scenario": ("scenario", "scenario_id"),
    "value": ("value", "bsi_forecast", "raw_value"),
}


def _read_csv(path: str | Path, label: str) -> pd.DataFrame:
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"{label} file not found: {path}")
    return pd.read_csv(path, comment="#")


def _pick_column(df: pd.DataFrame, aliases: Sequence[str], target: str, path: str | Path) -> str:
    for candidate in aliases:
        if candidate in df.columns:
            return candidate
    raise ValueError(f"File '{path}' must contain a '{target}' column (any of {list(aliases)}).")


def _decimal_time(df: pd.DataFrame, path: str | Path) -> pd.Series:
    if "time" in df.columns:
        return df["time"].astype(float)
    if "year_decimal" in df.columns:
        return df["year_decimal"].astype(float)
    if "year" not in df.columns:
        raise ValueError(f"File '{path}' must contain a 'time' or 'year' column.")
    time = df["year"].astype(float)
    if "month" in df.columns:
        time = time + (df["month"].astype(float) - 1.0) / 12.0
    return time


def load_historical(path: str | Path) -> pd.DataFrame:
    """Read campaign observations as a sorted ``time/value/stdev`` frame."""

    df = _read_csv(path, "Historical observations")
    value_col = _pick_column(df, HISTORICAL_ALIASES["value"], "value", path)
    frame = pd.DataFrame({"time": _decimal_time(df, path), "value": df[value_col].astype(float)})
    stdev_col = next((c for c in HISTORICAL_ALIASES["stdev"] if c in df.columns), None)
    frame["stdev"] = df[stdev_col].astype(float).fillna(0.0) if stdev_col else 0.0
    return frame.sort_values("time", kind="mergesort").reset_index(drop=True)


def load_mechanistic_forecast(path: str | Path) -> pd.DataFrame:
    """Read mechanistic scenario output as ``scenario/time/value`` rows."""

    df = _read_csv(path, "Mechanistic forecast")
    scenario_col = _pick_column(df, FORECAST_ALIASES["scenario"], "scenario", path)
    value_col = _pick_column(df, FORECAST_ALIASES["value"], "value", path)
    return pd.DataFrame(
        {
            "scenario": df[scenario_col].astype(str),
            "time": _decimal_time(df, path),
            "value": df[value_col].astype(float),
        }
    )


def write_table(frame: pd.DataFrame, path: str | Path, *, float_format: str = "%.4f") -> Path:
    """Write ``frame`` as CSV, creating parent directories."""

    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    frame.to_csv(path, index=False, float_format=float_format)
    return path


__all__ = ["load_historical", "load_mechanistic_forecast", "write_table"]
