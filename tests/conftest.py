"""Put ``src`` on the import path and provide shared BSI fixtures."""

from __future__ import annotations

import sys
from pathlib import Path

import numpy as np
import pandas as pd
import pytest

ROOT = Path(__file__).resolve().parents[1]
SRC = ROOT / "src"

src_path = str(SRC)
if src_path not in sys.path:
    sys.path.insert(0, src_path)

SCENARIOS = ("SSP1-2.6", "SSP2-4.5", "SSP5-8.5")


@pytest.fixture
def historical() -> pd.DataFrame:
    """Ten annual campaigns 2014.5-2023.5 with a ~+1/yr trend and alternating noise."""

    index = np.arange(10)
    return pd.DataFrame(
        {
            "time": 2014.5 + index,
            "value": 46.0 + index + 0.3 * (-1.0) ** index,
            "stdev": np.full(10, 2.0),
        }
    )


@pytest.fixture
def inverted_mechanistic() -> pd.DataFrame:
    """Mechanistic output whose low-emission scenario rises fastest."""

    years = np.arange(2023, 2051)
    slopes = {"SSP1-2.6": 1.5, "SSP2-4.5": 0.2, "SSP5-8.5": -0.1}
    levels = {"SSP1-2.6": 60.0, "SSP2-4.5": 55.0, "SSP5-8.5": 50.0}
    frames = [
        pd.DataFrame(
            {
                "scenario": scenario,
                "time": years.astype(float),
                "value": levels[scenario] + slopes[scenario] * (years - 2023),
            }
        )
        for scenario in SCENARIOS
    ]
    return pd.concat(frames, ignore_index=True)
