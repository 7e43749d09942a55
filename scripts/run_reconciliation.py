"""Reconcile the historical BSI trend with mechanistic scenario forecasts.

Usage
-----
```bash
python scripts/run_reconciliation.py --historical data/bsi_climate_timeseries.csv \
    --forecast data/bsi_forecast_rescaled_2023_2100.csv
```

Configuration lives in ``config.yaml`` under ``forecast_reconciliation`` (scenario
multipliers, correction tables, horizon, smoothing). Input paths may also be set in
the ``inputs`` section. Outputs are written under ``results/`` (or
``results/<run_directory>/``):

- ``reconciled_forecast.csv`` – ``scenario, time, value, lower, upper``
- ``horizon_summary.csv`` – per-scenario values at the reference year
- ``threshold_crossings.csv`` – first time each scenario reaches each threshold
"""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from typing import Mapping

ROOT = Path(__file__).resolve().parents[1]
sys.path.insert(0, str(ROOT / "src"))

from config_paths import get_config_path, resolve_output_directory  # noqa: E402
from forecast_reconciliation import ReconciliationConfig, reconcile_forecasts  # noqa: E402
from forecast_reconciliation.config import CONFIG_SECTION, load_config  # noqa: E402
from forecast_reconciliation.io import (  # noqa: E402
    load_historical,
    load_mechanistic_forecast,
    write_table,
)

LOGGER = logging.getLogger("forecast_reconciliation.run")


def _input_path(cli_value: str | None, config: Mapping[str, object], key: str) -> Path | None:
    inputs = config.get("inputs", {}) if isinstance(config, Mapping) else {}
    raw = cli_value or (inputs.get(key) if isinstance(inputs, Mapping) else None)
    if not raw:
        return None
    path = Path(raw)
    if not path.is_absolute():
        path = (ROOT / path).resolve()
    return path


def run(
    config_path: Path | None = None,
    historical: str | None = None,
    forecast: str | None = None,
    output: str | None = None,
    run_subdir: str | None = None,
) -> Path:
    config = load_config(config_path or get_config_path(ROOT / "config.yaml"))
    settings = ReconciliationConfig.from_config(config.get(CONFIG_SECTION))

    historical_path = _input_path(historical, config, "historical")
    if historical_path is None:
        raise ValueError("A historical observations file is required (--historical or inputs.historical).")
    forecast_path = _input_path(forecast, config, "mechanistic_forecast")

    LOGGER.info("Loading historical observations from %s", historical_path)
    observations = load_historical(historical_path)
    mechanistic = None
    if forecast_path is not None:
        LOGGER.info("Loading mechanistic forecast from %s", forecast_path)
        mechanistic = load_mechanistic_forecast(forecast_path)

    result = reconcile_forecasts(observations, mechanistic, settings)

    output_dir = Path(output) if output else resolve_output_directory(config, run_subdir, repo_root=ROOT)
    table_path = write_table(result.table, output_dir / "reconciled_forecast.csv")
    write_table(result.horizon_summary(), output_dir / "horizon_summary.csv")
    write_table(
        result.threshold_crossings(settings.thresholds),
        output_dir / "threshold_crossings.csv",
    )

    if result.ranking_violation_detected:
        verdict = "corrected" if result.ranking_resolved else "UNRESOLVED"
        LOGGER.info("Mechanistic ranking disagreed with severity order (%s)", verdict)
    LOGGER.info(
        "Final trend multipliers: %s",
        ", ".join(f"{sid} x{value:.2f}" for sid, value in result.multipliers.items()),
    )
    LOGGER.info("Reconciled forecast written to %s", table_path)
    return table_path


def main() -> None:
    parser = argparse.ArgumentParser(description="Reconcile BSI trend and scenario forecasts.")
    parser.add_argument("--config", help="Path to the configuration file.")
    parser.add_argument("--historical", help="CSV with historical observations.")
    parser.add_argument("--forecast", help="CSV with mechanistic scenario forecasts.")
    parser.add_argument("--output", help="Directory for the output tables.")
    parser.add_argument(
        "--run-subdir",
        help="Subdirectory under results/ for this run (overrides results.run_directory).",
    )
    args = parser.parse_args()

    logging.basicConfig(level=logging.INFO, format="[%(levelname)s] %(name)s: %(message)s")
    run(
        config_path=Path(args.config) if args.config else None,
        historical=args.historical,
        forecast=args.forecast,
        output=args.output,
        run_subdir=args.run_subdir,
    )


if __name__ == "__main__":
    main()
