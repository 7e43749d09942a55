"""Validated reconciliation settings loaded from ``config.yaml``."""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Mapping, Sequence

import yaml

from config_paths import get_config_path

from .dynamics import BaselineWindow
from .errors import ConfigurationError

CONFIG_SECTION = "forecast_reconciliation"
GROWTH_MODES = ("linear", "sqrt")

# Trend multipliers and correction table used for the published BSI figure.
DEFAULT_SCENARIOS: tuple[Mapping[str, object], ...] = (
    {"id": "SSP1-2.6", "severity_rank": 1, "trend_multiplier": 0.70, "dynamics_weight": 0.5},
    {"id": "SSP2-4.5", "severity_rank": 2, "trend_multiplier": 1.00, "dynamics_weight": 0.5},
    {"id": "SSP5-8.5", "severity_rank": 3, "trend_multiplier": 1.40, "dynamics_weight": 0.5},
)
DEFAULT_CORRECTION_TABLES: tuple[Mapping[str, float], ...] = (
    {"SSP1-2.6": 0.55, "SSP2-4.5": 1.00, "SSP5-8.5": 1.20},
)


@dataclass(frozen=True, slots=True)
class ScenarioSpec:
    """Domain coefficients for one emission scenario."""

    scenario_id: str
    severity_rank: int
    trend_multiplier: float
    dynamics_weight: float = 0.5


@dataclass(frozen=True, slots=True)
class UncertaintySettings:
    growth_rate: float = 0.4
    growth: str = "linear"


@dataclass(frozen=True, slots=True)
class SmoothingSettings:
    window: int = 3
    adaptive: bool = True
    near_window: int = 1
    transition_years: float = 5.0


@dataclass(frozen=True)
class ReconciliationConfig:
    """All tunable inputs of the reconciliation pipeline.

    Construction validates the severity ordering: ranks must be unique, and both
    the base trend multipliers and every correction table must be non-decreasing
    along it.
    """

    scenarios: tuple[ScenarioSpec, ...]
    correction_tables: tuple[Mapping[str, float], ...] = ()
    baseline_window: BaselineWindow | None = None
    baseline_span_years: int = 3
    horizon_end: float = 2050.75
    horizon_step: float = 0.25
    reference_year: int = 2050
    uncertainty: UncertaintySettings = field(default_factory=UncertaintySettings)
    smoothing: SmoothingSettings = field(default_factory=SmoothingSettings)
    continuity_tolerance: float = 1e-9
    value_bounds: tuple[float, float] = (0.0, 100.0)
    thresholds: tuple[float, ...] = (70.0, 90.0)
    max_workers: int = 1

    def __post_init__(self) -> None:
        scenarios = tuple(sorted(self.scenarios, key=lambda spec: spec.severity_rank))
        object.__setattr__(self, "scenarios", scenarios)
        object.__setattr__(
            self,
            "correction_tables",
            tuple(dict(table) for table in self.correction_tables),
        )
        self._validate()

    @property
    def severity_order(self) -> list[str]:
        """Scenario ids from least to most severe."""

        return [spec.scenario_id for spec in self.scenarios]

    def scenario(self, scenario_id: str) -> ScenarioSpec:
        for spec in self.scenarios:
            if spec.scenario_id == scenario_id:
                return spec
        raise KeyError(f"Unknown scenario '{scenario_id}'.")

    def base_multipliers(self) -> dict[str, float]:
        return {spec.scenario_id: spec.trend_multiplier for spec in self.scenarios}

    def _validate(self) -> None:
        if not self.scenarios:
            raise ConfigurationError("At least one scenario must be configured.")
        ids = [spec.scenario_id for spec in self.scenarios]
        if len(set(ids)) != len(ids):
            raise ConfigurationError(f"Scenario ids must be unique: {ids}")
        ranks = [spec.severity_rank for spec in self.scenarios]
        if len(set(ranks)) != len(ranks):
            raise ConfigurationError(f"Severity ranks must define a total order: {ranks}")
        for spec in self.scenarios:
            _require_non_negative(spec.trend_multiplier, f"{spec.scenario_id}.trend_multiplier")
            _require_non_negative(spec.dynamics_weight, f"{spec.scenario_id}.dynamics_weight")
        base = [spec.trend_multiplier for spec in self.scenarios]
        if any(later < earlier for earlier, later in zip(base, base[1:])):
            raise ConfigurationError(
                f"Trend multipliers {base} decrease along the severity order {ids}."
            )

        for index, table in enumerate(self.correction_tables):
            missing = [sid for sid in ids if sid not in table]
            if missing:
                raise ConfigurationError(
                    f"Correction table {index} lacks multipliers for scenarios {missing}."
                )
            ordered = [float(table[sid]) for sid in ids]
            for sid, value in zip(ids, ordered):
                _require_non_negative(value, f"correction_tables[{index}].{sid}")
            if any(later < earlier for earlier, later in zip(ordered, ordered[1:])):
                raise ConfigurationError(
                    f"Correction table {index} multipliers {ordered} decrease along the "
                    f"severity order {ids}."
                )

        if self.baseline_span_years < 1:
            raise ConfigurationError("baseline span must cover at least one year.")
        if not self.horizon_step > 0:
            raise ConfigurationError("horizon.step must be positive.")
        _require_non_negative(self.uncertainty.growth_rate, "uncertainty.growth_rate")
        if self.uncertainty.growth not in GROWTH_MODES:
            raise ConfigurationError(
                f"uncertainty.growth must be one of {GROWTH_MODES} (got '{self.uncertainty.growth}')."
            )
        if self.smoothing.window < 1 or self.smoothing.near_window < 1:
            raise ConfigurationError("Smoothing windows must be at least 1.")
        if self.smoothing.transition_years < 0:
            raise ConfigurationError("smoothing.transition_years must be >= 0.")
        low, high = self.value_bounds
        if not low < high:
            raise ConfigurationError(f"value_bounds must be increasing (got {self.value_bounds}).")
        _require_non_negative(self.continuity_tolerance, "continuity_tolerance")
        if self.max_workers < 1:
            raise ConfigurationError("max_workers must be at least 1.")

    @classmethod
    def from_config(cls, cfg: Mapping[str, Any] | None) -> "ReconciliationConfig":
        """Build settings from the ``forecast_reconciliation`` mapping."""

        cfg = cfg or {}
        if not isinstance(cfg, Mapping):
            raise ConfigurationError("'forecast_reconciliation' must be a mapping.")

        scenario_entries = cfg.get("scenarios")
        if scenario_entries is None:
            scenario_entries = DEFAULT_SCENARIOS
        scenarios = tuple(_parse_scenario(entry) for entry in scenario_entries)

        tables_cfg = cfg.get("correction_tables")
        if tables_cfg is None:
            tables_cfg = DEFAULT_CORRECTION_TABLES if cfg.get("scenarios") is None else ()
        if isinstance(tables_cfg, Mapping):
            tables_cfg = [tables_cfg]
        tables = tuple(
            {str(key): float(value) for key, value in table.items()} for table in tables_cfg
        )

        window = None
        window_cfg = cfg.get("baseline_window") or {}
        if "start" in window_cfg:
            start = int(window_cfg["start"])
            end = int(window_cfg.get("end", start))
            if end < start:
                raise ConfigurationError(f"baseline_window end {end} precedes start {start}.")
            window = BaselineWindow(start=start, end=end)
        span = int(window_cfg.get("span_years", 3))

        horizon_cfg = cfg.get("horizon", {}) or {}
        uncertainty_cfg = cfg.get("uncertainty", {}) or {}
        smoothing_cfg = cfg.get("smoothing", {}) or {}
        bounds = cfg.get("value_bounds", (0.0, 100.0))
        if not isinstance(bounds, Sequence) or len(bounds) != 2:
            raise ConfigurationError("value_bounds must be a [low, high] pair.")

        return cls(
            scenarios=scenarios,
            correction_tables=tables,
            baseline_window=window,
            baseline_span_years=span,
            horizon_end=float(horizon_cfg.get("end", 2050.75)),
            horizon_step=float(horizon_cfg.get("step", 0.25)),
            reference_year=int(cfg.get("reference_year", 2050)),
            uncertainty=UncertaintySettings(
                growth_rate=float(uncertainty_cfg.get("growth_rate", 0.4)),
                growth=str(uncertainty_cfg.get("growth", "linear")).strip().lower(),
            ),
            smoothing=SmoothingSettings(
                window=int(smoothing_cfg.get("window", 3)),
                adaptive=bool(smoothing_cfg.get("adaptive", True)),
                near_window=int(smoothing_cfg.get("near_window", 1)),
                transition_years=float(smoothing_cfg.get("transition_years", 5.0)),
            ),
            continuity_tolerance=float(cfg.get("continuity_tolerance", 1e-9)),
            value_bounds=(float(bounds[0]), float(bounds[1])),
            thresholds=tuple(float(value) for value in cfg.get("thresholds", (70.0, 90.0))),
            max_workers=int(cfg.get("max_workers", 1)),
        )


def _parse_scenario(entry: Mapping[str, Any]) -> ScenarioSpec:
    if not isinstance(entry, Mapping):
        raise ConfigurationError(f"Scenario entries must be mappings (got {entry!r}).")
    try:
        scenario_id = entry["id"]
        rank = entry["severity_rank"]
    except KeyError as exc:
        raise ConfigurationError(f"Scenario entry {dict(entry)} lacks key {exc}.") from exc
    return ScenarioSpec(
        scenario_id=str(scenario_id),
        severity_rank=int(rank),
        trend_multiplier=float(entry.get("trend_multiplier", 1.0)),
        dynamics_weight=float(entry.get("dynamics_weight", 0.5)),
    )


def _require_non_negative(value: float, label: str) -> None:
    if not math.isfinite(value) or value < 0:
        raise ConfigurationError(f"{label} must be a finite value >= 0 (got {value}).")


def load_config(config_path: str | Path | None = None) -> dict[str, Any]:
    """Load ``config.yaml`` (honours ``BSI_FORECAST_CONFIG_PATH``)."""

    path = Path(config_path) if config_path is not None else get_config_path()
    path = path.expanduser().resolve()
    if not path.is_file():
        raise FileNotFoundError(f"Config file not found: {path}")
    with path.open("r", encoding="utf-8") as handle:
        return yaml.safe_load(handle) or {}


def load_reconciliation_config(config_path: str | Path | None = None) -> ReconciliationConfig:
    """Read the YAML file and build :class:`ReconciliationConfig` from its section."""

    config = load_config(config_path)
    return ReconciliationConfig.from_config(config.get(CONFIG_SECTION))


__all__ = [
    "CONFIG_SECTION",
    "DEFAULT_CORRECTION_TABLES",
    "DEFAULT_SCENARIOS",
    "ReconciliationConfig",
    "ScenarioSpec",
    "SmoothingSettings",
    "UncertaintySettings",
    "load_config",
    "load_reconciliation_config",
]
