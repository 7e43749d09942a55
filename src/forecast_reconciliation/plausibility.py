"""Severity-ranking checks and the bounded multiplier correction loop."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field, replace
from typing import Callable, Mapping, Sequence

import numpy as np
import pandas as pd

from .errors import RankingViolationDetected, emit

LOGGER = logging.getLogger("forecast_reconciliation.plausibility")

BlendCallable = Callable[[Mapping[str, float]], pd.DataFrame]


@dataclass(frozen=True)
class RankingCheck:
    """Outcome of comparing a blended table with the severity order.

    ``violations`` lists the pairs inverted in the reference year;
    ``violating_times`` lists every forecast time at which any pair is inverted.
    """

    reference_year: int
    values: dict[str, float]
    severity_order: tuple[str, ...]
    violations: tuple[tuple[str, str], ...]
    multipliers: dict[str, float] = field(default_factory=dict)
    violating_times: tuple[float, ...] = ()

    @property
    def is_consistent(self) -> bool:
        return not self.violations and not self.violating_times

    @property
    def realized_order(self) -> list[str]:
        """Scenarios sorted by reference value, ascending."""

        return sorted(self.values, key=lambda sid: (self.values[sid], self.severity_order.index(sid)))


@dataclass(frozen=True)
class CorrectionOutcome:
    table: pd.DataFrame
    multipliers: dict[str, float]
    checks: tuple[RankingCheck, ...]
    corrected: bool

    @property
    def violation_detected(self) -> bool:
        return not self.checks[0].is_consistent

    @property
    def resolved(self) -> bool:
        return self.checks[-1].is_consistent


def reference_values(table: pd.DataFrame, reference_year: int) -> dict[str, float]:
    """Mean ``value`` per scenario over rows whose integer year is ``reference_year``.

    Scenarios without rows in that year fall back to their latest value.
    """

    result: dict[str, float] = {}
    for scenario, group in table.groupby("scenario", sort=False):
        years = np.floor(group["time"].to_numpy(dtype=float)).astype(int)
        in_year = group.loc[years == int(reference_year), "value"]
        if in_year.empty:
            in_year = group.sort_values("time")["value"].iloc[[-1]]
        result[str(scenario)] = float(in_year.mean())
    return result


def check_ranking(
    values: Mapping[str, float],
    severity_order: Sequence[str],
    *,
    reference_year: int = 0,
    multipliers: Mapping[str, float] | None = None,
    tolerance: float = 1e-9,
) -> RankingCheck:
    """Flag every pair where a less severe scenario exceeds a more severe one."""

    order = tuple(sid for sid in severity_order if sid in values)
    violations = []
    for i, lower in enumerate(order):
        for higher in order[i + 1 :]:
            if values[lower] > values[higher] + tolerance:
                violations.append((lower, higher))
    return RankingCheck(
        reference_year=int(reference_year),
        values={sid: float(values[sid]) for sid in order},
        severity_order=order,
        violations=tuple(violations),
        multipliers=dict(multipliers or {}),
    )


def ranking_violation_times(
    table: pd.DataFrame,
    severity_order: Sequence[str],
    *,
    tolerance: float = 1e-9,
) -> tuple[float, ...]:
    """Forecast times at which a less severe scenario exceeds a more severe one."""

    wide = table.pivot_table(index="time", columns="scenario", values="value", aggfunc="mean")
    order = [sid for sid in severity_order if sid in wide.columns]
    inverted = np.zeros(len(wide), dtype=bool)
    for i, lower in enumerate(order):
        for higher in order[i + 1 :]:
            low = wide[lower].to_numpy(dtype=float)
            high = wide[higher].to_numpy(dtype=float)
            # Times missing for either scenario compare as NaN and never flag.
            inverted |= low > high + tolerance
    return tuple(float(time) for time in wide.index[inverted])


def _check_table(
    table: pd.DataFrame,
    severity_order: Sequence[str],
    reference_year: int,
    multipliers: Mapping[str, float],
) -> RankingCheck:
    check = check_ranking(
        reference_values(table, reference_year),
        severity_order,
        reference_year=reference_year,
        multipliers=multipliers,
    )
    return replace(check, violating_times=ranking_violation_times(table, severity_order))


def _describe(check: RankingCheck) -> str:
    parts = []
    if check.violations:
        parts.append(
            f"at {check.reference_year} the order is {' < '.join(check.realized_order)}, "
            f"expected {' < '.join(check.severity_order)} "
            f"({', '.join(f'{a} > {b}' for a, b in check.violations)})"
        )
    if check.violating_times:
        times = check.violating_times
        parts.append(
            f"inverted at {len(times)} forecast time(s) between {times[0]:.2f} and {times[-1]:.2f}"
        )
    return "; ".join(parts)


def correct_ranking(
    blend: BlendCallable,
    base_multipliers: Mapping[str, float],
    correction_tables: Sequence[Mapping[str, float]],
    severity_order: Sequence[str],
    reference_year: int,
) -> CorrectionOutcome:
    """Blend, check, and substitute correction tables until the ranking holds.

    ``blend`` maps a ``{scenario: trend_multiplier}`` mapping to a blended table.
    The ordering is checked at the reference year and at every forecast time.
    Tables are tried in order, so the loop runs at most
    ``len(correction_tables) + 1`` times. An initial violation always issues
    :class:`RankingViolationDetected`, including when a later table fixes it.
    """

    multipliers = dict(base_multipliers)
    table = blend(multipliers)
    check = _check_table(table, severity_order, reference_year, multipliers)
    checks = [check]
    if check.is_consistent:
        LOGGER.info("Scenario ranking consistent with severity order at every forecast time")
        return CorrectionOutcome(table, multipliers, tuple(checks), corrected=False)

    emit(f"Scenario ranking violated: {_describe(check)}.", RankingViolationDetected)

    for attempt, correction in enumerate(correction_tables, start=1):
        multipliers = {sid: float(correction.get(sid, multipliers[sid])) for sid in multipliers}
        LOGGER.info(
            "Applying correction table %d: %s",
            attempt,
            ", ".join(f"{sid} x{value:.2f}" for sid, value in multipliers.items()),
        )
        table = blend(multipliers)
        check = _check_table(table, severity_order, reference_year, multipliers)
        checks.append(check)
        if check.is_consistent:
            LOGGER.info("Ranking restored after %d correction(s)", attempt)
            break
    else:
        LOGGER.error(
            "Ranking still violated after %d correction table(s): %s",
            len(correction_tables),
            _describe(check),
        )

    return CorrectionOutcome(table, multipliers, tuple(checks), corrected=len(checks) > 1)


__all__ = [
    "CorrectionOutcome",
    "RankingCheck",
    "check_ranking",
    "correct_ranking",
    "ranking_violation_times",
    "reference_values",
]
