import warnings

import numpy as np
import pandas as pd
import pytest

from forecast_reconciliation import (
    RankingViolationDetected,
    check_ranking,
    correct_ranking,
    ranking_violation_times,
    reference_values,
)

ORDER = ["SSP1-2.6", "SSP2-4.5", "SSP5-8.5"]


def _fake_blend(levels: dict[str, float]):
    """Blend stand-in: value at every time equals ``level * multiplier``."""

    calls = []

    def blend(multipliers):
        calls.append(dict(multipliers))
        times = np.array([2049.75, 2050.0, 2050.5])
        frames = [
            pd.DataFrame({"scenario": sid, "time": times, "value": levels[sid] * multipliers[sid]})
            for sid in multipliers
        ]
        return pd.concat(frames, ignore_index=True)

    blend.calls = calls
    return blend


def test_check_ranking_lists_every_violating_pair():
    check = check_ranking({"SSP1-2.6": 5.0, "SSP2-4.5": 6.0, "SSP5-8.5": 4.0}, ORDER)
    assert not check.is_consistent
    assert check.violations == (("SSP1-2.6", "SSP5-8.5"), ("SSP2-4.5", "SSP5-8.5"))
    assert check.realized_order == ["SSP5-8.5", "SSP1-2.6", "SSP2-4.5"]


def test_check_ranking_allows_ties():
    check = check_ranking({"SSP1-2.6": 100.0, "SSP2-4.5": 100.0, "SSP5-8.5": 100.0}, ORDER)
    assert check.is_consistent


def test_reference_values_average_rows_in_reference_year():
    table = pd.DataFrame(
        {
            "scenario": ["a", "a", "a", "b"],
            "time": [2049.75, 2050.0, 2050.5, 2040.0],
            "value": [1.0, 2.0, 4.0, 7.0],
        }
    )
    values = reference_values(table, 2050)
    assert values["a"] == pytest.approx(3.0)
    assert values["b"] == pytest.approx(7.0)


def test_consistent_ranking_needs_no_correction():
    blend = _fake_blend({sid: 10.0 for sid in ORDER})
    with warnings.catch_warnings():
        warnings.simplefilter("error", RankingViolationDetected)
        outcome = correct_ranking(
            blend,
            {"SSP1-2.6": 0.7, "SSP2-4.5": 1.0, "SSP5-8.5": 1.4},
            [{"SSP1-2.6": 0.55, "SSP2-4.5": 1.0, "SSP5-8.5": 1.2}],
            ORDER,
            2050,
        )
    assert not outcome.corrected
    assert outcome.resolved
    assert len(blend.calls) == 1


def test_violation_is_reported_and_corrected_from_table():
    blend = _fake_blend({sid: 10.0 for sid in ORDER})
    correction = {"SSP1-2.6": 0.55, "SSP2-4.5": 1.0, "SSP5-8.5": 1.2}
    with pytest.warns(RankingViolationDetected):
        outcome = correct_ranking(
            blend,
            {"SSP1-2.6": 1.0, "SSP2-4.5": 1.0, "SSP5-8.5": 0.8},
            [correction],
            ORDER,
            2050,
        )
    assert outcome.violation_detected
    assert outcome.corrected
    assert outcome.resolved
    assert outcome.multipliers == correction
    assert len(outcome.checks) == 2
    assert outcome.checks[0].multipliers["SSP5-8.5"] == 0.8


def test_correction_tables_are_tried_in_order_until_resolved():
    blend = _fake_blend({sid: 10.0 for sid in ORDER})
    tables = [
        {"SSP1-2.6": 1.0, "SSP2-4.5": 1.0, "SSP5-8.5": 0.9},
        {"SSP1-2.6": 0.7, "SSP2-4.5": 1.0, "SSP5-8.5": 1.3},
        {"SSP1-2.6": 0.1, "SSP2-4.5": 0.2, "SSP5-8.5": 0.3},
    ]
    with pytest.warns(RankingViolationDetected):
        outcome = correct_ranking(blend, tables[0], tables, ORDER, 2050)
    assert outcome.multipliers == tables[1]
    assert len(blend.calls) == 3


def test_exhausted_tables_leave_ranking_unresolved(caplog):
    blend = _fake_blend({sid: 10.0 for sid in ORDER})
    with pytest.warns(RankingViolationDetected):
        outcome = correct_ranking(
            blend, {"SSP1-2.6": 2.0, "SSP2-4.5": 1.0, "SSP5-8.5": 1.0}, [], ORDER, 2050
        )
    assert not outcome.resolved
    assert not outcome.corrected
    assert "still violated" in caplog.text


def _dipping_blend():
    """Most severe scenario dips below the others in 2030 only."""

    times = np.array([2029.0, 2030.0, 2050.0])

    def blend(multipliers):
        frames = []
        for sid, multiplier in multipliers.items():
            values = np.full(times.shape, 10.0 * multiplier)
            if sid == "SSP5-8.5":
                values[1] -= 2.0
            frames.append(pd.DataFrame({"scenario": sid, "time": times, "value": values}))
        return pd.concat(frames, ignore_index=True)

    return blend


def test_violation_times_cover_the_whole_horizon():
    table = _dipping_blend()({sid: 1.0 for sid in ORDER})
    assert ranking_violation_times(table, ORDER) == (2030.0,)
    assert check_ranking(reference_values(table, 2050), ORDER).is_consistent


def test_mid_horizon_inversion_triggers_correction():
    correction = {"SSP1-2.6": 0.55, "SSP2-4.5": 1.0, "SSP5-8.5": 1.3}
    with pytest.warns(RankingViolationDetected, match="2030.00"):
        outcome = correct_ranking(
            _dipping_blend(), {sid: 1.0 for sid in ORDER}, [correction], ORDER, 2050
        )
    assert outcome.violation_detected
    assert outcome.checks[0].violations == ()
    assert outcome.checks[0].violating_times == (2030.0,)
    assert outcome.resolved
    assert outcome.multipliers == correction
