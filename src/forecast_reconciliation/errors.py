"""Error and warning taxonomy for forecast reconciliation."""

from __future__ import annotations

import logging
import warnings

LOGGER = logging.getLogger("forecast_reconciliation")


class InsufficientDataError(ValueError):
    """Historical input cannot support a trend fit (fatal)."""


class ConfigurationError(ValueError):
    """Reconciliation settings violate a structural constraint."""


class ReconciliationWarning(UserWarning):
    """Base class for recoverable reconciliation signals."""


class BaselineFallbackWarning(ReconciliationWarning):
    """Baseline window was empty; the whole-series mean was used instead."""


class RankingViolationDetected(ReconciliationWarning):
    """Scenario values disagree with the declared severity ordering."""


class ContinuityDriftWarning(ReconciliationWarning):
    """A trajectory did not start at the anchor value and was repaired."""


def emit(message: str, category: type[ReconciliationWarning], *, stacklevel: int = 3) -> None:
    """Log a recoverable signal and issue it through :mod:`warnings`."""

    LOGGER.warning(message)
    warnings.warn(message, category, stacklevel=stacklevel)


__all__ = [
    "InsufficientDataError",
    "ConfigurationError",
    "ReconciliationWarning",
    "BaselineFallbackWarning",
    "RankingViolationDetected",
    "ContinuityDriftWarning",
    "emit",
]
