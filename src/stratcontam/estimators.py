"""
Stratified Mean Estimators

Three estimators of a finite population mean, each a stratum-weighted sum of
per-stratum location estimates:

- Neyman: plain stratum means. No protection against contamination.
- Weighted-Hybrid ("Wang-Xu"): each contaminated value ``x`` is weighted by
  ``1 / (1 + |x - mean_h| / sd_h)`` where ``mean_h`` and ``sd_h`` come from
  the clean stratum, so distant values are down-weighted but never zeroed.
- Trimmed-Hybrid ("proposed"): symmetric trimmed mean of the contaminated
  stratum, dropping ``round(trim_weight * n)`` order statistics per tail.

All estimators take per-stratum arrays in stratum order plus the population
proportions ``weight_h = size_h / N``, which must sum to one. None of them
returns NaN or infinity silently: undefined inputs raise.

Notes
-----
The hybrid estimators are sometimes written as a blend
``w * mean + (1 - w) * robust``. Only the robust component is computed here;
no blending coefficient is applied.
"""

from dataclasses import dataclass
from typing import Sequence

import numpy as np

from .exceptions import (
    DegenerateStratumError,
    InsufficientDataError,
    InvalidInputError,
    InvalidParameterError,
    InvalidTrimWeightError,
)
from .generation import Population
from .validation import (
    trim_count,
    validate_source,
    validate_trim_weight,
    validate_weights,
)

ESTIMATOR_NAMES = ('neyman', 'wang_xu', 'proposed')


@dataclass(frozen=True)
class EstimateTriple:
    """
    Estimates of one replication.

    Attributes
    ----------
    neyman : float
        Neyman stratified mean.
    wang_xu : float
        Weighted-Hybrid estimate.
    proposed : float
        Trimmed-Hybrid estimate.
    """
    neyman: float
    wang_xu: float
    proposed: float

    def as_tuple(self) -> tuple:
        return (self.neyman, self.wang_xu, self.proposed)


def _as_strata(strata: Sequence, name: str) -> list:
    arrays = [np.asarray(values, dtype=float) for values in strata]
    for index, values in enumerate(arrays):
        if values.ndim != 1 or values.size == 0:
            raise InvalidInputError(f"{name} stratum {index} must be a non-empty 1-D array")
        if not np.all(np.isfinite(values)):
            raise InvalidInputError(f"{name} stratum {index} contains non-finite values")
    return arrays


def _combine(stratum_estimates: Sequence[float], weights: np.ndarray) -> float:
    estimate = float(np.dot(weights, np.asarray(stratum_estimates, dtype=float)))
    if not np.isfinite(estimate):
        raise InvalidInputError(f"Estimate is not finite: {estimate}")
    return estimate


def neyman_estimate(strata: Sequence, weights) -> float:
    """
    Stratified sample mean ``sum_h weight_h * mean(values_h)``.

    Parameters
    ----------
    strata : sequence of array-like
        Values of each stratum, in stratum order.
    weights : array-like
        Population proportion of each stratum; must sum to one.

    Returns
    -------
    float
        Population mean estimate.
    """
    arrays = _as_strata(strata, 'Neyman')
    w = validate_weights(weights, len(arrays))
    return _combine([values.mean() for values in arrays], w)


def weighted_stratum_mean(clean_values, mixed_values) -> float:
    """
    Distance-weighted mean of one contaminated stratum.

    Raises
    ------
    InsufficientDataError
        If the clean stratum has fewer than two values.
    DegenerateStratumError
        If the clean stratum's standard deviation is zero.
    """
    clean = np.asarray(clean_values, dtype=float)
    mixed = np.asarray(mixed_values, dtype=float)
    if clean.size < 2:
        raise InsufficientDataError(
            f"A standard deviation needs at least 2 clean values, got {clean.size}"
        )
    center = clean.mean()
    spread = clean.std(ddof=1)
    if not spread > 0 or not np.isfinite(spread):
        raise DegenerateStratumError(
            f"Clean stratum has zero or undefined standard deviation (sd={spread})"
        )
    w = 1.0 / (1.0 + np.abs(mixed - center) / spread)
    return float(np.sum(w * mixed) / np.sum(w))


def weighted_hybrid_estimate(clean_strata: Sequence, mixed_strata: Sequence, weights) -> float:
    """
    Weighted-Hybrid estimator.

    For each stratum, the mixed values are averaged with weights
    ``1 / (1 + |x - mean_h| / sd_h)`` computed from the clean stratum's mean
    and sample standard deviation; the stratum estimates are then combined
    with ``weights``.

    Parameters
    ----------
    clean_strata : sequence of array-like
        Clean realization of each stratum (source of ``mean_h`` and ``sd_h``).
    mixed_strata : sequence of array-like
        Contaminated realization of each stratum.
    weights : array-like
        Population proportion of each stratum; must sum to one.

    Returns
    -------
    float
        Population mean estimate.

    Raises
    ------
    DegenerateStratumError
        If any clean stratum has zero standard deviation.
    """
    clean = _as_strata(clean_strata, 'Clean')
    mixed = _as_strata(mixed_strata, 'Mixed')
    if len(clean) != len(mixed):
        raise InvalidInputError(
            f"Got {len(clean)} clean and {len(mixed)} mixed strata"
        )
    w = validate_weights(weights, len(mixed))
    return _combine(
        [weighted_stratum_mean(c, m) for c, m in zip(clean, mixed)],
        w,
    )


def trimmed_stratum_mean(values, trim_weight: float = 0.05) -> float:
    """
    Symmetric trimmed mean dropping ``round(trim_weight * n)`` per tail.

    Raises
    ------
    InvalidTrimWeightError
        If trimming would leave no values.
    """
    values = np.asarray(values, dtype=float)
    n = values.size
    k = trim_count(trim_weight, n)
    if 2 * k >= n:
        raise InvalidTrimWeightError(
            f"trim_weight={trim_weight} removes {k} value(s) from each tail "
            f"of a stratum with {n} value(s)"
        )
    if k == 0:
        # Same summation order as the untrimmed mean.
        return float(values.mean())
    return float(np.sort(values)[k:n - k].mean())


def trimmed_hybrid_estimate(mixed_strata: Sequence, weights, trim_weight: float = 0.05) -> float:
    """
    Trimmed-Hybrid estimator.

    Parameters
    ----------
    mixed_strata : sequence of array-like
        Contaminated realization of each stratum.
    weights : array-like
        Population proportion of each stratum; must sum to one.
    trim_weight : float, default 0.05
        Share of each tail to drop, in [0, 0.5).

    Returns
    -------
    float
        Population mean estimate. With ``trim_weight=0`` this equals the
        Neyman estimate over the same strata.
    """
    trim_weight = validate_trim_weight(trim_weight)
    mixed = _as_strata(mixed_strata, 'Mixed')
    w = validate_weights(weights, len(mixed))
    return _combine([trimmed_stratum_mean(m, trim_weight) for m in mixed], w)


def estimate_all(
    population: Population,
    weights,
    trim_weight: float = 0.05,
    neyman_source: str = 'mixed',
) -> EstimateTriple:
    """
    Run the three estimators on one population realization.

    Parameters
    ----------
    population : Population
        Stratum realizations in stratum order.
    weights : array-like
        Population proportion of each stratum.
    trim_weight : float, default 0.05
        Trim weight of the Trimmed-Hybrid estimator.
    neyman_source : {'mixed', 'clean'}, default 'mixed'
        Realization the Neyman estimator averages.

    Returns
    -------
    EstimateTriple
    """
    neyman_source = validate_source(neyman_source, 'neyman_source')
    if len(population) == 0:
        raise InvalidParameterError("Population has no strata")
    clean = [realization.clean_values for realization in population]
    mixed = [realization.mixed_values for realization in population]
    return EstimateTriple(
        neyman=neyman_estimate(clean if neyman_source == 'clean' else mixed, weights),
        wang_xu=weighted_hybrid_estimate(clean, mixed, weights),
        proposed=trimmed_hybrid_estimate(mixed, weights, trim_weight),
    )
