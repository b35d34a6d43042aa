"""
Validation Module

Implements eager parameter validation for scenarios, experiment settings and
estimator inputs. Every check here runs before any random draws so that an
invalid configuration fails without wasting replications.
"""

import math
from numbers import Integral, Real
from typing import List, Sequence

import numpy as np

from .exceptions import (
    InsufficientDataError,
    InvalidParameterError,
    InvalidTrimWeightError,
)

# Tolerance for the weights-sum-to-one precondition.
WEIGHT_SUM_TOLERANCE = 1e-9

VALID_SOURCES = ('clean', 'mixed')


def validate_positive_int(value, name: str) -> int:
    """
    Validate that ``value`` is a strictly positive integer.

    Booleans are rejected even though ``bool`` subclasses ``int``.

    Returns
    -------
    int
        The value converted to a plain Python ``int``.
    """
    if isinstance(value, bool) or not isinstance(value, Integral):
        raise InvalidParameterError(
            f"{name} must be a positive integer. Got: {value!r}"
        )
    if value <= 0:
        raise InvalidParameterError(f"{name} must be positive. Got: {value}")
    return int(value)


def _validate_finite_real(value, name: str) -> float:
    if isinstance(value, bool) or not isinstance(value, Real):
        raise InvalidParameterError(f"{name} must be a real number. Got: {value!r}")
    value = float(value)
    if not math.isfinite(value):
        raise InvalidParameterError(f"{name} must be finite. Got: {value}")
    return value


def validate_stratum_parameters(size, mean, sd) -> tuple:
    """
    Validate the parameters of one stratum.

    Parameters
    ----------
    size : int
        Number of population units in the stratum. Must be > 0.
    mean : float
        Mean of the clean normal distribution. Must be finite.
    sd : float
        Standard deviation of the clean normal distribution. Must be > 0.

    Returns
    -------
    tuple
        ``(size, mean, sd)`` normalized to ``(int, float, float)``.

    Raises
    ------
    InvalidParameterError
        If ``size <= 0``, ``sd <= 0`` or any value has the wrong type.
    """
    size = validate_positive_int(size, 'size')
    mean = _validate_finite_real(mean, 'mean')
    sd = _validate_finite_real(sd, 'sd')
    if sd <= 0:
        raise InvalidParameterError(f"sd must be positive. Got: {sd}")
    return size, mean, sd


def validate_outlier_proportion(outlier_proportion) -> float:
    """Validate that the outlier proportion lies in [0, 1]."""
    value = _validate_finite_real(outlier_proportion, 'outlier_proportion')
    if not 0.0 <= value <= 1.0:
        raise InvalidParameterError(
            f"outlier_proportion must be in [0, 1]. Got: {value}"
        )
    return value


def validate_trim_weight(trim_weight) -> float:
    """Validate that the per-tail trim weight lies in [0, 0.5)."""
    value = _validate_finite_real(trim_weight, 'trim_weight')
    if not 0.0 <= value < 0.5:
        raise InvalidParameterError(
            f"trim_weight must be in [0, 0.5). Got: {value}"
        )
    return value


def trim_count(trim_weight: float, n: int) -> int:
    """Number of order statistics removed from each tail of ``n`` values."""
    return int(round(trim_weight * n))


def validate_trim_against_sizes(trim_weight: float, sizes: Sequence[int]) -> None:
    """
    Check that trimming leaves at least one value in every stratum.

    Raises
    ------
    InvalidTrimWeightError
        If ``2 * round(trim_weight * size) >= size`` for any stratum.
    """
    for index, size in enumerate(sizes):
        k = trim_count(trim_weight, size)
        if 2 * k >= size:
            raise InvalidTrimWeightError(
                f"trim_weight={trim_weight} removes {k} value(s) from each tail "
                f"of stratum {index} with {size} value(s)"
            )


def proportional_allocation(sizes: Sequence[int], n: int) -> List[int]:
    """
    Allocate an overall sample size to strata in proportion to their size.

    Parameters
    ----------
    sizes : sequence of int
        Stratum population sizes.
    n : int
        Overall sample size.

    Returns
    -------
    list of int
        ``round(size_h / sum(sizes) * n)`` per stratum. The allocations sum to
        ``n`` up to rounding (at most ``len(sizes) / 2`` away).
    """
    n = validate_positive_int(n, 'n')
    if len(sizes) == 0:
        raise InvalidParameterError("At least one stratum is required")
    sizes = [validate_positive_int(size, 'size') for size in sizes]
    total = sum(sizes)
    return [int(round(size / total * n)) for size in sizes]


def validate_sample_size(sample_size, sizes: Sequence[int]) -> int:
    """
    Check that a proportional sample fits inside every stratum.

    Raises
    ------
    InvalidParameterError
        If ``sample_size`` is not a positive integer.
    InsufficientDataError
        If a stratum's allocation exceeds its size, so it cannot be drawn
        without replacement.
    """
    sample_size = validate_positive_int(sample_size, 'sample_size')
    for index, (size, n_h) in enumerate(zip(sizes, proportional_allocation(sizes, sample_size))):
        if n_h > size:
            raise InsufficientDataError(
                f"sample_size={sample_size} allocates {n_h} value(s) to stratum "
                f"{index}, which holds {size}"
            )
    return sample_size


def validate_weights(weights, n_strata: int) -> np.ndarray:
    """
    Validate stratum weights for the estimators.

    Parameters
    ----------
    weights : array-like
        One non-negative weight per stratum.
    n_strata : int
        Number of strata the weights must cover.

    Returns
    -------
    np.ndarray
        Weights as a float array.

    Raises
    ------
    InvalidParameterError
        If the length does not match, a weight is negative or non-finite,
        or the weights do not sum to one within ``WEIGHT_SUM_TOLERANCE``.
    """
    w = np.asarray(weights, dtype=float)
    if w.ndim != 1 or w.size != n_strata:
        raise InvalidParameterError(
            f"Expected {n_strata} stratum weight(s), got shape {w.shape}"
        )
    if n_strata == 0:
        raise InvalidParameterError("At least one stratum is required")
    if not np.all(np.isfinite(w)) or np.any(w < 0):
        raise InvalidParameterError(
            f"Stratum weights must be finite and non-negative. Got: {w.tolist()}"
        )
    total = float(w.sum())
    if abs(total - 1.0) > WEIGHT_SUM_TOLERANCE:
        raise InvalidParameterError(
            f"Stratum weights must sum to 1. Got sum={total!r}"
        )
    return w


def validate_failure_threshold(threshold) -> float:
    """Validate the unreliable-scenario failure threshold, a rate in [0, 1]."""
    value = _validate_finite_real(threshold, 'failure_threshold')
    if not 0.0 <= value <= 1.0:
        raise InvalidParameterError(
            f"failure_threshold must be in [0, 1]. Got: {value}"
        )
    return value


def validate_source(source: str, name: str = 'mode') -> str:
    """
    Validate a realization selector.

    Returns
    -------
    str
        Lower-cased source, one of ``'clean'`` or ``'mixed'``.
    """
    if not isinstance(source, str) or source.lower() not in VALID_SOURCES:
        raise InvalidParameterError(
            f"{name} must be one of: {', '.join(VALID_SOURCES)}. Got: {source!r}"
        )
    return source.lower()
