"""
Population Generation Module

Draws clean stratum values from a normal distribution, generates heavy-tailed
outliers from a Student-t distribution with one degree of freedom, and
injects them into the stratum by replacement.

Notes
-----
Outliers replace clean values; they are never added. A contaminated ("mixed")
stratum therefore always has the same length as its clean counterpart:

    |mixed_values| = |clean_values| = size

The outliers are centred on the empirical mean of the clean draw (a shift,
not a rescaling), so contamination inflates the spread of a stratum without
moving its centre on average.
"""

from dataclasses import dataclass
from typing import Tuple

import numpy as np
import scipy.stats as stats

from .exceptions import InsufficientDataError
from .scenario import Scenario, StratumSpec
from .validation import (
    validate_outlier_proportion,
    validate_stratum_parameters,
)

# Degrees of freedom of the contaminating t distribution (Cauchy).
OUTLIER_DF = 1


@dataclass(frozen=True)
class StratumRealization:
    """
    One replication's draw of a single stratum.

    Attributes
    ----------
    clean_values : np.ndarray
        Normal draws, length ``size``.
    outlier_values : np.ndarray
        Shifted t(1) draws, length ``round(outlier_proportion * size)``.
    mixed_values : np.ndarray
        ``clean_values`` with ``len(outlier_values)`` randomly chosen entries
        removed and the outliers appended.
    """
    clean_values: np.ndarray
    outlier_values: np.ndarray
    mixed_values: np.ndarray

    @property
    def size(self) -> int:
        return int(self.clean_values.size)

    @property
    def outlier_count(self) -> int:
        return int(self.outlier_values.size)


# Strata are addressed by their position in the scenario.
Population = Tuple[StratumRealization, ...]


def outlier_count(outlier_proportion: float, size: int) -> int:
    """Number of values replaced in a stratum: ``round(proportion * size)``."""
    return int(round(outlier_proportion * size))


def generate_clean(spec: StratumSpec, rng: np.random.Generator) -> np.ndarray:
    """
    Draw the clean values of a stratum.

    Parameters
    ----------
    spec : StratumSpec
        Stratum size, mean and standard deviation.
    rng : np.random.Generator
        Random source; only its state is advanced.

    Returns
    -------
    np.ndarray
        ``spec.size`` i.i.d. draws from ``Normal(spec.mean, spec.sd)``.

    Raises
    ------
    InvalidParameterError
        If ``size <= 0`` or ``sd <= 0``.
    """
    size, mean, sd = validate_stratum_parameters(spec.size, spec.mean, spec.sd)
    return rng.normal(loc=mean, scale=sd, size=size)


def generate_outliers(
    clean_values: np.ndarray,
    outlier_proportion: float,
    rng: np.random.Generator,
) -> np.ndarray:
    """
    Draw the contamination batch for a stratum.

    Draws ``round(outlier_proportion * len(clean_values))`` values from a
    Student-t distribution with one degree of freedom and shifts each by the
    empirical mean of ``clean_values``.

    Returns
    -------
    np.ndarray
        Outlier values; empty when the count rounds to zero.
    """
    outlier_proportion = validate_outlier_proportion(outlier_proportion)
    clean_values = np.asarray(clean_values, dtype=float)
    k = outlier_count(outlier_proportion, clean_values.size)
    if k == 0:
        return np.empty(0, dtype=float)
    draws = stats.t(df=OUTLIER_DF).rvs(size=k, random_state=rng)
    return np.asarray(draws, dtype=float) + float(clean_values.mean())


def inject_outliers(
    clean_values: np.ndarray,
    outlier_values: np.ndarray,
    rng: np.random.Generator,
) -> np.ndarray:
    """
    Replace randomly chosen clean values with the outliers.

    Selects ``len(outlier_values)`` distinct indices uniformly without
    replacement, removes those entries and appends ``outlier_values``.

    Raises
    ------
    InsufficientDataError
        If there are more outliers than clean values.
    """
    clean_values = np.asarray(clean_values, dtype=float)
    outlier_values = np.asarray(outlier_values, dtype=float)
    n, k = clean_values.size, outlier_values.size
    if k > n:
        raise InsufficientDataError(
            f"Cannot replace {k} value(s) in a stratum of {n} value(s)"
        )
    if k == 0:
        return clean_values.copy()
    replaced = rng.choice(n, size=k, replace=False)
    return np.concatenate([np.delete(clean_values, replaced), outlier_values])


def realize_stratum(
    spec: StratumSpec,
    outlier_proportion: float,
    rng: np.random.Generator,
) -> StratumRealization:
    """Generate, contaminate and bundle one stratum."""
    clean = generate_clean(spec, rng)
    outliers = generate_outliers(clean, outlier_proportion, rng)
    mixed = inject_outliers(clean, outliers, rng)
    return StratumRealization(
        clean_values=clean,
        outlier_values=outliers,
        mixed_values=mixed,
    )


def realize_population(scenario: Scenario, rng: np.random.Generator) -> Population:
    """Realize every stratum of ``scenario`` in order from a single stream."""
    return tuple(
        realize_stratum(spec, scenario.outlier_proportion, rng)
        for spec in scenario.strata
    )
