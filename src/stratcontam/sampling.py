"""
Proportional stratified sub-sampling.

A reusable sampling primitive: each stratum contributes
``round(size_h / total * n)`` values drawn without replacement from its
clean or mixed realization. The estimators in the reference experiment work
on the full realizations, so samples only feed diagnostics.
"""

from typing import Optional, Sequence

import numpy as np

from .exceptions import InsufficientDataError, InvalidParameterError
from .generation import Population
from .validation import proportional_allocation, validate_source

__all__ = ['proportional_allocation', 'stratified_sample']


def stratified_sample(
    population: Population,
    sizes: Sequence[int],
    n: int,
    mode: str = 'mixed',
    rng: Optional[np.random.Generator] = None,
) -> np.ndarray:
    """
    Draw a proportionally allocated sample from a population.

    Parameters
    ----------
    population : Population
        Stratum realizations in scenario order.
    sizes : sequence of int
        Stratum sizes from the scenario's StratumSpecs (allocation basis).
    n : int
        Target overall sample size.
    mode : {'clean', 'mixed'}, default 'mixed'
        Realization to draw from.
    rng : np.random.Generator, optional
        Random source. A fresh unseeded generator is used if omitted.

    Returns
    -------
    np.ndarray
        Sampled values of all strata concatenated in stratum order.

    Raises
    ------
    InvalidParameterError
        If ``mode`` is invalid, ``n <= 0`` or ``sizes`` does not match the
        population.
    InsufficientDataError
        If a stratum's allocation exceeds the values available in it.
    """
    mode = validate_source(mode)
    if len(sizes) != len(population):
        raise InvalidParameterError(
            f"Got {len(sizes)} stratum size(s) for {len(population)} stratum realization(s)"
        )
    if rng is None:
        rng = np.random.default_rng()

    allocation = proportional_allocation(sizes, n)
    draws = []
    for index, (realization, n_h) in enumerate(zip(population, allocation)):
        source = realization.clean_values if mode == 'clean' else realization.mixed_values
        if n_h > source.size:
            raise InsufficientDataError(
                f"Stratum {index} holds {source.size} value(s); "
                f"cannot draw {n_h} without replacement"
            )
        draws.append(rng.choice(source, size=n_h, replace=False))
    return np.concatenate(draws)
