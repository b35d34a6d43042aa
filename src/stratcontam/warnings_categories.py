"""
Warning category hierarchy for the stratcontam package.

Provides structured warning categories for Monte Carlo runs, enabling
selective filtering via Python's standard ``warnings.filterwarnings()``
mechanism. All warning classes inherit from :class:`StratContamWarning`,
which itself inherits from :class:`UserWarning`.

Examples
--------
Silence per-replication failure summaries while keeping the others:

>>> import warnings
>>> from stratcontam import ReplicationFailureWarning
>>> warnings.filterwarnings('ignore', category=ReplicationFailureWarning)
"""


class StratContamWarning(UserWarning):
    """Base warning class for all stratcontam package warnings."""
    pass


class ReplicationFailureWarning(StratContamWarning):
    """
    Warning raised when some replications of a scenario failed.

    Failed replications (for example a degenerate stratum reaching the
    Weighted-Hybrid estimator) are dropped from the aggregation and counted.
    One aggregated warning is emitted per scenario.
    """
    pass


class UnreliableScenarioWarning(StratContamWarning):
    """
    Warning raised when a scenario's failure rate exceeds the threshold.

    The scenario is reported with status ``'unreliable'`` and its
    bias/variance/MSE summaries are withheld.
    """
    pass


class ReferenceValueWarning(StratContamWarning):
    """
    Warning raised when a supplied true value disagrees with the strata.

    Triggered when ``Scenario.true_value`` differs from the stratum-weighted
    sum of stratum means. The supplied value is still used for bias.
    """
    pass
