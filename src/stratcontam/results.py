"""
Results Container Module

Defines the per-estimator and per-scenario result records and the
ExperimentResults class that exposes them to reporting code as pandas
DataFrames.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, Iterator, List, Optional

import numpy as np
import pandas as pd

from .estimators import ESTIMATOR_NAMES
from .generation import Population
from .scenario import ExperimentConfig, Scenario

STATUS_DONE = 'done'
STATUS_UNRELIABLE = 'unreliable'
STATUS_FAILED = 'failed'

ESTIMATOR_LABELS = {
    'neyman': 'Neyman',
    'wang_xu': 'Weighted-Hybrid',
    'proposed': 'Trimmed-Hybrid',
}

STRATUM_STATISTICS_COLUMNS = ['stratum', 'source', 'max', 'min', 'mean', 'sd']


@dataclass(frozen=True)
class EstimatorSummary:
    """
    Empirical performance of one estimator over a scenario's replications.

    ``mse`` is not estimated independently: it is ``variance + bias ** 2``.

    Attributes
    ----------
    bias : float
        Mean of the estimates minus the scenario's true value.
    variance : float
        Population variance of the estimates (divisor R).
    mse : float
        ``variance + bias ** 2``.
    """
    bias: float
    variance: float
    mse: float = field(init=False)

    def __post_init__(self):
        object.__setattr__(self, 'bias', float(self.bias))
        object.__setattr__(self, 'variance', float(self.variance))
        object.__setattr__(self, 'mse', self.variance + self.bias ** 2)


@dataclass(frozen=True)
class ScenarioResult:
    """
    Outcome of one scenario.

    Attributes
    ----------
    scenario : Scenario
        The configuration that was run.
    index : int
        Position of the scenario in the experiment.
    status : {'done', 'unreliable', 'failed'}
        ``'unreliable'`` when the failure rate exceeded the threshold;
        ``'failed'`` when the scenario raised before aggregation.
    true_value : float
        Reference mean used for bias.
    summaries : dict or None
        ``{estimator_name: EstimatorSummary}``; None unless status is ``'done'``.
    estimates : pd.DataFrame
        Successful replications, columns ``replication, neyman, wang_xu,
        proposed``, in replication order.
    n_requested : int
        Replications requested.
    n_failed : int
        Replications that raised a precondition error.
    stratum_statistics : pd.DataFrame or None
        Per-stratum ``max, min, mean, sd`` of the diagnostic replication.
    samples : dict or None
        ``{'clean': ndarray, 'mixed': ndarray}`` proportional samples drawn in
        the diagnostic replication when the scenario sets ``sample_size``.
    failures : list of dict
        Aggregated failure diagnostics (see ``FailureRegistry``).
    error : str or None
        Error message for failed scenarios.
    """
    scenario: Scenario
    index: int
    status: str
    true_value: float
    summaries: Optional[Dict[str, EstimatorSummary]]
    estimates: pd.DataFrame
    n_requested: int
    n_failed: int
    stratum_statistics: Optional[pd.DataFrame] = None
    samples: Optional[Dict[str, np.ndarray]] = None
    failures: List[dict] = field(default_factory=list)
    error: Optional[str] = None

    @property
    def n_succeeded(self) -> int:
        return self.n_requested - self.n_failed

    @property
    def failure_rate(self) -> float:
        return self.n_failed / self.n_requested if self.n_requested else 0.0

    @property
    def reliable(self) -> bool:
        return self.status == STATUS_DONE

    def estimate_sequence(self, estimator: str) -> np.ndarray:
        """Raw per-replication estimates of one estimator."""
        if estimator not in ESTIMATOR_NAMES:
            raise KeyError(
                f"Unknown estimator {estimator!r}; expected one of {ESTIMATOR_NAMES}"
            )
        return self.estimates[estimator].to_numpy(dtype=float)


def describe_population(population: Population) -> pd.DataFrame:
    """
    Per-stratum summary statistics of a realization.

    Returns
    -------
    pd.DataFrame
        One row per stratum and source (``'clean'``, ``'mixed'``) with
        columns ``stratum, source, max, min, mean, sd`` (sample SD).
    """
    rows = []
    for index, realization in enumerate(population):
        for source, values in (
            ('clean', realization.clean_values),
            ('mixed', realization.mixed_values),
        ):
            rows.append({
                'stratum': index,
                'source': source,
                'max': float(values.max()),
                'min': float(values.min()),
                'mean': float(values.mean()),
                'sd': float(values.std(ddof=1)) if values.size > 1 else float('nan'),
            })
    return pd.DataFrame(rows, columns=STRATUM_STATISTICS_COLUMNS)


class ExperimentResults:
    """
    Container for a full experiment run.

    Results are read-only: the scenario records are immutable and the
    DataFrames returned by the accessor methods are fresh copies.

    Attributes
    ----------
    config : ExperimentConfig
        Configuration that produced the results.
    scenario_results : tuple of ScenarioResult
        One record per scenario, in declared order.
    seed : int
        Top-level seed.
    trim_weight : float
        Trim weight of the Trimmed-Hybrid estimator.

    Methods
    -------
    summary_table() : pd.DataFrame
        Long table of bias, variance and MSE per scenario and estimator.
    estimates(index) : pd.DataFrame
        Raw per-replication estimates of one scenario.
    stratum_statistics(index) : pd.DataFrame
        Per-stratum statistics of the diagnostic replication.
    summary() : str
        Plain-text overview.

    Examples
    --------
    >>> from stratcontam import reference_config, run_experiment
    >>> results = run_experiment(reference_config(replications=20))
    >>> table = results.summary_table()
    >>> table[table['estimator'] == 'proposed'][['scenario', 'bias', 'mse']]
    >>> print(results.summary())
    """

    def __init__(self, scenario_results, config: ExperimentConfig):
        self._scenario_results = tuple(scenario_results)
        self._config = config

    @property
    def config(self) -> ExperimentConfig:
        return self._config

    @property
    def scenario_results(self) -> tuple:
        return self._scenario_results

    @property
    def seed(self) -> int:
        return self._config.seed

    @property
    def trim_weight(self) -> float:
        return self._config.trim_weight

    def __len__(self) -> int:
        return len(self._scenario_results)

    def __iter__(self) -> Iterator[ScenarioResult]:
        return iter(self._scenario_results)

    def __getitem__(self, index: int) -> ScenarioResult:
        return self._scenario_results[index]

    def summary_table(self) -> pd.DataFrame:
        """
        Bias, variance and MSE per scenario and estimator.

        Returns
        -------
        pd.DataFrame
            Columns ``scenario_index, scenario, outlier_proportion, n_strata,
            estimator, bias, variance, mse, status, n_failed``. Rows of
            unreliable or failed scenarios carry NaN in the numeric columns.
        """
        rows: List[Dict[str, Any]] = []
        for result in self._scenario_results:
            for name in ESTIMATOR_NAMES:
                summary = result.summaries.get(name) if result.summaries else None
                rows.append({
                    'scenario_index': result.index,
                    'scenario': result.scenario.name,
                    'outlier_proportion': result.scenario.outlier_proportion,
                    'n_strata': result.scenario.n_strata,
                    'estimator': name,
                    'bias': summary.bias if summary else np.nan,
                    'variance': summary.variance if summary else np.nan,
                    'mse': summary.mse if summary else np.nan,
                    'status': result.status,
                    'n_failed': result.n_failed,
                })
        return pd.DataFrame(rows)

    def estimates(self, index: int) -> pd.DataFrame:
        """Raw per-replication estimates of scenario ``index``."""
        return self._scenario_results[index].estimates.copy()

    def stratum_statistics(self, index: int) -> Optional[pd.DataFrame]:
        """Per-stratum statistics of scenario ``index``'s diagnostic replication."""
        stats = self._scenario_results[index].stratum_statistics
        return None if stats is None else stats.copy()

    def summary(self) -> str:
        """Formatted plain-text overview of all scenarios."""
        lines = [
            "=" * 72,
            "Stratified mean estimators under contamination",
            f"seed={self.seed}  trim_weight={self.trim_weight:g}  "
            f"neyman_source={self._config.neyman_source}",
            "=" * 72,
        ]
        for result in self._scenario_results:
            lines.append(
                f"[{result.index}] {result.scenario.name}  "
                f"R={result.n_requested}  failed={result.n_failed}  "
                f"status={result.status}  true={result.true_value:.6f}"
            )
            if result.status == STATUS_FAILED:
                lines.append(f"    error: {result.error}")
                continue
            if not result.summaries:
                lines.append("    summaries withheld (failure rate above threshold)")
                continue
            lines.append(f"    {'estimator':<16}{'bias':>14}{'variance':>14}{'mse':>14}")
            for name in ESTIMATOR_NAMES:
                s = result.summaries[name]
                lines.append(
                    f"    {ESTIMATOR_LABELS[name]:<16}"
                    f"{s.bias:>14.6g}{s.variance:>14.6g}{s.mse:>14.6g}"
                )
        lines.append("=" * 72)
        return "\n".join(lines)

    def __repr__(self) -> str:
        statuses = [r.status for r in self._scenario_results]
        return (
            f"ExperimentResults(n_scenarios={len(self)}, seed={self.seed}, "
            f"statuses={statuses})"
        )
