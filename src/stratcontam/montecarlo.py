"""
Monte Carlo Runner Module

Runs R independent replications per scenario, collects the three estimators'
outputs and aggregates them into bias, variance and MSE against the
scenario's true value.

Notes
-----
Each replication draws from its own stream,

    SeedSequence(entropy=seed, spawn_key=(scenario_index, replication_index))

so a replication's result depends only on the top-level seed and its
indices. Sequential and parallel runs are therefore bit-identical, and the
order in which worker processes finish does not matter. Replications return
immutable outcomes which the orchestrator merges in replication order; there
is no shared accumulator.

Per scenario the runner moves through
``IDLE -> REPLICATING -> AGGREGATING -> DONE`` (or ``FAILED``).
"""

import logging
import warnings
from dataclasses import dataclass
from enum import Enum
from typing import Dict, List, Optional, Sequence

import numpy as np
import pandas as pd

from .estimators import ESTIMATOR_NAMES, EstimateTriple, estimate_all
from .exceptions import (
    InsufficientDataError,
    InvalidInputError,
    InvalidParameterError,
    StratContamError,
)
from .failure_registry import FailureRegistry
from .generation import realize_population
from .results import (
    STATUS_DONE,
    STATUS_FAILED,
    STATUS_UNRELIABLE,
    EstimatorSummary,
    ExperimentResults,
    ScenarioResult,
    describe_population,
)
from .sampling import stratified_sample
from .scenario import (
    DEFAULT_FAILURE_THRESHOLD,
    DEFAULT_SEED,
    DEFAULT_TRIM_WEIGHT,
    ExperimentConfig,
    Scenario,
)
from .validation import (
    validate_failure_threshold,
    validate_positive_int,
    validate_source,
    validate_trim_against_sizes,
    validate_trim_weight,
)
from .warnings_categories import ReferenceValueWarning, UnreliableScenarioWarning

logger = logging.getLogger('stratcontam')

ESTIMATE_COLUMNS = ['replication', *ESTIMATOR_NAMES]


class ScenarioState(Enum):
    IDLE = 'idle'
    REPLICATING = 'replicating'
    AGGREGATING = 'aggregating'
    DONE = 'done'
    FAILED = 'failed'


@dataclass(frozen=True)
class ReplicationTask:
    """Everything one replication needs; picklable for worker processes."""
    scenario: Scenario
    scenario_index: int
    replication: int
    seed: int
    trim_weight: float
    neyman_source: str
    diagnostic: bool = False


@dataclass(frozen=True)
class ReplicationOutcome:
    """
    Result of one replication.

    Exactly one of ``estimates`` and ``error_type`` is set.
    """
    replication: int
    estimates: Optional[EstimateTriple] = None
    error_type: Optional[str] = None
    error_message: Optional[str] = None
    stratum_statistics: Optional[pd.DataFrame] = None
    samples: Optional[Dict[str, np.ndarray]] = None

    @property
    def succeeded(self) -> bool:
        return self.estimates is not None


def replication_seed(seed: int, scenario_index: int, replication: int) -> np.random.SeedSequence:
    """Seed sequence of one replication, independent of execution order."""
    return np.random.SeedSequence(entropy=seed, spawn_key=(scenario_index, replication))


def replication_rng(seed: int, scenario_index: int, replication: int) -> np.random.Generator:
    return np.random.default_rng(replication_seed(seed, scenario_index, replication))


def run_replication(task: ReplicationTask) -> ReplicationOutcome:
    """
    Generate a fresh population and run all estimators on it.

    Precondition violations during estimation (``InvalidInputError``,
    ``InsufficientDataError``) abort only this replication and are returned
    as a failed outcome. Any other exception propagates.
    """
    rng = replication_rng(task.seed, task.scenario_index, task.replication)
    scenario = task.scenario
    try:
        population = realize_population(scenario, rng)
        estimates = estimate_all(
            population,
            scenario.stratum_weights(),
            trim_weight=task.trim_weight,
            neyman_source=task.neyman_source,
        )
    except (InvalidInputError, InsufficientDataError) as e:
        return ReplicationOutcome(
            replication=task.replication,
            error_type=type(e).__name__,
            error_message=str(e),
        )

    stratum_statistics = None
    samples = None
    if task.diagnostic:
        stratum_statistics = describe_population(population)
        if scenario.sample_size is not None:
            samples = {
                mode: stratified_sample(
                    population, scenario.sizes, scenario.sample_size, mode=mode, rng=rng,
                )
                for mode in ('clean', 'mixed')
            }
    return ReplicationOutcome(
        replication=task.replication,
        estimates=estimates,
        stratum_statistics=stratum_statistics,
        samples=samples,
    )


def summarize_estimates(values, true_value: float) -> EstimatorSummary:
    """
    Empirical bias, variance and MSE of a sequence of estimates.

    ``bias = mean(values) - true_value``; ``variance`` uses divisor R;
    ``mse = variance + bias ** 2``.

    Raises
    ------
    InsufficientDataError
        If ``values`` is empty.
    """
    x = np.asarray(values, dtype=float)
    if x.size == 0:
        raise InsufficientDataError("Cannot summarize an empty estimate sequence")
    center = x.mean()
    return EstimatorSummary(
        bias=float(center - true_value),
        variance=float(np.mean((x - center) ** 2)),
    )


def _set_state(scenario: Scenario, state: ScenarioState) -> ScenarioState:
    logger.debug("Scenario '%s' -> %s", scenario.name, state.value)
    return state


def _map_replications(tasks: Sequence[ReplicationTask], n_jobs: int, pool=None) -> List[ReplicationOutcome]:
    if pool is not None:
        return list(pool.imap(run_replication, tasks, chunksize=_chunksize(len(tasks), n_jobs)))
    if n_jobs > 1 and len(tasks) > 1:
        from multiprocessing import get_context

        ctx = get_context("spawn")
        with ctx.Pool(processes=min(n_jobs, len(tasks))) as own_pool:
            return list(own_pool.imap(run_replication, tasks, chunksize=_chunksize(len(tasks), n_jobs)))
    return [run_replication(task) for task in tasks]


def _chunksize(n_tasks: int, n_jobs: int) -> int:
    return max(1, n_tasks // (4 * n_jobs))


def _validate_run_options(
    scenario: Scenario,
    trim_weight: float,
    failure_threshold: float,
    n_jobs: int,
    neyman_source: str,
) -> tuple:
    if not isinstance(scenario, Scenario):
        raise InvalidParameterError(
            f"Expected a Scenario, got {type(scenario).__name__}"
        )
    trim_weight = validate_trim_weight(trim_weight)
    validate_trim_against_sizes(trim_weight, scenario.sizes)
    return (
        trim_weight,
        validate_failure_threshold(failure_threshold),
        validate_positive_int(n_jobs, 'n_jobs'),
        validate_source(neyman_source, 'neyman_source'),
    )


def run_scenario(
    scenario: Scenario,
    scenario_index: int = 0,
    *,
    trim_weight: float = DEFAULT_TRIM_WEIGHT,
    seed: int = DEFAULT_SEED,
    failure_threshold: float = DEFAULT_FAILURE_THRESHOLD,
    n_jobs: int = 1,
    diagnostic_replication: int = 0,
    neyman_source: str = 'mixed',
    _pool=None,
) -> ScenarioResult:
    """
    Run all replications of one scenario and aggregate them.

    Parameters
    ----------
    scenario : Scenario
        Scenario to run.
    scenario_index : int, default 0
        Index used to derive the replication streams.
    trim_weight : float, default 0.05
        Trim weight of the Trimmed-Hybrid estimator.
    seed : int
        Top-level seed.
    failure_threshold : float, default 0.1
        Failure rate above which the scenario is reported as unreliable.
    n_jobs : int, default 1
        Worker processes. 1 runs sequentially.
    diagnostic_replication : int, default 0
        Replication whose per-stratum statistics are kept.
    neyman_source : {'mixed', 'clean'}, default 'mixed'
        Realization fed to the Neyman estimator.

    Returns
    -------
    ScenarioResult

    Raises
    ------
    InvalidParameterError
        If an option is invalid, including a trim weight that empties a
        stratum. Raised before any random draws.
    """
    trim_weight, failure_threshold, n_jobs, neyman_source = _validate_run_options(
        scenario, trim_weight, failure_threshold, n_jobs, neyman_source,
    )
    _set_state(scenario, ScenarioState.IDLE)

    true_value = scenario.effective_true_value()
    mismatch = scenario.true_value_mismatch()
    if mismatch is not None:
        msg = (
            f"Scenario '{scenario.name}': supplied true_value={scenario.true_value!r} "
            f"differs from the stratum-weighted mean {scenario.reference_mean()!r} "
            f"by {mismatch:+.6g}; the supplied value is used for bias"
        )
        logger.warning(msg)
        warnings.warn(msg, ReferenceValueWarning, stacklevel=2)

    tasks = [
        ReplicationTask(
            scenario=scenario,
            scenario_index=scenario_index,
            replication=r,
            seed=seed,
            trim_weight=trim_weight,
            neyman_source=neyman_source,
            diagnostic=(r == diagnostic_replication),
        )
        for r in range(scenario.replications)
    ]

    logger.info(
        "Running scenario %d '%s': %d replication(s), %d stratum(s), n_jobs=%d",
        scenario_index, scenario.name, scenario.replications, scenario.n_strata, n_jobs,
    )
    _set_state(scenario, ScenarioState.REPLICATING)
    outcomes = _map_replications(tasks, n_jobs, pool=_pool)

    _set_state(scenario, ScenarioState.AGGREGATING)
    registry = FailureRegistry(scenario.name)
    rows = []
    stratum_statistics = None
    samples = None
    for outcome in sorted(outcomes, key=lambda o: o.replication):
        if outcome.succeeded:
            rows.append((outcome.replication, *outcome.estimates.as_tuple()))
        else:
            logger.debug(
                "Scenario '%s' replication %d failed: %s: %s",
                scenario.name, outcome.replication,
                outcome.error_type, outcome.error_message,
            )
            registry.collect(outcome.replication, outcome.error_type, outcome.error_message)
        if outcome.stratum_statistics is not None:
            stratum_statistics = outcome.stratum_statistics
            samples = outcome.samples

    estimates = pd.DataFrame(rows, columns=ESTIMATE_COLUMNS)
    n_failed = registry.n_failed
    registry.flush(total_replications=scenario.replications)

    failure_rate = n_failed / scenario.replications
    if estimates.empty or failure_rate > failure_threshold:
        msg = (
            f"Scenario '{scenario.name}' is unreliable: {n_failed}/{scenario.replications} "
            f"replications failed ({failure_rate:.1%} > {failure_threshold:.1%}); "
            f"bias/variance/MSE withheld"
        )
        logger.warning(msg)
        warnings.warn(msg, UnreliableScenarioWarning, stacklevel=2)
        status = STATUS_UNRELIABLE
        summaries = None
    else:
        status = STATUS_DONE
        summaries = {
            name: summarize_estimates(estimates[name].to_numpy(), true_value)
            for name in ESTIMATOR_NAMES
        }
        logger.info(
            "Scenario '%s' done: MSE neyman=%.6g wang_xu=%.6g proposed=%.6g",
            scenario.name, summaries['neyman'].mse,
            summaries['wang_xu'].mse, summaries['proposed'].mse,
        )

    _set_state(scenario, ScenarioState.DONE)
    return ScenarioResult(
        scenario=scenario,
        index=scenario_index,
        status=status,
        true_value=true_value,
        summaries=summaries,
        estimates=estimates,
        n_requested=scenario.replications,
        n_failed=n_failed,
        stratum_statistics=stratum_statistics,
        samples=samples,
        failures=registry.get_diagnostics(),
    )


def _failed_result(scenario: Scenario, index: int, error: StratContamError) -> ScenarioResult:
    return ScenarioResult(
        scenario=scenario,
        index=index,
        status=STATUS_FAILED,
        true_value=scenario.effective_true_value(),
        summaries=None,
        estimates=pd.DataFrame(columns=ESTIMATE_COLUMNS),
        n_requested=scenario.replications,
        n_failed=scenario.replications,
        error=f"{type(error).__name__}: {error}",
    )


def run_experiment(config: ExperimentConfig) -> ExperimentResults:
    """
    Run every scenario of ``config`` in declared order.

    A scenario that raises a package error is recorded with status
    ``'failed'``; the remaining scenarios still run.

    Parameters
    ----------
    config : ExperimentConfig
        Scenarios and run settings.

    Returns
    -------
    ExperimentResults
    """
    if not isinstance(config, ExperimentConfig):
        raise InvalidParameterError(
            f"Expected an ExperimentConfig, got {type(config).__name__}"
        )
    logger.info(
        "Starting experiment: %d scenario(s), seed=%d, trim_weight=%g, n_jobs=%d",
        len(config.scenarios), config.seed, config.trim_weight, config.n_jobs,
    )

    pool = None
    if config.n_jobs > 1:
        from multiprocessing import get_context

        pool = get_context("spawn").Pool(processes=config.n_jobs)

    results = []
    try:
        for index, scenario in enumerate(config.scenarios):
            try:
                result = run_scenario(
                    scenario,
                    index,
                    trim_weight=config.trim_weight,
                    seed=config.seed,
                    failure_threshold=config.failure_threshold,
                    n_jobs=config.n_jobs,
                    diagnostic_replication=config.diagnostic_replication,
                    neyman_source=config.neyman_source,
                    _pool=pool,
                )
            except StratContamError as e:
                _set_state(scenario, ScenarioState.FAILED)
                logger.warning("Scenario %d '%s' failed: %s", index, scenario.name, e)
                result = _failed_result(scenario, index, e)
            results.append(result)
    finally:
        if pool is not None:
            pool.close()
            pool.join()

    logger.info(
        "Experiment finished: %d done, %d unreliable, %d failed",
        sum(r.status == STATUS_DONE for r in results),
        sum(r.status == STATUS_UNRELIABLE for r in results),
        sum(r.status == STATUS_FAILED for r in results),
    )
    return ExperimentResults(results, config)
