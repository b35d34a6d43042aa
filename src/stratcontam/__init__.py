"""
stratcontam: Stratified Mean Estimators Under Outlier Contamination
===================================================================

Monte Carlo engine comparing three estimators of a finite population mean
under stratified sampling when strata are contaminated with heavy-tailed
outliers.

Key Features
------------
- Synthetic stratified populations: normal strata with a controlled share
  of values replaced by t(1) (Cauchy) outliers centred on the stratum mean
- Proportional stratified sub-sampling from clean or contaminated strata
- Three estimators:

  * ``neyman``: stratified sample mean (baseline)
  * ``wang_xu``: Weighted-Hybrid, down-weights values far from the clean
    stratum mean relative to its spread
  * ``proposed``: Trimmed-Hybrid, symmetric trimmed mean per stratum

- Monte Carlo aggregation: bias, variance (divisor R) and MSE per scenario
  and estimator, with reproducible per-replication random streams and
  optional process-parallel execution
- Failure accounting: replications that hit an estimator precondition are
  counted, and scenarios above a failure threshold are flagged unreliable

Main Components
---------------
run_experiment : function
    Run every scenario of an ``ExperimentConfig``.
run_scenario : function
    Run a single ``Scenario``.
ExperimentResults : class
    Results container with ``summary_table()``, ``estimates()``,
    ``stratum_statistics()`` and ``summary()``.
Exception hierarchy : module
    Typed exceptions inheriting from ``StratContamError``.

Quick Start
-----------
>>> from stratcontam import reference_config, run_experiment
>>>
>>> config = reference_config(replications=100, seed=2024)
>>> results = run_experiment(config)
>>> print(results.summary())
>>> results.summary_table()
"""

from .estimators import (
    EstimateTriple,
    estimate_all,
    neyman_estimate,
    trimmed_hybrid_estimate,
    weighted_hybrid_estimate,
)
from .exceptions import (
    ConfigurationError,
    DegenerateStratumError,
    InsufficientDataError,
    InvalidInputError,
    InvalidParameterError,
    InvalidTrimWeightError,
    StratContamError,
)
from .generation import (
    StratumRealization,
    generate_clean,
    generate_outliers,
    inject_outliers,
    realize_population,
    realize_stratum,
)
from .montecarlo import run_experiment, run_scenario, summarize_estimates
from .results import EstimatorSummary, ExperimentResults, ScenarioResult
from .sampling import proportional_allocation, stratified_sample
from .scenario import (
    ExperimentConfig,
    Scenario,
    StratumSpec,
    load_config,
    reference_config,
    reference_scenarios,
)
from .warnings_categories import (
    ReferenceValueWarning,
    ReplicationFailureWarning,
    StratContamWarning,
    UnreliableScenarioWarning,
)

__all__ = [
    # Configuration
    'StratumSpec',
    'Scenario',
    'ExperimentConfig',
    'load_config',
    'reference_scenarios',
    'reference_config',
    # Generation and sampling
    'StratumRealization',
    'generate_clean',
    'generate_outliers',
    'inject_outliers',
    'realize_stratum',
    'realize_population',
    'proportional_allocation',
    'stratified_sample',
    # Estimators
    'EstimateTriple',
    'neyman_estimate',
    'weighted_hybrid_estimate',
    'trimmed_hybrid_estimate',
    'estimate_all',
    # Monte Carlo
    'run_scenario',
    'run_experiment',
    'summarize_estimates',
    # Results
    'EstimatorSummary',
    'ScenarioResult',
    'ExperimentResults',
    # Exception classes
    'StratContamError',
    'InvalidParameterError',
    'ConfigurationError',
    'InvalidInputError',
    'DegenerateStratumError',
    'InvalidTrimWeightError',
    'InsufficientDataError',
    # Warning classes
    'StratContamWarning',
    'ReplicationFailureWarning',
    'UnreliableScenarioWarning',
    'ReferenceValueWarning',
]

__version__ = '0.1.0'
