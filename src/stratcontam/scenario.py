"""
Scenario configuration for stratcontam experiments.

Stratum specifications, scenarios, experiment settings, the reference
scenario grid and TOML/mapping loading utilities. All configuration objects
are frozen dataclasses validated at construction time, so an invalid grid
fails before any random draws.
"""

import math
import tomllib
from dataclasses import dataclass
from typing import Any, List, Mapping, Optional, Sequence, Tuple

import numpy as np

from .exceptions import ConfigurationError, InvalidParameterError
from .validation import (
    validate_failure_threshold,
    validate_outlier_proportion,
    validate_positive_int,
    validate_sample_size,
    validate_source,
    validate_stratum_parameters,
    validate_trim_against_sizes,
    validate_trim_weight,
)


DEFAULT_TRIM_WEIGHT = 0.05
DEFAULT_SEED = 20240101
DEFAULT_FAILURE_THRESHOLD = 0.1
DEFAULT_REPLICATIONS = 100


@dataclass(frozen=True)
class StratumSpec:
    """
    Generative parameters of one stratum.

    Attributes
    ----------
    size : int
        Number of population units. Its share of the scenario total is the
        stratum's sampling proportion.
    mean : float
        Mean of the clean normal distribution.
    sd : float
        Standard deviation of the clean normal distribution.
    """
    size: int
    mean: float
    sd: float

    def __post_init__(self):
        size, mean, sd = validate_stratum_parameters(self.size, self.mean, self.sd)
        object.__setattr__(self, 'size', size)
        object.__setattr__(self, 'mean', mean)
        object.__setattr__(self, 'sd', sd)


@dataclass(frozen=True)
class Scenario:
    """
    One cell of the experiment grid.

    Attributes
    ----------
    outlier_proportion : float
        Share of each stratum replaced by outliers, in [0, 1].
    strata : tuple of StratumSpec
        Strata in a fixed order; strata are addressed by position.
    replications : int
        Number of Monte Carlo replications.
    true_value : float, optional
        Reference population mean used for bias. Defaults to the
        stratum-weighted sum of stratum means.
    name : str, optional
        Display label. Defaults to ``"p=<proportion>, H=<n_strata>"``.
    sample_size : int, optional
        When set, the diagnostic replication also draws proportional clean
        and mixed samples of this size.
    """
    outlier_proportion: float
    strata: Tuple[StratumSpec, ...]
    replications: int = DEFAULT_REPLICATIONS
    true_value: Optional[float] = None
    name: Optional[str] = None
    sample_size: Optional[int] = None

    def __post_init__(self):
        object.__setattr__(
            self, 'outlier_proportion',
            validate_outlier_proportion(self.outlier_proportion),
        )
        strata = tuple(self.strata)
        if not strata:
            raise InvalidParameterError("A scenario needs at least one stratum")
        for spec in strata:
            if not isinstance(spec, StratumSpec):
                raise InvalidParameterError(
                    f"strata must contain StratumSpec instances. Got: {type(spec).__name__}"
                )
        object.__setattr__(self, 'strata', strata)
        object.__setattr__(
            self, 'replications',
            validate_positive_int(self.replications, 'replications'),
        )
        if self.true_value is not None:
            value = float(self.true_value)
            if not math.isfinite(value):
                raise InvalidParameterError(f"true_value must be finite. Got: {value}")
            object.__setattr__(self, 'true_value', value)
        if self.sample_size is not None:
            object.__setattr__(
                self, 'sample_size',
                validate_sample_size(self.sample_size, self.sizes),
            )
        if self.name is None:
            object.__setattr__(
                self, 'name', f"p={self.outlier_proportion:g}, H={len(strata)}"
            )

    @property
    def n_strata(self) -> int:
        return len(self.strata)

    @property
    def sizes(self) -> Tuple[int, ...]:
        return tuple(spec.size for spec in self.strata)

    @property
    def total_population_size(self) -> int:
        return sum(self.sizes)

    def stratum_weights(self) -> np.ndarray:
        """Population proportions ``size_h / total_population_size``."""
        sizes = np.asarray(self.sizes, dtype=float)
        return sizes / sizes.sum()

    def reference_mean(self) -> float:
        """Stratum-weighted sum of the generative stratum means."""
        means = np.array([spec.mean for spec in self.strata], dtype=float)
        return float(np.dot(self.stratum_weights(), means))

    def effective_true_value(self) -> float:
        """The supplied ``true_value`` if any, else :meth:`reference_mean`."""
        if self.true_value is not None:
            return self.true_value
        return self.reference_mean()

    def true_value_mismatch(self) -> Optional[float]:
        """
        Difference between the supplied true value and the reference mean.

        Returns None when no value was supplied or the two agree.
        """
        if self.true_value is None:
            return None
        reference = self.reference_mean()
        if math.isclose(self.true_value, reference, rel_tol=1e-9, abs_tol=1e-12):
            return None
        return self.true_value - reference


@dataclass(frozen=True)
class ExperimentConfig:
    """
    Settings for a full experiment run.

    Attributes
    ----------
    scenarios : tuple of Scenario
        Scenarios in the order they are run and reported.
    trim_weight : float, default 0.05
        Share of each tail dropped by the Trimmed-Hybrid estimator.
    seed : int
        Top-level seed; replication streams derive from it together with
        the scenario and replication indices.
    failure_threshold : float, default 0.1
        Failure rate above which a scenario is reported as unreliable.
    n_jobs : int, default 1
        Worker processes for replications. 1 runs sequentially.
    diagnostic_replication : int, default 0
        Replication whose per-stratum statistics are kept.
    neyman_source : {'mixed', 'clean'}, default 'mixed'
        Realization fed to the Neyman estimator.
    """
    scenarios: Tuple[Scenario, ...]
    trim_weight: float = DEFAULT_TRIM_WEIGHT
    seed: int = DEFAULT_SEED
    failure_threshold: float = DEFAULT_FAILURE_THRESHOLD
    n_jobs: int = 1
    diagnostic_replication: int = 0
    neyman_source: str = 'mixed'

    def __post_init__(self):
        scenarios = tuple(self.scenarios)
        if not scenarios:
            raise InvalidParameterError("An experiment needs at least one scenario")
        for scenario in scenarios:
            if not isinstance(scenario, Scenario):
                raise InvalidParameterError(
                    f"scenarios must contain Scenario instances. Got: {type(scenario).__name__}"
                )
        object.__setattr__(self, 'scenarios', scenarios)
        trim_weight = validate_trim_weight(self.trim_weight)
        object.__setattr__(self, 'trim_weight', trim_weight)
        for scenario in scenarios:
            validate_trim_against_sizes(trim_weight, scenario.sizes)
        if isinstance(self.seed, bool) or not isinstance(self.seed, int) or self.seed < 0:
            raise InvalidParameterError(
                f"seed must be a non-negative integer. Got: {self.seed!r}"
            )
        object.__setattr__(
            self, 'failure_threshold',
            validate_failure_threshold(self.failure_threshold),
        )
        object.__setattr__(self, 'n_jobs', validate_positive_int(self.n_jobs, 'n_jobs'))
        if (isinstance(self.diagnostic_replication, bool)
                or not isinstance(self.diagnostic_replication, int)
                or self.diagnostic_replication < 0):
            raise InvalidParameterError(
                f"diagnostic_replication must be a non-negative integer. "
                f"Got: {self.diagnostic_replication!r}"
            )
        object.__setattr__(
            self, 'neyman_source', validate_source(self.neyman_source, 'neyman_source')
        )

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> 'ExperimentConfig':
        """
        Build a config from a plain mapping.

        Expected format::

            {
                "trim_weight": 0.05,
                "seed": 123,
                "scenarios": [
                    {
                        "outlier_proportion": 0.05,
                        "replications": 100,
                        "strata": [
                            {"size": 32145, "mean": 1.0, "sd": 2.0},
                            ...
                        ]
                    },
                    ...
                ]
            }

        Every top-level key except ``scenarios`` is optional.
        """
        if not isinstance(data, Mapping):
            raise ConfigurationError(
                f"Config must be a mapping. Got: {type(data).__name__}"
            )
        if 'scenarios' not in data:
            raise ConfigurationError("Config is missing required key 'scenarios'")

        raw_scenarios = data['scenarios']
        if not isinstance(raw_scenarios, Sequence) or isinstance(raw_scenarios, str):
            raise ConfigurationError("'scenarios' must be a list of tables")
        scenarios = [_scenario_from_dict(item, i) for i, item in enumerate(raw_scenarios)]

        known = {
            'trim_weight', 'seed', 'failure_threshold', 'n_jobs',
            'diagnostic_replication', 'neyman_source',
        }
        unknown = set(data) - known - {'scenarios'}
        if unknown:
            raise ConfigurationError(f"Unknown config key(s): {sorted(unknown)}")
        options = {key: data[key] for key in known if key in data}
        return cls(scenarios=tuple(scenarios), **options)


def _scenario_from_dict(data: Any, index: int) -> Scenario:
    if not isinstance(data, Mapping):
        raise ConfigurationError(f"Scenario {index} must be a table")
    for key in ('outlier_proportion', 'strata'):
        if key not in data:
            raise ConfigurationError(f"Scenario {index} is missing required key '{key}'")
    raw_strata = data['strata']
    if not isinstance(raw_strata, Sequence) or isinstance(raw_strata, str):
        raise ConfigurationError(f"Scenario {index}: 'strata' must be a list of tables")

    strata: List[StratumSpec] = []
    for h, item in enumerate(raw_strata):
        if not isinstance(item, Mapping):
            raise ConfigurationError(f"Scenario {index}, stratum {h} must be a table")
        missing = [key for key in ('size', 'mean', 'sd') if key not in item]
        if missing:
            raise ConfigurationError(
                f"Scenario {index}, stratum {h} is missing key(s): {missing}"
            )
        strata.append(StratumSpec(size=item['size'], mean=item['mean'], sd=item['sd']))

    return Scenario(
        outlier_proportion=data['outlier_proportion'],
        strata=tuple(strata),
        replications=data.get('replications', DEFAULT_REPLICATIONS),
        true_value=data.get('true_value'),
        name=data.get('name'),
        sample_size=data.get('sample_size'),
    )


def load_config(path: str) -> ExperimentConfig:
    """
    Load an experiment config from a TOML file.

    The file mirrors :meth:`ExperimentConfig.from_dict`, with scenarios as
    an array of tables::

        seed = 123
        trim_weight = 0.05

        [[scenarios]]
        outlier_proportion = 0.05
        replications = 100
        strata = [
            { size = 32145, mean = 1.0, sd = 2.0 },
            { size = 28734, mean = 1.5, sd = 3.0 },
            { size = 39121, mean = 2.0, sd = 4.0 },
        ]
    """
    try:
        with open(path, 'rb') as f:
            data = tomllib.load(f)
    except (tomllib.TOMLDecodeError, UnicodeDecodeError) as e:
        raise ConfigurationError(f"Could not parse config file {path}: {e}") from e
    except OSError as e:
        raise ConfigurationError(f"Could not read config file {path}: {e}") from e
    return ExperimentConfig.from_dict(data)


# =============================================================================
# Reference grid
# =============================================================================

THREE_STRATA: Tuple[StratumSpec, ...] = (
    StratumSpec(size=32145, mean=1.0, sd=2.0),
    StratumSpec(size=28734, mean=1.5, sd=3.0),
    StratumSpec(size=39121, mean=2.0, sd=4.0),
)

FIVE_STRATA: Tuple[StratumSpec, ...] = (
    StratumSpec(size=18000, mean=1.0, sd=2.0),
    StratumSpec(size=21000, mean=1.5, sd=3.0),
    StratumSpec(size=24000, mean=2.0, sd=4.0),
    StratumSpec(size=17000, mean=2.5, sd=5.0),
    StratumSpec(size=20000, mean=3.0, sd=6.0),
)

REFERENCE_OUTLIER_PROPORTIONS: Tuple[float, ...] = (0.05, 0.10, 0.20)


def reference_scenarios(replications: int = DEFAULT_REPLICATIONS) -> Tuple[Scenario, ...]:
    """
    The reference grid: outlier proportions x stratum structures.

    Ordered by stratum structure (3 strata first), then by proportion.
    """
    scenarios = []
    for strata in (THREE_STRATA, FIVE_STRATA):
        for proportion in REFERENCE_OUTLIER_PROPORTIONS:
            scenarios.append(
                Scenario(
                    outlier_proportion=proportion,
                    strata=strata,
                    replications=replications,
                )
            )
    return tuple(scenarios)


def reference_config(replications: int = DEFAULT_REPLICATIONS, **options) -> ExperimentConfig:
    """Experiment config over :func:`reference_scenarios`."""
    return ExperimentConfig(scenarios=reference_scenarios(replications), **options)
