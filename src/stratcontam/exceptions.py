"""
Exception Classes Module

Defines the exception hierarchy for the stratcontam package.
"""


class StratContamError(Exception):
    """
    Base exception class for all stratcontam package errors.

    All custom exceptions in the stratcontam package inherit from this class,
    allowing users to catch any package-specific error with:

        try:
            results = run_experiment(config)
        except StratContamError as e:
            print(f"stratcontam error: {e}")
    """
    pass


class InvalidParameterError(StratContamError):
    """
    Exception raised when configuration parameter validation fails.

    Raised eagerly, before any random draws, when a scenario or experiment
    is constructed. Common triggers include:

    - Non-positive stratum size or standard deviation
    - Outlier proportion outside [0, 1]
    - Trim weight outside [0, 0.5)
    - Non-positive replication count or ``n_jobs``
    - Stratum weights that do not sum to one

    See Also
    --------
    InvalidTrimWeightError : Trim weight that leaves no observations.
    ConfigurationError : Malformed configuration mapping or file.
    """
    pass


class ConfigurationError(InvalidParameterError):
    """
    Exception raised when a configuration mapping or file is malformed.

    Trigger conditions include missing required keys (``scenarios``,
    ``strata``, ``size``, ``mean``, ``sd``), values of the wrong type and
    unreadable TOML files.

    See Also
    --------
    stratcontam.scenario.ExperimentConfig.from_dict : Builds a config from a mapping.
    stratcontam.scenario.load_config : Loads a config from a TOML file.
    """
    pass


class InvalidInputError(StratContamError):
    """
    Exception raised when estimator input violates a precondition.

    Estimators never return NaN or infinite values silently; any input that
    would make the estimate undefined raises this error (or a subclass).

    See Also
    --------
    DegenerateStratumError : Zero standard deviation at estimation time.
    InvalidTrimWeightError : Trimming leaves an empty slice.
    """
    pass


class DegenerateStratumError(InvalidInputError):
    """
    Exception raised when a clean stratum has zero spread.

    The Weighted-Hybrid estimator scales distances by the clean stratum's
    standard deviation; ``sd_h == 0`` makes the weights undefined.

    See Also
    --------
    stratcontam.estimators.weighted_hybrid_estimate : Raises this error.
    """
    pass


class InvalidTrimWeightError(InvalidParameterError, InvalidInputError):
    """
    Exception raised when symmetric trimming would discard every value.

    Trigger condition: ``2 * round(trim_weight * n) >= n`` for a stratum of
    length ``n``. Detected at scenario construction time where the stratum
    sizes are known, and again by the estimator itself.

    Examples
    --------
    >>> trimmed_hybrid_estimate([np.array([1.0, 2.0])], [1.0], trim_weight=0.49)  # doctest: +SKIP
    InvalidTrimWeightError: trim_weight=0.49 removes 1 value(s) from each tail of a stratum with 2 value(s)
    """
    pass


class InsufficientDataError(StratContamError):
    """
    Exception raised when a stratum holds too few values for an operation.

    Trigger conditions include:

    - More outliers than clean values to replace
    - A proportional allocation larger than the stratum it is drawn from
    - Fewer than two clean values when a standard deviation is required
    """
    pass
