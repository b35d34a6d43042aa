"""Tests for the exception and warning hierarchies.

This module verifies the inheritance structure and catching behavior of the
classes defined in ``exceptions.py`` and ``warnings_categories.py``.
"""

import warnings

import pytest

from stratcontam.exceptions import (
    ConfigurationError,
    DegenerateStratumError,
    InsufficientDataError,
    InvalidInputError,
    InvalidParameterError,
    InvalidTrimWeightError,
    StratContamError,
)
from stratcontam.warnings_categories import (
    ReferenceValueWarning,
    ReplicationFailureWarning,
    StratContamWarning,
    UnreliableScenarioWarning,
)


class TestExceptionHierarchy:
    """Tests for the inheritance structure of exception classes."""

    def test_base_exception(self):
        """Check that ``StratContamError`` is the base class for all package errors."""
        assert issubclass(StratContamError, Exception)
        with pytest.raises(StratContamError):
            raise StratContamError("Test error")

    @pytest.mark.parametrize('cls', [
        InvalidParameterError,
        ConfigurationError,
        InvalidInputError,
        DegenerateStratumError,
        InvalidTrimWeightError,
        InsufficientDataError,
    ])
    def test_all_inherit_from_base(self, cls):
        assert issubclass(cls, StratContamError)

    def test_configuration_error_is_parameter_error(self):
        # ConfigurationError → InvalidParameterError
        assert issubclass(ConfigurationError, InvalidParameterError)

    def test_degenerate_is_input_error(self):
        # DegenerateStratumError → InvalidInputError
        assert issubclass(DegenerateStratumError, InvalidInputError)
        assert not issubclass(DegenerateStratumError, InvalidParameterError)

    def test_trim_weight_error_caught_both_ways(self):
        """Configuration-time and estimation-time handlers both catch it."""
        with pytest.raises(InvalidParameterError):
            raise InvalidTrimWeightError("empty slice")
        with pytest.raises(InvalidInputError):
            raise InvalidTrimWeightError("empty slice")

    def test_insufficient_data_is_not_input_error(self):
        assert not issubclass(InsufficientDataError, InvalidInputError)


class TestWarningHierarchy:

    @pytest.mark.parametrize('cls', [
        ReplicationFailureWarning,
        UnreliableScenarioWarning,
        ReferenceValueWarning,
    ])
    def test_inherit_from_base(self, cls):
        assert issubclass(cls, StratContamWarning)
        assert issubclass(cls, UserWarning)

    def test_selective_filtering(self):
        with warnings.catch_warnings(record=True) as caught:
            warnings.simplefilter('always')
            warnings.filterwarnings('ignore', category=ReplicationFailureWarning)
            warnings.warn("dropped", ReplicationFailureWarning)
            warnings.warn("kept", UnreliableScenarioWarning)
        assert [str(w.message) for w in caught] == ["kept"]
