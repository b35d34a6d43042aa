"""
Population generation tests.

Outliers replace clean values rather than being appended, so the mixed
stratum keeps the clean stratum's length for every outlier proportion.
"""

import numpy as np
import pytest

from stratcontam.exceptions import InsufficientDataError, InvalidParameterError
from stratcontam.generation import (
    generate_clean,
    generate_outliers,
    inject_outliers,
    outlier_count,
    realize_population,
    realize_stratum,
)
from stratcontam.scenario import Scenario, StratumSpec


class TestGenerateClean:

    def test_length_and_moments(self, rng):
        values = generate_clean(StratumSpec(size=20000, mean=3.0, sd=2.0), rng)
        assert values.shape == (20000,)
        assert values.mean() == pytest.approx(3.0, abs=0.1)
        assert values.std(ddof=1) == pytest.approx(2.0, rel=0.05)

    def test_same_seed_same_draws(self):
        spec = StratumSpec(size=50, mean=0.0, sd=1.0)
        a = generate_clean(spec, np.random.default_rng(1))
        b = generate_clean(spec, np.random.default_rng(1))
        np.testing.assert_array_equal(a, b)


class TestGenerateOutliers:

    @pytest.mark.parametrize('proportion,size,expected', [
        (0.05, 100, 5),
        (0.1, 1000, 100),
        (0.2, 7, 1),
        (0.0, 500, 0),
        (1.0, 30, 30),
    ])
    def test_count(self, rng, proportion, size, expected):
        clean = rng.normal(size=size)
        assert outlier_count(proportion, size) == expected
        assert generate_outliers(clean, proportion, rng).size == expected

    def test_zero_proportion_empty(self, rng):
        outliers = generate_outliers(np.ones(10), 0.0, rng)
        assert outliers.size == 0
        assert outliers.dtype == float

    def test_centred_on_clean_mean(self, rng):
        clean = rng.normal(loc=50.0, scale=1.0, size=20000)
        outliers = generate_outliers(clean, 0.5, rng)
        # Median is robust for Cauchy draws.
        assert np.median(outliers) == pytest.approx(clean.mean(), abs=0.1)

    @pytest.mark.parametrize('proportion', [-0.1, 1.5])
    def test_invalid_proportion(self, rng, proportion):
        with pytest.raises(InvalidParameterError):
            generate_outliers(np.ones(10), proportion, rng)


class TestInjectOutliers:

    def test_length_preserved(self, rng):
        clean = rng.normal(size=100)
        outliers = np.full(10, 1e6)
        mixed = inject_outliers(clean, outliers, rng)
        assert mixed.size == clean.size

    def test_outliers_appended_and_distinct_removed(self, rng):
        clean = np.arange(100, dtype=float)
        outliers = np.array([-1.0, -2.0, -3.0])
        mixed = inject_outliers(clean, outliers, rng)
        np.testing.assert_array_equal(mixed[-3:], outliers)
        kept = mixed[:-3]
        # Three distinct clean values were removed; the rest survive once each.
        assert np.unique(kept).size == 97
        assert set(kept).issubset(set(clean))

    def test_no_outliers_returns_copy(self, rng):
        clean = rng.normal(size=10)
        mixed = inject_outliers(clean, np.empty(0), rng)
        np.testing.assert_array_equal(mixed, clean)
        assert mixed is not clean

    def test_full_replacement(self, rng):
        clean = rng.normal(size=5)
        outliers = np.arange(5, dtype=float)
        mixed = inject_outliers(clean, outliers, rng)
        np.testing.assert_array_equal(mixed, outliers)

    def test_too_many_outliers(self, rng):
        with pytest.raises(InsufficientDataError, match="Cannot replace 4"):
            inject_outliers(np.ones(3), np.zeros(4), rng)


class TestRealize:

    @pytest.mark.parametrize('proportion', [0.0, 0.05, 0.2, 1.0])
    def test_mixed_length_equals_clean(self, rng, proportion):
        spec = StratumSpec(size=137, mean=1.0, sd=2.0)
        realization = realize_stratum(spec, proportion, rng)
        assert realization.size == 137
        assert realization.mixed_values.size == realization.clean_values.size
        assert realization.outlier_count == outlier_count(proportion, 137)

    def test_zero_proportion_same_multiset(self, rng):
        realization = realize_stratum(StratumSpec(size=40, mean=0.0, sd=1.0), 0.0, rng)
        np.testing.assert_array_equal(
            np.sort(realization.mixed_values), np.sort(realization.clean_values)
        )

    def test_population_in_stratum_order(self, small_scenario, rng):
        population = realize_population(small_scenario, rng)
        assert len(population) == small_scenario.n_strata
        assert [r.size for r in population] == list(small_scenario.sizes)

    def test_population_reproducible(self, small_scenario):
        a = realize_population(small_scenario, np.random.default_rng(3))
        b = realize_population(small_scenario, np.random.default_rng(3))
        for ra, rb in zip(a, b):
            np.testing.assert_array_equal(ra.mixed_values, rb.mixed_values)

    def test_single_value_stratum(self, rng):
        scenario = Scenario(
            outlier_proportion=1.0,
            strata=(StratumSpec(size=1, mean=0.0, sd=1.0),),
        )
        (realization,) = realize_population(scenario, rng)
        assert realization.size == 1
        assert realization.outlier_count == 1
