"""
End-to-end checks on the reference scenarios.

These run the reference population sizes and are marked slow.
"""

import warnings

import numpy as np
import pytest

from stratcontam import reference_config, run_experiment, run_scenario
from stratcontam.scenario import FIVE_STRATA, THREE_STRATA, Scenario
from stratcontam.warnings_categories import StratContamWarning


@pytest.mark.slow
class TestReferenceScenarios:

    def test_three_strata_robust_estimators_beat_neyman(self, reference_scenario):
        result = run_scenario(reference_scenario, seed=20240101)
        assert result.status == 'done'
        neyman = result.summaries['neyman']
        assert neyman.variance > result.summaries['wang_xu'].variance
        assert neyman.variance > result.summaries['proposed'].variance

    def test_three_strata_trimmed_close_to_truth(self, reference_scenario):
        result = run_scenario(reference_scenario, seed=7)
        proposed = result.summaries['proposed']
        # Symmetric contamination around the clean mean keeps the trimmed mean centred.
        assert abs(proposed.bias) < 0.05
        assert proposed.variance < 0.01

    def test_five_strata(self):
        scenario = Scenario(outlier_proportion=0.1, strata=FIVE_STRATA, replications=30)
        result = run_scenario(scenario, seed=11)
        assert result.status == 'done'
        assert result.true_value == pytest.approx(
            np.dot(scenario.stratum_weights(), [s.mean for s in FIVE_STRATA])
        )
        assert result.summaries['proposed'].mse < result.summaries['neyman'].mse

    def test_full_grid_small_replications(self):
        with warnings.catch_warnings():
            warnings.simplefilter('error', StratContamWarning)
            results = run_experiment(reference_config(replications=5, seed=3))
        table = results.summary_table()
        assert len(table) == 6 * 3
        assert (table['status'] == 'done').all()
        assert table['n_failed'].eq(0).all()
        assert results[0].scenario.strata == THREE_STRATA
