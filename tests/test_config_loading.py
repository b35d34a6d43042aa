"""
Tests for mapping/TOML config loading and the reference scenario grid.
"""

import numpy as np
import pytest

from stratcontam.exceptions import ConfigurationError, InvalidParameterError
from stratcontam.scenario import (
    FIVE_STRATA,
    THREE_STRATA,
    ExperimentConfig,
    load_config,
    reference_config,
    reference_scenarios,
)


def _minimal_mapping(**options):
    data = {
        'scenarios': [
            {
                'outlier_proportion': 0.1,
                'replications': 5,
                'strata': [
                    {'size': 100, 'mean': 0.0, 'sd': 1.0},
                    {'size': 300, 'mean': 2.0, 'sd': 3.0},
                ],
            },
        ],
    }
    data.update(options)
    return data


class TestFromDict:

    def test_minimal(self):
        config = ExperimentConfig.from_dict(_minimal_mapping())
        assert len(config.scenarios) == 1
        scenario = config.scenarios[0]
        assert scenario.outlier_proportion == 0.1
        assert scenario.replications == 5
        assert scenario.sizes == (100, 300)
        assert config.trim_weight == 0.05

    def test_options_forwarded(self):
        config = ExperimentConfig.from_dict(
            _minimal_mapping(seed=7, trim_weight=0.1, n_jobs=2, neyman_source='clean')
        )
        assert config.seed == 7
        assert config.trim_weight == 0.1
        assert config.n_jobs == 2
        assert config.neyman_source == 'clean'

    def test_scenario_optional_keys(self):
        data = _minimal_mapping()
        data['scenarios'][0].update(name='custom', true_value=1.5, sample_size=40)
        scenario = ExperimentConfig.from_dict(data).scenarios[0]
        assert scenario.name == 'custom'
        assert scenario.true_value == 1.5
        assert scenario.sample_size == 40

    def test_replications_default(self):
        data = _minimal_mapping()
        del data['scenarios'][0]['replications']
        assert ExperimentConfig.from_dict(data).scenarios[0].replications == 100

    def test_missing_scenarios(self):
        with pytest.raises(ConfigurationError, match="'scenarios'"):
            ExperimentConfig.from_dict({'seed': 1})

    def test_unknown_key(self):
        with pytest.raises(ConfigurationError, match="Unknown config key"):
            ExperimentConfig.from_dict(_minimal_mapping(trim=0.1))

    def test_not_a_mapping(self):
        with pytest.raises(ConfigurationError):
            ExperimentConfig.from_dict([1, 2, 3])

    def test_missing_stratum_key(self):
        data = _minimal_mapping()
        del data['scenarios'][0]['strata'][1]['sd']
        with pytest.raises(ConfigurationError, match="stratum 1"):
            ExperimentConfig.from_dict(data)

    def test_missing_outlier_proportion(self):
        data = _minimal_mapping()
        del data['scenarios'][0]['outlier_proportion']
        with pytest.raises(ConfigurationError, match="outlier_proportion"):
            ExperimentConfig.from_dict(data)

    def test_invalid_values_still_validated(self):
        data = _minimal_mapping()
        data['scenarios'][0]['strata'][0]['sd'] = 0
        with pytest.raises(InvalidParameterError, match="sd must be positive"):
            ExperimentConfig.from_dict(data)

    def test_configuration_error_is_parameter_error(self):
        assert issubclass(ConfigurationError, InvalidParameterError)


class TestLoadConfig:

    def test_load_toml(self, tmp_path):
        path = tmp_path / 'experiment.toml'
        path.write_text(
            'seed = 99\n'
            'trim_weight = 0.1\n'
            '\n'
            '[[scenarios]]\n'
            'outlier_proportion = 0.05\n'
            'replications = 10\n'
            'strata = [\n'
            '    { size = 500, mean = 1.0, sd = 2.0 },\n'
            '    { size = 500, mean = 2.0, sd = 4.0 },\n'
            ']\n'
            '\n'
            '[[scenarios]]\n'
            'outlier_proportion = 0.2\n'
            'name = "heavy"\n'
            'strata = [{ size = 1000, mean = 0.0, sd = 1.0 }]\n'
        )
        config = load_config(str(path))
        assert config.seed == 99
        assert config.trim_weight == 0.1
        assert [s.name for s in config.scenarios] == ['p=0.05, H=2', 'heavy']
        assert config.scenarios[1].n_strata == 1

    def test_malformed_toml(self, tmp_path):
        path = tmp_path / 'broken.toml'
        path.write_text('seed = = 3\n')
        with pytest.raises(ConfigurationError, match="Could not parse"):
            load_config(str(path))

    def test_missing_file(self, tmp_path):
        with pytest.raises(ConfigurationError, match="Could not read") as excinfo:
            load_config(str(tmp_path / 'absent.toml'))
        assert isinstance(excinfo.value.__cause__, FileNotFoundError)

    def test_invalid_utf8(self, tmp_path):
        path = tmp_path / 'latin1.toml'
        path.write_bytes(b'name = "caf\xe9"\n')
        with pytest.raises(ConfigurationError, match="Could not parse") as excinfo:
            load_config(str(path))
        assert isinstance(excinfo.value.__cause__, UnicodeDecodeError)


class TestReferenceGrid:

    def test_six_scenarios(self):
        scenarios = reference_scenarios()
        assert len(scenarios) == 6
        assert [s.n_strata for s in scenarios] == [3, 3, 3, 5, 5, 5]
        assert [s.outlier_proportion for s in scenarios] == [0.05, 0.1, 0.2] * 2
        assert all(s.replications == 100 for s in scenarios)

    def test_three_strata_parameters(self):
        assert [s.size for s in THREE_STRATA] == [32145, 28734, 39121]
        assert [s.mean for s in THREE_STRATA] == [1.0, 1.5, 2.0]
        assert [s.sd for s in THREE_STRATA] == [2.0, 3.0, 4.0]
        assert sum(s.size for s in THREE_STRATA) == 100000

    def test_five_strata_parameters(self):
        assert [s.mean for s in FIVE_STRATA] == [1.0, 1.5, 2.0, 2.5, 3.0]
        assert [s.sd for s in FIVE_STRATA] == [2.0, 3.0, 4.0, 5.0, 6.0]

    def test_weights_sum_to_one(self):
        for scenario in reference_scenarios():
            np.testing.assert_allclose(scenario.stratum_weights().sum(), 1.0, atol=1e-12)

    def test_reference_config_options(self):
        config = reference_config(replications=10, seed=5, trim_weight=0.1)
        assert len(config.scenarios) == 6
        assert config.scenarios[0].replications == 10
        assert config.seed == 5
        assert config.trim_weight == 0.1
