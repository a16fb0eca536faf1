import os
import pytest
from forest_tools.sa import SensitivityAnalysisConfig
from forest_tools.sa.config import parse_times
from forest_tools.ode import IntegratorConfig
from forest_tools.utils.errors import DesignMismatch


config_file = os.path.join(os.path.dirname(__file__), "data", "sa_config.json")


def test_from_json():
    config = SensitivityAnalysisConfig.from_json(config_file)
    config.validate()

    assert set(config.space) == {'r', 'K', 'g', 'canopy_threshold'}
    assert config.space['K'].parameters == (250.0, 50.0)
    assert config.metric.names == ['peak_value', 'mean_value']
    assert len(config.times) == 300
    assert config.times[0] == 1.0 and config.times[-1] == 300.0
    assert config.n_bootstrap == 100
    assert isinstance(config.integrator, IntegratorConfig)
    assert config.space.means()['K'] == pytest.approx(250.0)


def test_to_json_round_trip_and_no_overwrite(tmp_path):
    config = SensitivityAnalysisConfig.from_json(config_file)
    outfile = tmp_path / "config.json"
    config.to_json(outfile)

    loaded = SensitivityAnalysisConfig.from_json(outfile)
    assert loaded.to_dict() == config.to_dict()

    with pytest.raises(FileExistsError):
        config.to_json(outfile)


def test_bootstrap_defaults_to_sample_count():
    config = SensitivityAnalysisConfig.from_json(config_file)
    config.bootstrap = None
    assert config.n_bootstrap == config.samples


def test_parse_times():
    assert parse_times({'start': 0, 'stop': 1, 'step': 0.25}) == [0.0, 0.25, 0.5, 0.75, 1.0]
    assert parse_times([1, 2, 4]) == [1.0, 2.0, 4.0]
    with pytest.raises(ValueError):
        parse_times({'start': 0, 'stop': 1, 'step': 0})


@pytest.mark.parametrize("field, value", [
    ("samples", 0),
    ("bootstrap", -1),
    ("conf_level", 1.0),
    ("workers", 0),
    ("executor", "cluster"),
    ("engine", "grid"),
    ("times", [1.0, 3.0, 2.0]),
    ("times", []),
])
def test_validate_rejects_malformed_values(field, value):
    config = SensitivityAnalysisConfig.from_json(config_file)
    setattr(config, field, value)
    with pytest.raises(ValueError):
        config.validate()


def test_validate_rejects_missing_parameter():
    config = SensitivityAnalysisConfig.from_json(config_file)
    del config.space['canopy_threshold']
    with pytest.raises(DesignMismatch):
        config.validate()


def test_integrator_config_validate():
    with pytest.raises(ValueError):
        IntegratorConfig(method="Euler").validate()
    with pytest.raises(ValueError):
        IntegratorConfig(rtol=0).validate()
