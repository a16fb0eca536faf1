import pandas as pd
import numpy as np
import pytest
from forest_tools.model import GrowthModel, Model, ParameterSet, PARAMETER_NAMES
from forest_tools.utils.results import MetricResult, RowResult
from forest_tools.utils.errors import InvalidParameter, DesignMismatch
from forest_tools.ode import IntegratorConfig
from forest_tools.sa import SensitivityAnalysisConfig


nominal = {'r': 0.01, 'K': 250.0, 'g': 2.0, 'canopy_threshold': 50.0}


def test_model_inheritance():
    assert issubclass(GrowthModel, Model)


def test_parameter_set_from_dict_keeps_names():
    params = ParameterSet.from_dict(nominal)
    assert params.to_dict() == nominal
    assert tuple(params.to_dict()) == PARAMETER_NAMES


def test_parameter_set_from_dict_rejects_wrong_keys():
    with pytest.raises(DesignMismatch):
        ParameterSet.from_dict({'r': 0.01, 'K': 250.0, 'g': 2.0})
    with pytest.raises(DesignMismatch):
        ParameterSet.from_dict({**nominal, 'extra': 1.0})


def test_derivative_regimes():
    params = ParameterSet(**nominal)
    assert GrowthModel.derivative(0.0, 10.0, params) == pytest.approx(0.1)
    # At the threshold the linear regime applies
    assert GrowthModel.derivative(0.0, 50.0, params) == pytest.approx(2.0 * (1 - 50.0 / 250.0))
    assert GrowthModel.derivative(0.0, 250.0, params) == pytest.approx(0.0)
    assert GrowthModel.derivative(0.0, 300.0, params) < 0


def test_derivative_rejects_invalid_parameters():
    with pytest.raises(InvalidParameter):
        GrowthModel.derivative(0.0, 10.0, ParameterSet(0.01, 0.0, 2.0, 50.0))
    with pytest.raises(InvalidParameter):
        GrowthModel.derivative(0.0, 10.0, ParameterSet(0.01, 250.0, 2.0, -1.0))


def test_run_returns_trajectory():
    model = GrowthModel(initial_state=10.0, times=range(1, 101))
    out = model.run(nominal)
    assert isinstance(out, pd.DataFrame)
    assert len(out) == 100
    assert out['time'].iloc[0] == 1.0


def test_run_rejects_non_finite_parameters():
    model = GrowthModel(times=range(1, 11))
    with pytest.raises(InvalidParameter):
        model.run({**nominal, 'g': np.nan})


def test_evaluate_model_returns_metrics():
    model = GrowthModel()
    metrics = model.evaluate_model(model.run(nominal))
    assert isinstance(metrics, MetricResult)
    # Monotone trajectory peaks at the last time
    assert metrics.peak_time == 300.0
    assert metrics.peak_value > metrics.mean_value


def test_evaluate_row_captures_model_errors():
    model = GrowthModel(times=range(1, 11))
    res = model.evaluate_row(3, {**nominal, 'K': -5.0})
    assert isinstance(res, RowResult)
    assert res.row == 3
    assert not res.valid
    assert res.metrics is None
    assert res.error.kind == 'InvalidParameter'


def test_evaluate_row_propagates_design_errors():
    model = GrowthModel(times=range(1, 11))
    with pytest.raises(DesignMismatch):
        model.evaluate_row(0, {'r': 0.01})


def test_run_parallel_keeps_input_order():
    model = GrowthModel(times=range(1, 51))
    rows = [{**nominal, 'r': r} for r in (0.0, 0.01, 0.02, 0.03)]
    rows.insert(2, {**nominal, 'K': -1.0})

    res = model.run_parallel(rows, workers=3, progress=False)

    assert [r.row for r in res] == list(range(5))
    assert not res[2].valid
    peaks = [r.metrics.peak_value for r in res if r.valid]
    assert peaks == sorted(peaks)
    assert peaks[0] == pytest.approx(10.0)


def test_malformed_settings_rejected_at_construction():
    with pytest.raises(ValueError):
        GrowthModel(times=[1.0, 3.0, 2.0])
    with pytest.raises(ValueError):
        GrowthModel(times=[])
    with pytest.raises(ValueError):
        GrowthModel(initial_state=np.inf)
    with pytest.raises(ValueError):
        GrowthModel(times=[1.0, 2.0], t0=1.5)
    with pytest.raises(ValueError):
        GrowthModel(integrator=IntegratorConfig(method="Euler"))


def test_from_config_uses_config_settings():
    config = SensitivityAnalysisConfig.from_dict({
        'space': {name: ['normal', [1.0, 0.1]] for name in PARAMETER_NAMES},
        'initial_state': 5.0,
        'times': {'start': 0, 'stop': 10, 'step': 2},
        'integrator': {'method': 'DOP853'},
    })
    model = GrowthModel.from_config(config)

    assert model.initial_state == 5.0
    assert model.times.tolist() == [0.0, 2.0, 4.0, 6.0, 8.0, 10.0]
    assert model.integrator.method == 'DOP853'
