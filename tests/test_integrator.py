import numpy as np
import pandas as pd
import pytest
from forest_tools.model import GrowthModel, ParameterSet
from forest_tools.ode import integrate, IntegratorConfig
from forest_tools.ode import integrator
from scipy.integrate import RK45
from forest_tools.utils.errors import ConvergenceFailure, NumericalInstability


nominal = ParameterSet(r=0.01, K=250.0, g=2.0, canopy_threshold=50.0)


def closed_form(t):
    # Exponential up to the threshold, then exponential approach to K
    t_switch = 1 + np.log(5) / 0.01
    t = np.asarray(t, dtype=float)
    below = 10.0 * np.exp(0.01 * (t - 1))
    above = 250.0 - 200.0 * np.exp(-0.008 * (t - t_switch))
    return np.where(t < t_switch, below, above)


def test_nominal_matches_closed_form():
    times = np.arange(1, 301, dtype=float)
    out = integrate(GrowthModel.derivative, 10.0, times, nominal)

    assert list(out.columns) == ['time', 'state']
    assert np.allclose(out['state'], closed_form(times), rtol=1e-4, atol=1e-4)
    assert abs(out['state'].iloc[-1] - 183.6) < 0.5


def test_nominal_is_increasing_and_below_capacity():
    out = integrate(GrowthModel.derivative, 10.0, range(1, 301), nominal)
    states = out['state'].to_numpy()

    assert np.all(np.diff(states) > 0)
    assert np.all(states < nominal.K)


def test_long_horizon_approaches_capacity():
    out = integrate(GrowthModel.derivative, 10.0, np.arange(1, 5001), nominal)
    assert abs(out['state'].iloc[-1] - nominal.K) < 1e-2


def test_outputs_at_exact_requested_times():
    times = [1.0, 2.5, 7.0, 100.25, 250.0]
    out = integrate(GrowthModel.derivative, 10.0, times, nominal)

    assert out['time'].tolist() == times
    assert out['state'].iloc[0] == 10.0
    assert np.allclose(out['state'], closed_form(times), rtol=1e-4)


def test_earlier_initial_time():
    out = integrate(GrowthModel.derivative, 10.0, [1.0, 2.0], nominal, t0=0.0)
    assert np.allclose(out['state'], 10.0 * np.exp(0.01 * np.array([1.0, 2.0])), rtol=1e-5)


def test_initial_time_after_first_output_rejected():
    with pytest.raises(ValueError):
        integrate(GrowthModel.derivative, 10.0, [1.0, 2.0], nominal, t0=1.5)


def test_no_growth_stays_constant():
    params = ParameterSet(r=0.0, K=250.0, g=0.0, canopy_threshold=50.0)
    out = integrate(GrowthModel.derivative, 10.0, range(1, 51), params)
    assert np.allclose(out['state'], 10.0)


def test_empty_time_points():
    out = integrate(GrowthModel.derivative, 10.0, [], nominal)
    assert isinstance(out, pd.DataFrame)
    assert len(out) == 0
    assert list(out.columns) == ['time', 'state']


def test_non_increasing_time_points_rejected():
    with pytest.raises(ValueError):
        integrate(GrowthModel.derivative, 10.0, [1.0, 3.0, 2.0], nominal)
    with pytest.raises(ValueError):
        integrate(GrowthModel.derivative, 10.0, [1.0, 1.0], nominal)


@pytest.mark.parametrize("method", ["RK23", "RK45", "DOP853"])
def test_non_finite_derivative_raises_instability(method):

    def blows_up(t, y, params):
        return np.inf if t > 5 else 1.0

    config = IntegratorConfig(method=method)
    with pytest.raises(NumericalInstability) as info:
        integrate(blows_up, 0.0, range(1, 21), None, config=config)

    assert info.value.time <= 5
    assert np.isfinite(info.value.state)


def test_evaluation_budget_raises_convergence_failure():
    config = IntegratorConfig(max_evaluations=10)
    with pytest.raises(ConvergenceFailure):
        integrate(GrowthModel.derivative, 10.0, range(1, 301), nominal, config=config)


def test_step_below_minimum_raises_convergence_failure():
    config = IntegratorConfig(max_step=2.0, min_step=3.0)
    with pytest.raises(ConvergenceFailure):
        integrate(GrowthModel.derivative, 10.0, range(1, 301), nominal, config=config)


def test_non_finite_derivative_in_interpolant_raises_instability(monkeypatch):

    class RecheckingRK45(RK45):
        # Calls the derivative while building the interpolant, as DOP853 does
        def _dense_output_impl(self):
            self.fun(self.t, np.array([np.inf]))
            return super()._dense_output_impl()

    monkeypatch.setitem(integrator.METHODS, "RK45", RecheckingRK45)
    with pytest.raises(NumericalInstability):
        integrate(GrowthModel.derivative, 10.0, range(1, 11), nominal)


@pytest.mark.parametrize("params", [
    ParameterSet(r=0.01, K=250.0, g=-0.5, canopy_threshold=50.0),  # shrinking above
    ParameterSet(r=0.01, K=40.0, g=2.0, canopy_threshold=50.0),    # K below threshold
    ParameterSet(r=0.1, K=30.0, g=2.0, canopy_threshold=50.0),
])
def test_sliding_holds_state_on_threshold(params):
    times = np.arange(1, 301, dtype=float)
    config = IntegratorConfig(max_evaluations=20_000)
    out = integrate(GrowthModel.derivative, 10.0, times, params, config=config)
    states = out['state'].to_numpy()

    t_hit = 1 + np.log(params.canopy_threshold / 10.0) / params.r
    before = times < t_hit
    assert np.allclose(states[before], 10.0 * np.exp(params.r * (times[before] - 1)), rtol=1e-4)
    assert np.all(states[times > t_hit] == params.canopy_threshold)


def test_sliding_ends_when_upper_regime_turns_outward():

    def rate(t, y, params):
        if y < 0.5:
            return 1.0
        return -1.0 if t < 10 else 1.0

    times = np.arange(0, 16, dtype=float)
    out = integrate(rate, 0.0, times, None, boundary=0.5)
    states = out['state'].to_numpy()

    assert np.all(states[1:11] == 0.5)
    assert np.allclose(states[11:], 0.5 + (times[11:] - 10), rtol=1e-6)


def test_repeated_crossings_raise_convergence_failure():

    def oscillating(t, y, params):
        return np.cos(t)

    config = IntegratorConfig(max_switches=10)
    with pytest.raises(ConvergenceFailure):
        integrate(oscillating, 0.0, np.arange(0, 201, dtype=float), None, config=config, boundary=0.5)
