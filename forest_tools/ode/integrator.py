"""Adaptive integration of scalar ODEs with a switching right-hand side.

The growth model changes regime when the state crosses the canopy closure
threshold, so its derivative is discontinuous there. This module drives one
of SciPy's embedded Runge-Kutta pairs step by step and treats the threshold
as an event boundary: a step that crosses it is cut back to the crossing
time, located on the step's dense output, and integration restarts from
there in the new regime. Output values are interpolated from the dense
output at exactly the requested time points.

When both regimes push the state onto the threshold (the lower regime
grows, the upper one shrinks, e.g. g < 0 or K below the threshold) the
trajectory slides along it: the state is held on the threshold for as long
as that holds at the output times, then integration resumes.

Failure modes:
    - Non-finite derivative or state: NumericalInstability, carrying the
      last accepted (time, state).
    - Step size below the configured minimum, solver failure, exhausted
      evaluation budget, timeout or too many regime switches:
      ConvergenceFailure.

Typical usage example:

    from forest_tools.ode import integrate
    from forest_tools.model import GrowthModel, ParameterSet

    params = ParameterSet(r=0.01, K=250.0, g=2.0, canopy_threshold=50.0)
    trajectory = integrate(GrowthModel.derivative, 10.0, range(1, 301), params)
"""

from .config import IntegratorConfig
from forest_tools.utils.errors import ConvergenceFailure, NumericalInstability

# Solvers
from scipy.integrate import RK23, RK45, DOP853
from scipy.optimize import brentq

# Logging
import logging

# Data
import numpy as np
import pandas as pd
import time
from typing import Any, Callable, Optional


METHODS = {
    "RK23": RK23,
    "RK45": RK45,
    "DOP853": DOP853,
}


class _NonFinite(Exception):
    pass


class _GuardedDerivative:
    """Wraps a scalar derivative into the vector form SciPy expects and
    enforces the evaluation budget, the timeout and finiteness."""

    def __init__(
        self,
        derivative_fn: Callable[[float, float, Any], float],
        params: Any,
        config: IntegratorConfig
    ):
        self.derivative_fn = derivative_fn
        self.params = params
        self.max_evaluations = config.max_evaluations
        self.deadline = (
            time.monotonic() + config.timeout if config.timeout is not None else None
        )
        self.evaluations = 0

    def __call__(self, t, y):
        self.evaluations += 1
        if self.evaluations > self.max_evaluations:
            raise ConvergenceFailure(
                f"Derivative evaluation budget of {self.max_evaluations} exceeded at t={t}"
            )
        if self.deadline is not None and time.monotonic() > self.deadline:
            raise ConvergenceFailure(f"Integration timed out at t={t}")

        state = y[0]
        if not np.isfinite(state):
            raise _NonFinite(f"Non-finite state {state} at t={t}")

        rate = self.derivative_fn(t, state, self.params)
        if not np.isfinite(rate):
            raise _NonFinite(f"Non-finite derivative {rate} at t={t}")
        return np.array([rate], dtype=float)


def _validate_time_points(time_points) -> np.ndarray:
    times = np.asarray(time_points, dtype=float)
    if times.ndim != 1:
        raise ValueError("time_points must be one-dimensional")
    if not np.all(np.isfinite(times)):
        raise ValueError("time_points must be finite")
    if np.any(np.diff(times) <= 0):
        raise ValueError("time_points must be strictly increasing")
    return times


def _start_solver(solver_cls, rhs, t, y, t_bound, config: IntegratorConfig):
    first_step = config.first_step
    if first_step is not None:
        first_step = min(first_step, t_bound - t)
    try:
        return solver_cls(
            rhs,
            t,
            np.array([y], dtype=float),
            t_bound,
            rtol=config.rtol,
            atol=config.atol,
            max_step=np.inf if config.max_step is None else config.max_step,
            first_step=first_step,
        )
    except _NonFinite as e:
        raise NumericalInstability(str(e), t, y) from None


def _locate_crossing(dense, boundary: float, t_old: float, t_new: float) -> float:
    """Time in [t_old, t_new] where the interpolated state meets the boundary."""
    def gap(s):
        return dense(s)[0] - boundary

    g_old, g_new = gap(t_old), gap(t_new)
    if g_old == 0:
        return t_old
    if np.sign(g_old) == np.sign(g_new):
        # Crossing sits on the accepted end point within interpolation rounding
        return t_new
    return brentq(gap, t_old, t_new)


def _fill(times, states, filled: int, t_stop: float, dense) -> int:
    stop = int(np.searchsorted(times, t_stop, side="right"))
    if stop > filled:
        states[filled:stop] = dense(times[filled:stop])[0]
    return stop


def _rate(rhs, t: float, y: float) -> float:
    try:
        return float(rhs(t, np.array([y], dtype=float))[0])
    except _NonFinite as e:
        raise NumericalInstability(str(e), t, y) from None


def _sliding(rhs, t: float, boundary: float) -> bool:
    """Whether both regimes push the state onto the boundary at time t."""
    below = _rate(rhs, t, np.nextafter(boundary, -np.inf))
    above = _rate(rhs, t, boundary)
    return below > 0 and above < 0


def _hold(rhs, times, states, filled: int, boundary: float):
    """
    Keep the state on the boundary while both regimes push it there.

    The condition is checked at each remaining output time. Returns the next
    unfilled position and the output time at which sliding ended, or None
    when it lasts to the end.
    """
    for i in range(filled, times.size):
        states[i] = boundary
        if not _sliding(rhs, float(times[i]), boundary):
            return i + 1, float(times[i])
    return times.size, None


def integrate(
    derivative_fn: Callable[[float, float, Any], float],
    initial_state: float,
    time_points,
    params: Any,
    config: Optional[IntegratorConfig] = None,
    boundary: Optional[float] = None,
    t0: Optional[float] = None
) -> pd.DataFrame:
    """Integrate a scalar ODE and report the state at the requested times.

    Args:
        derivative_fn (Callable): `derivative_fn(time, state, params) -> float`.
        initial_state (float): State at `t0`.
        time_points (array-like): Strictly increasing output times.
        params: Parameter object passed through to `derivative_fn`.
        config (IntegratorConfig, optional): Solver settings. Defaults to
            `IntegratorConfig()`.
        boundary (float, optional): State value at which the derivative
            switches regime. Defaults to `params.canopy_threshold` when the
            parameter object has one; None disables event handling.
        t0 (float, optional): Time of the initial state. Defaults to the
            first output time and must not be later than it.

    Returns:
        pd.DataFrame: Trajectory with columns 'time' and 'state', one row per
            requested time point, in order. Empty when `time_points` is empty.

    Raises:
        ValueError: If the time points are not strictly increasing and
            finite, `t0` is after the first time point, or the initial state
            is not finite.
        NumericalInstability: If the derivative or the state becomes
            non-finite.
        ConvergenceFailure: If the step size drops below `config.min_step`,
            the solver fails, a budget is exhausted, or the regime switches
            more than `config.max_switches` times.
    """
    config = config or IntegratorConfig()
    times = _validate_time_points(time_points)
    if times.size == 0:
        return pd.DataFrame({"time": times, "state": times.copy()})

    t = float(times[0]) if t0 is None else float(t0)
    if t > times[0]:
        raise ValueError(f"t0={t} is after the first output time {times[0]}")
    y = float(initial_state)
    if not np.isfinite(y):
        raise ValueError(f"Initial state must be finite, got {y}")

    if boundary is None:
        boundary = getattr(params, "canopy_threshold", None)

    solver_cls = METHODS[config.method]
    rhs = _GuardedDerivative(derivative_fn, params, config)
    t_end = float(times[-1])

    states = np.full(times.shape, np.nan)
    filled = int(np.searchsorted(times, t, side="right"))
    states[:filled] = y

    switches = 0
    while filled < times.size:
        solver = _start_solver(solver_cls, rhs, t, y, t_end, config)
        upper = boundary is not None and y >= boundary
        crossed = False

        while solver.status == "running":
            t_old, y_old = solver.t, float(solver.y[0])
            try:
                message = solver.step()
            except _NonFinite as e:
                raise NumericalInstability(str(e), t_old, y_old) from None

            if solver.status == "failed":
                raise ConvergenceFailure(f"Integrator failed at t={t_old}: {message}")
            if solver.status == "running" and solver.step_size < config.min_step:
                raise ConvergenceFailure(
                    f"Step size {solver.step_size} below minimum {config.min_step} at t={solver.t}"
                )

            y_new = float(solver.y[0])
            if not np.isfinite(y_new):
                raise NumericalInstability(f"Non-finite state at t={solver.t}", t_old, y_old)

            # DOP853 evaluates the derivative again for its interpolant
            try:
                dense = solver.dense_output()
            except _NonFinite as e:
                raise NumericalInstability(str(e), t_old, y_old) from None
            t_stop = solver.t
            if boundary is not None and (y_new >= boundary) != upper:
                t_stop = _locate_crossing(dense, boundary, t_old, solver.t)
                crossed = True

            filled = _fill(times, states, filled, t_stop, dense)
            if crossed:
                break

        if not crossed:
            break

        switches += 1
        if switches > config.max_switches:
            raise ConvergenceFailure(
                f"Regime switched more than {config.max_switches} times by t={t_stop}"
            )

        t = t_stop
        if _sliding(rhs, t, boundary):
            logging.debug(f"Sliding along the boundary from t={t}.")
            filled, t_exit = _hold(rhs, times, states, filled, boundary)
            if t_exit is None:
                break
            # Leave on the side the flow points to
            t = t_exit
            y = float(boundary) if _rate(rhs, t, boundary) >= 0 else np.nextafter(boundary, -np.inf)
            continue

        # Restart on the side of the boundary just entered; the upper
        # regime is closed at the threshold.
        y = np.nextafter(boundary, -np.inf) if upper else float(boundary)
        logging.debug(f"Regime switch {switches} at t={t}, restarting from state {y}.")

    if filled < times.size:
        raise ConvergenceFailure(f"Integration stopped before t={t_end}")

    return pd.DataFrame({"time": times, "state": states})
