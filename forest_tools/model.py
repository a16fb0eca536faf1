"""
# Model Interface and Forest Growth Implementation

This module provides the abstract model interface used by the sensitivity
analysis and the concrete two-regime forest growth model.

## Classes

- `ParameterSet`: Immutable set of growth parameters (r, K, g, canopy_threshold)
- `Model`: Abstract base class defining the interface for all models
- `GrowthModel`: Forest growth with exponential growth below canopy closure
  and capacity-limited linear growth above it

## Key Features

- **Parallel Execution**: Design rows run concurrently on a thread or process pool
- **Per-row Isolation**: A failing row is recorded, never aborts the batch
- **Bounded Memory**: Trajectories are reduced to metrics as soon as they are produced

## Example Usage

```python
from forest_tools import GrowthModel, ParameterSet

model = GrowthModel(initial_state=10.0, times=range(1, 301))

# Single trajectory
params = ParameterSet(r=0.01, K=250.0, g=2.0, canopy_threshold=50.0)
trajectory = model.run(params)

# Metrics for many parameter sets
rows = [{'r': 0.01, 'K': 250.0, 'g': 2.0, 'canopy_threshold': 50.0}, ...]
results = model.run_parallel(rows, workers=4)
```
"""

# Basic data utils
import pandas as pd
import numpy as np
from typing import Any, Literal
from abc import abstractmethod, ABC
from dataclasses import dataclass, asdict

# Integration and metrics
from forest_tools.ode import integrate, IntegratorConfig
from forest_tools.utils.metric import extract
from forest_tools.utils.results import MetricResult, OutputError, RowResult
from forest_tools.utils.errors import ForestModelError, InvalidParameter, DesignMismatch

# Parallel runs
import logging
from tqdm import tqdm
from concurrent.futures import ThreadPoolExecutor, ProcessPoolExecutor, as_completed


PARAMETER_NAMES = ("r", "K", "g", "canopy_threshold")
"""Canonical parameter order used by sampling, design and index reporting."""


@dataclass(frozen=True)
class ParameterSet:
    """
    Growth parameters for one model run.

    Construction does not validate, so an invalid set built from a sampled
    row still reaches the model and fails there with InvalidParameter.

    Attributes:
        r (float): Exponential growth rate below canopy closure (1/year).
        K (float): Carrying capacity; must be positive.
        g (float): Linear growth rate above canopy closure (stock/year).
        canopy_threshold (float): Stock at which the canopy closes; must be
            positive.
    """
    r: float
    K: float
    g: float
    canopy_threshold: float

    @classmethod
    def from_dict(cls, X: dict[str, float]) -> "ParameterSet":
        """
        Build a parameter set from a row keyed by parameter name.

        Raises:
            DesignMismatch: If the row does not carry exactly the four
                parameter names.
        """
        if set(X.keys()) != set(PARAMETER_NAMES):
            raise DesignMismatch(
                f"Row keys {sorted(X.keys())} do not match parameters {sorted(PARAMETER_NAMES)}"
            )
        return cls(**{name: float(X[name]) for name in PARAMETER_NAMES})

    def to_dict(self) -> dict[str, float]:
        return asdict(self)

    def validate(self):
        """
        Check that the set can be integrated.

        Raises:
            InvalidParameter: If any value is non-finite, or K or
                canopy_threshold is not positive.
        """
        for name, value in self.to_dict().items():
            if not np.isfinite(value):
                raise InvalidParameter(f"{name} must be finite, got {value}")
        if self.K <= 0:
            raise InvalidParameter(f"K must be positive, got {self.K}")
        if self.canopy_threshold <= 0:
            raise InvalidParameter(
                f"canopy_threshold must be positive, got {self.canopy_threshold}"
            )


class Model(ABC):
    """
    Abstract base class for models driven by the sensitivity analysis.

    Subclasses implement `run` (parameters to trajectory) and
    `evaluate_model` (trajectory to metrics). The base class provides
    per-row error capture and parallel execution over design rows.

    Example:
        ```python
        class MyModel(Model):
            def run(self, X):
                ...

            @staticmethod
            def evaluate_model(output):
                return MetricResult(...)
        ```
    """

    @abstractmethod
    def run(self, X: Any) -> pd.DataFrame:
        """
        Execute the model with a single parameter set.

        Args:
            X: Parameter values, as a ParameterSet or a name-keyed dict.

        Returns:
            pd.DataFrame: Model output trajectory.
        """
        pass

    @staticmethod
    @abstractmethod
    def evaluate_model(output: pd.DataFrame) -> MetricResult:
        """
        Reduce a model output to its summary metrics.

        Args:
            output (pd.DataFrame): Output of `run`.

        Returns:
            MetricResult: Summary metrics.
        """
        pass

    def validate(self):
        """
        Check the model settings before any run.

        Called once by the sensitivity analysis before the design is
        evaluated. The base implementation accepts everything.

        Raises:
            ValueError: If a setting would make every run fail.
        """
        pass

    def evaluate_row(self, row: int, X: Any) -> RowResult:
        """
        Run and evaluate one design row, capturing model errors.

        The trajectory is dropped once its metrics are computed. Errors from
        the forest_tools hierarchy are recorded on the returned RowResult;
        DesignMismatch and any other exception propagate.

        Args:
            row (int): Design row position.
            X: Parameter values for the row.

        Returns:
            RowResult: Metrics, or the error that stopped the row.
        """
        try:
            metrics = self.evaluate_model(self.run(X))
        except DesignMismatch:
            raise
        except ForestModelError as e:
            return RowResult(row=row, error=OutputError.from_exception(e))
        return RowResult(row=row, metrics=metrics)

    def run_parallel(
        self,
        X: list[Any],
        workers: int = 4,
        executor: Literal["thread", "process"] = "thread",
        progress: bool = True
    ) -> list[RowResult]:
        """
        Evaluate many parameter sets concurrently.

        Runs share no mutable state; results are joined back by position, so
        element i of the result always belongs to X[i].

        Args:
            X (list): Parameter sets, one per design row.
            workers (int, optional): Number of concurrent workers. Defaults to 4.
            executor (str, optional): 'thread' or 'process' pool. Defaults
                to 'thread'. The process pool needs a picklable model.
            progress (bool, optional): Show a tqdm progress bar. Defaults to True.

        Returns:
            list[RowResult]: One result per parameter set, in input order.
        """
        N = len(X)
        res = [None for _ in range(N)]  # Ensure that we have an accessible index

        pool_cls = ProcessPoolExecutor if executor == "process" else ThreadPoolExecutor
        pbar = tqdm(total=N, disable=not progress)

        with pool_cls(max_workers=workers) as pool:
            futures = {
                pool.submit(self.evaluate_row, i, X[i]): i
                for i in range(N)  # Store corresponding row number
            }

            for future in as_completed(futures):
                pbar.update(1)
                idx = futures[future]
                res[idx] = future.result()

        pbar.close()

        failed = [r for r in res if not r.valid]
        if failed:
            kinds = pd.Series([r.error.kind for r in failed]).value_counts().to_dict()
            logging.warning(f"{len(failed)} of {N} runs failed: {kinds}")

        return res


class GrowthModel(Model):
    """
    Two-regime forest growth model.

    Below the canopy closure threshold the stock grows exponentially at rate
    r; at or above it growth is linear at rate g, scaled down as the stock
    approaches the carrying capacity K:

        dC/dt = r * C                 if C < canopy_threshold
        dC/dt = g * (1 - C / K)       otherwise

    Attributes:
        initial_state (float): Stock at the first output time (or at t0).
        times (np.ndarray): Output times, strictly increasing.
        integrator (IntegratorConfig): Solver settings for every run.
        t0 (float, optional): Time of the initial state if earlier than the
            first output time.

    Example:
        ```python
        model = GrowthModel(initial_state=10.0, times=range(1, 301))
        trajectory = model.run({'r': 0.01, 'K': 250.0, 'g': 2.0,
                                'canopy_threshold': 50.0})
        metrics = model.evaluate_model(trajectory)
        ```
    """
    def __init__(
            self,
            initial_state: float = 10.0,
            times=None,
            integrator: IntegratorConfig = None,
            t0: float = None
    ):
        """
        Initialize the GrowthModel instance.

        Args:
            initial_state (float, optional): Initial stock. Defaults to 10.0.
            times (array-like, optional): Output times. Defaults to years
                1 through 300.
            integrator (IntegratorConfig, optional): Solver settings.
                Defaults to IntegratorConfig().
            t0 (float, optional): Time of the initial state. Defaults to the
                first output time.

        Raises:
            ValueError: If the settings fail `validate`.
        """
        self.initial_state = float(initial_state)
        self.times = np.arange(1, 301, dtype=float) if times is None else np.asarray(times, dtype=float)
        self.integrator = integrator or IntegratorConfig()
        self.t0 = t0
        self.validate()

    @classmethod
    def from_config(cls, config) -> "GrowthModel":
        """Build the model from the initial state, output times and solver
        settings of a `SensitivityAnalysisConfig`."""
        return cls(
            initial_state=config.initial_state,
            times=config.times,
            integrator=config.integrator,
        )

    def validate(self):
        """
        Check the time grid, initial state and solver settings.

        Raises:
            ValueError: If the output times are empty, non-finite or not
                strictly increasing, the initial state is not finite, t0 is
                after the first output time, or the integrator settings are
                malformed.
        """
        times = self.times
        if times.ndim != 1 or times.size == 0:
            raise ValueError("times must be a non-empty one-dimensional sequence")
        if not np.all(np.isfinite(times)):
            raise ValueError("times must be finite")
        if np.any(np.diff(times) <= 0):
            raise ValueError("times must be strictly increasing")
        if not np.isfinite(self.initial_state):
            raise ValueError(f"initial_state must be finite, got {self.initial_state}")
        if self.t0 is not None and self.t0 > times[0]:
            raise ValueError(f"t0={self.t0} is after the first output time {times[0]}")
        self.integrator.validate()

    @staticmethod
    def derivative(time: float, state: float, params: ParameterSet) -> float:
        """
        Instantaneous growth rate of the stock.

        The regime is chosen from the current state on every call, with no
        hysteresis; a state exactly at the threshold uses the linear regime.
        Negative states and rates are evaluated as given.

        Args:
            time (float): Current time (unused; the model is autonomous).
            state (float): Current stock.
            params (ParameterSet): Growth parameters.

        Returns:
            float: dC/dt.

        Raises:
            InvalidParameter: If K or canopy_threshold is not positive.
        """
        if params.K <= 0:
            raise InvalidParameter(f"K must be positive, got {params.K}")
        if params.canopy_threshold <= 0:
            raise InvalidParameter(
                f"canopy_threshold must be positive, got {params.canopy_threshold}"
            )
        if state < params.canopy_threshold:
            return params.r * state
        return params.g * (1 - state / params.K)

    def run(self, X: ParameterSet | dict[str, float]) -> pd.DataFrame:
        """
        Integrate the model for one parameter set.

        Args:
            X (ParameterSet | dict): Parameters, or a row keyed by name.

        Returns:
            pd.DataFrame: Trajectory with 'time' and 'state' columns.

        Raises:
            InvalidParameter: Before integrating, if the set is invalid.
            NumericalInstability, ConvergenceFailure: From the integrator.
        """
        params = X if isinstance(X, ParameterSet) else ParameterSet.from_dict(X)
        params.validate()
        return self.launch_model(params)

    def launch_model(self, params: ParameterSet) -> pd.DataFrame:
        """Low-level integration call for an already validated set."""
        return integrate(
            GrowthModel.derivative,
            self.initial_state,
            self.times,
            params,
            config=self.integrator,
            boundary=params.canopy_threshold,
            t0=self.t0,
        )

    @staticmethod
    def evaluate_model(output: pd.DataFrame) -> MetricResult:
        """Peak value, time of peak and mean value of a trajectory."""
        return extract(output)
