"""
# Trajectory Metrics

This module reduces a growth trajectory to the scalar summary metrics the
sensitivity analysis works on.

## Functions

- `peak_value`: Maximum state over the trajectory
- `peak_time`: Earliest time at which the maximum is reached
- `mean_value`: Unweighted mean of the state over the reported time points
- `extract`: All three metrics as a `MetricResult`

## Classes

- `Metric`: Named reducer over a trajectory
- `PeakValue`, `PeakTime`, `MeanValue`: The three built-in metrics

## Example Usage

```python
from forest_tools.utils.metric import Metric, extract
import pandas as pd

trajectory = pd.DataFrame({'time': [1, 2, 3], 'state': [10.0, 12.0, 11.0]})

result = extract(trajectory)         # MetricResult(12.0, 2.0, 11.0)
peak = Metric.from_name('peak_value')
peak.func(trajectory)                # 12.0
```
"""

import numpy as np
import pandas as pd
from dataclasses import dataclass
from typing import Callable

from forest_tools.utils.errors import EmptyTrajectory
from forest_tools.utils.results import MetricResult, METRIC_NAMES


def _states(trajectory: pd.DataFrame) -> np.ndarray:
    if len(trajectory) == 0:
        raise EmptyTrajectory("Cannot compute metrics for an empty trajectory")
    return trajectory["state"].to_numpy(dtype=float)


def peak_value(trajectory: pd.DataFrame) -> float:
    """Maximum state value over the trajectory."""
    return float(np.max(_states(trajectory)))


def peak_time(trajectory: pd.DataFrame) -> float:
    """
    Time at which the maximum state is first reached.

    Ties are broken by the earliest time, so a plateau at the maximum
    reports its first point.
    """
    states = _states(trajectory)
    # argmax returns the first occurrence
    return float(trajectory["time"].iloc[int(np.argmax(states))])


def mean_value(trajectory: pd.DataFrame) -> float:
    """
    Arithmetic mean of the state over all reported time points.

    The mean is not weighted by time spacing; on a uniform yearly grid it
    is the average yearly stock.
    """
    return float(np.mean(_states(trajectory)))


def extract(trajectory: pd.DataFrame) -> MetricResult:
    """
    Reduce a trajectory to its summary metrics.

    Each field is computed by the built-in `Metric` of the same name.

    Args:
        trajectory (pd.DataFrame): Trajectory with 'time' and 'state' columns.

    Returns:
        MetricResult: Peak value, time of peak and mean value.

    Raises:
        EmptyTrajectory: If the trajectory has no rows.
    """
    return MetricResult(**{
        name: Metric.from_name(name).func(trajectory)
        for name in METRIC_NAMES
    })


@dataclass
class Metric:
    """
    Named reducer from a trajectory to a scalar.

    Attributes:
        name (str): Metric identifier, matching a `MetricResult` field.
        func (Callable): Function mapping a trajectory to a float.
    """
    name: str
    func: Callable

    @staticmethod
    def from_name(metric_name: str) -> "Metric":
        """
        Create a built-in Metric from its name.

        Args:
            metric_name (str): One of 'peak_value', 'peak_time', 'mean_value'
                (case-insensitive).

        Returns:
            Metric: The matching metric instance.

        Raises:
            ValueError: If metric_name is not recognized.
        """
        mapping = {
            "peak_value": PeakValue,
            "peak_time": PeakTime,
            "mean_value": MeanValue,
        }

        metric_cls = mapping.get(metric_name.lower())
        if metric_cls is None:
            raise ValueError(f"Unknown metric name: {metric_name}")
        return metric_cls()


class PeakValue(Metric):
    """Largest stock reached over the simulated period."""
    def __init__(self, name: str = "peak_value"):
        super().__init__(name=name, func=peak_value)


class PeakTime(Metric):
    """Earliest time the largest stock is reached."""
    def __init__(self, name: str = "peak_time"):
        super().__init__(name=name, func=peak_time)


class MeanValue(Metric):
    """Average stock over the reported time points."""
    def __init__(self, name: str = "mean_value"):
        super().__init__(name=name, func=mean_value)
