"""
# Metric Configuration

This module provides the configuration class that selects which trajectory
metrics the sensitivity analysis decomposes.

## Classes

- `MetricConfig`: Ordered list of target metrics

## Example Usage

```python
from forest_tools.config.metric import MetricConfig

config = MetricConfig.from_dict({'metrics': ['peak_value', 'mean_value']})
config.names  # ['peak_value', 'mean_value']
```
"""

from forest_tools.utils.metric import Metric
from dataclasses import dataclass, field

DEFAULT_METRICS = ("peak_value", "mean_value")


@dataclass
class MetricConfig:
    """
    Configuration for the target metrics of a sensitivity analysis.

    Attributes:
        metrics (list[Metric]): Metrics to compute Sobol indices for, in
            reporting order. Defaults to peak value and mean value.
    """
    metrics: list[Metric] = field(
        default_factory=lambda: [Metric.from_name(m) for m in DEFAULT_METRICS]
    )

    @classmethod
    def from_dict(cls, data: dict):
        """
        Create a MetricConfig from a dictionary specification.

        Args:
            data (dict): Configuration dictionary with key 'metrics', a list
                of metric names. Missing key means the default metrics.

        Returns:
            MetricConfig: Configured instance.

        Raises:
            ValueError: If a metric name is unknown or listed twice.
        """
        names = data.get("metrics", list(DEFAULT_METRICS))
        if len(set(names)) != len(names):
            raise ValueError(f"Duplicate metric names: {names}")
        return cls(metrics=[Metric.from_name(m) for m in names])

    @property
    def names(self) -> list[str]:
        return [metric.name for metric in self.metrics]

    def to_dict(self) -> dict:
        return {"metrics": self.names}
