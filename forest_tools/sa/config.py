"""Configuration classes for sensitivity analysis settings.

This module provides the configuration for a Sobol sensitivity analysis of
the forest growth model: parameter distributions, target metrics, the
simulated time grid, sample and bootstrap sizes, parallel execution and
integrator settings. It supports serialization to and from JSON format for
easy persistence and loading of analysis configurations.

Typical usage example:

    from forest_tools.sa import SensitivityAnalysisConfig

    config = SensitivityAnalysisConfig.from_json("sa_config.json")
    config.samples = 4096
    config.to_json("updated_sa_config.json")

A configuration file looks like:

    {
        "space": {
            "r": ["normal", [0.01, 0.002]],
            "K": ["normal", [250, 50]],
            "g": ["normal", [2, 0.5]],
            "canopy_threshold": ["normal", [50, 10]]
        },
        "metric": {"metrics": ["peak_value", "mean_value"]},
        "initial_state": 10,
        "times": {"start": 1, "stop": 300, "step": 1},
        "samples": 1000
    }
"""

from dataclasses import dataclass, field
from typing import Optional
import json

import numpy as np

from forest_tools.model import PARAMETER_NAMES
from forest_tools.config.metric import MetricConfig
from forest_tools.config.space import SpaceConfig
from forest_tools.ode.config import IntegratorConfig
from forest_tools.utils.distributions import DISTRIBUTIONS
from forest_tools.utils.errors import DesignMismatch


def parse_times(value) -> list[float]:
    """Output times from a list, or from an inclusive {'start', 'stop', 'step'} range."""
    if isinstance(value, dict):
        start, stop = float(value["start"]), float(value["stop"])
        step = float(value.get("step", 1.0))
        if step <= 0:
            raise ValueError(f"Time step must be positive, got {step}")
        count = int(np.floor((stop - start) / step + 1e-9)) + 1
        return [start + i * step for i in range(count)]
    return [float(t) for t in value]


@dataclass
class SensitivityAnalysisConfig:
    """Configuration class for sensitivity analysis execution settings.

    Attributes:
        space (SpaceConfig): Distribution of each growth parameter.
        metric (MetricConfig): Trajectory metrics to decompose. Defaults to
            peak value and mean value.
        initial_state (float): Stock at the first output time. Defaults to 10.
        times (list[float]): Strictly increasing output times. Defaults to
            years 1 through 300.
        samples (int): Rows per base matrix (N). The model runs
            N * (2 + P) times. Defaults to 1000.
        bootstrap (int, optional): Number of bootstrap resamples; None uses
            the sample count. Defaults to None.
        conf_level (float): Confidence level of the percentile bootstrap
            intervals. Defaults to 0.95.
        workers (int): Number of parallel workers. Defaults to 4.
        executor (str): 'thread' or 'process' pool. Defaults to 'thread'.
        seed (int): Seed for sampling and bootstrap. Defaults to 42.
        engine (str): Sampling engine ('random', 'sobol', 'latin',
            'halton'). Defaults to 'random'.
        integrator (IntegratorConfig): Solver settings for every run.

    Example:
        ```python
        config = SensitivityAnalysisConfig(
            space=space_config,
            samples=512,
            bootstrap=200,
            workers=8
        )
        config.validate()
        ```
    """

    space: SpaceConfig
    metric: MetricConfig = field(default_factory=MetricConfig)
    initial_state: float = 10.0
    times: list[float] = field(default_factory=lambda: [float(t) for t in range(1, 301)])
    samples: int = 1000
    bootstrap: Optional[int] = None
    conf_level: float = 0.95
    workers: int = 4
    executor: str = "thread"
    seed: int = 42
    engine: str = "random"
    integrator: IntegratorConfig = field(default_factory=IntegratorConfig)

    @property
    def n_bootstrap(self) -> int:
        return self.samples if self.bootstrap is None else self.bootstrap

    def validate(self):
        """Check the configuration before any sampling or model run.

        Raises:
            ValueError: If a size, level or time grid is malformed.
            DesignMismatch: If the distributions do not name exactly the
                growth parameters.
        """
        if set(self.space.keys()) != set(PARAMETER_NAMES) or len(self.space) != len(PARAMETER_NAMES):
            raise DesignMismatch(
                f"Distributions given for {sorted(self.space.keys())}, "
                f"expected {sorted(PARAMETER_NAMES)}"
            )
        if not isinstance(self.samples, (int, np.integer)) or self.samples <= 0:
            raise ValueError(f"samples must be a positive integer, got {self.samples}")
        if self.bootstrap is not None and self.bootstrap <= 0:
            raise ValueError(f"bootstrap must be positive, got {self.bootstrap}")
        if not 0 < self.conf_level < 1:
            raise ValueError(f"conf_level must be in (0, 1), got {self.conf_level}")
        if self.workers < 1:
            raise ValueError(f"workers must be at least 1, got {self.workers}")
        if self.executor not in ("thread", "process"):
            raise ValueError(f"Unknown executor: {self.executor}")
        if self.engine not in ("random", "sobol", "latin", "halton"):
            raise ValueError(f"Unknown sampling engine: {self.engine}")
        if not self.metric.metrics:
            raise ValueError("At least one target metric is required")
        if not np.isfinite(self.initial_state):
            raise ValueError(f"initial_state must be finite, got {self.initial_state}")

        times = np.asarray(self.times, dtype=float)
        if times.size == 0:
            raise ValueError("times must not be empty")
        if np.any(np.diff(times) <= 0):
            raise ValueError("times must be strictly increasing")

        self.integrator.validate()

    @classmethod
    def from_dict(cls, data: dict):
        """Create a configuration from its dictionary form.

        Nested 'space', 'metric' and 'integrator' entries are converted to
        their configuration classes; 'times' may be a list or an inclusive
        {'start', 'stop', 'step'} range.
        """
        data = dict(data)
        data["space"] = SpaceConfig.from_dict(DISTRIBUTIONS, data["space"])
        data["metric"] = MetricConfig.from_dict(data.get("metric", {}))
        data["integrator"] = IntegratorConfig.from_dict(data.get("integrator", {}))
        if "times" in data:
            data["times"] = parse_times(data["times"])
        return cls(**data)

    @classmethod
    def from_json(cls, infile: str):
        """Create a SensitivityAnalysisConfig instance from a JSON file.

        Args:
            infile (str): Path to the JSON file containing the configuration.

        Returns:
            SensitivityAnalysisConfig: A new instance initialized with data
                from the file.

        Raises:
            FileNotFoundError: If the specified file does not exist.
            json.JSONDecodeError: If the file contains invalid JSON.
            KeyError: If the required 'space' entry is missing.
            TypeError: If the file contains unknown configuration keys.
        """
        with open(infile, "r") as f:
            data = json.load(f)
        return cls.from_dict(data)

    def to_dict(self) -> dict:
        return {
            "space": self.space.to_dict(),
            "metric": self.metric.to_dict(),
            "initial_state": self.initial_state,
            "times": list(self.times),
            "samples": self.samples,
            "bootstrap": self.bootstrap,
            "conf_level": self.conf_level,
            "workers": self.workers,
            "executor": self.executor,
            "seed": self.seed,
            "engine": self.engine,
            "integrator": self.integrator.to_dict(),
        }

    def to_json(self, outfile: str):
        """Serialize the configuration to a JSON file.

        Raises:
            FileExistsError: If the specified file already exists.

        Note:
            The file is opened in exclusive creation mode ("+x") to prevent
            accidental overwrites.
        """
        with open(outfile, "+x") as f:
            json.dump(self.to_dict(), f, indent=4)
