"""Parameter sampling for the Sobol experiment design.

This module provides the SampleMatrix container and the ParameterSampler
that fills it from the configured marginal distributions. Columns are
carried by parameter name from the moment they are drawn, so the design
and the index attribution downstream never rely on bare positions.

Seeding policy: a sampler owns one sequential `numpy.random.Generator`.
Drawing matrix A and then matrix B from the same sampler gives two
independent draws, and the pair is reproducible from the seed alone.

Typical usage example:

```python
    from forest_tools.sampling import ParameterSampler

    sampler = ParameterSampler(seed=42)
    A = sampler.sample(1000, space)
    B = sampler.sample(1000, space)
```
"""

# Parameter labels
from forest_tools.model import PARAMETER_NAMES
from forest_tools.config.space import SpaceConfig
from forest_tools.utils.errors import DesignMismatch

# Data
import pandas as pd
import numpy as np
from dataclasses import dataclass

# Distributions and Sampling
from scipy.stats import qmc

# Typing
from typing import Literal

# Logging
import logging


@dataclass(frozen=True)
class SampleMatrix:
    """N rows by P labelled parameter columns.

    Attributes:
        frame (pd.DataFrame): Sampled values; columns are exactly
            `PARAMETER_NAMES` in canonical order, rows are positional.

    Raises:
        DesignMismatch: If the columns are not the canonical parameter names.
    """

    frame: pd.DataFrame

    def __post_init__(self):
        if list(self.frame.columns) != list(PARAMETER_NAMES):
            raise DesignMismatch(
                f"Sample columns {list(self.frame.columns)} do not match "
                f"parameters {list(PARAMETER_NAMES)}"
            )

    @classmethod
    def from_array(cls, values, names=PARAMETER_NAMES) -> "SampleMatrix":
        """Build from an (N, P) array whose columns are labelled by `names`.

        The columns are reordered into canonical order by label.
        """
        frame = pd.DataFrame(np.asarray(values, dtype=float), columns=list(names))
        missing = set(PARAMETER_NAMES) - set(frame.columns)
        if missing or len(frame.columns) != len(PARAMETER_NAMES):
            raise DesignMismatch(f"Expected parameters {list(PARAMETER_NAMES)}, got {list(names)}")
        return cls(frame[list(PARAMETER_NAMES)].reset_index(drop=True))

    @property
    def n(self) -> int:
        return len(self.frame)

    @property
    def names(self) -> list[str]:
        return list(self.frame.columns)

    def column(self, name: str) -> np.ndarray:
        return self.frame[name].to_numpy(dtype=float)

    def rows(self) -> list[dict[str, float]]:
        """Rows as name-keyed parameter dictionaries, in order."""
        return self.frame.to_dict(orient="records")


class ParameterSampler:
    """Draws sample matrices from per-parameter marginal distributions.

    Attributes:
        seed (int): Seed of the sequential generator.
        rng (np.random.Generator): Generator shared by every draw.
        engine (str): 'random' for i.i.d. draws, or a quasi-random engine
            ('sobol', 'latin', 'halton') mapped through each distribution's
            inverse CDF.
    """

    def __init__(
        self,
        seed: int = 42,
        engine: Literal['random', 'sobol', 'latin', 'halton'] = 'random',
        engine_kwargs: dict = None
    ):
        """Initializes the sampler.

        Args:
            seed (int, optional): Seed for the sequential generator.
                Defaults to 42.
            engine (str, optional): Sampling engine. Defaults to 'random',
                which gives i.i.d. columns with no cross-column correlation.
            engine_kwargs (dict, optional): Extra arguments for the
                quasi-random engine constructor. Defaults to None.

        Raises:
            ValueError: If the engine is unknown.
        """
        if engine not in ('random', 'sobol', 'latin', 'halton'):
            raise ValueError(f"Unknown sampling engine: {engine}")
        self.seed = seed
        self.rng = np.random.default_rng(seed)
        self.engine = engine
        self.engine_kwargs = engine_kwargs or {}

    @staticmethod
    def _get_engine(engine: str, **kwargs):
        """Creates the quasi-random sampling engine for one draw."""
        match engine:
            case 'sobol':
                return qmc.Sobol(**kwargs)
            case 'latin':
                return qmc.LatinHypercube(**kwargs)
            case 'halton':
                return qmc.Halton(**kwargs)

    def _uniform(self, n: int, d: int) -> np.ndarray:
        # A fresh engine per draw, scrambled from the shared generator, so
        # successive matrices are independent.
        engine = self._get_engine(self.engine, d=d, rng=self.rng, **self.engine_kwargs)
        if isinstance(engine, qmc.Sobol):
            if np.log2(n) % 1 != 0:
                raise ValueError(f"Sobol engine needs a power of 2 samples, got {n}")
            return engine.random_base2(m=int(np.log2(n)))
        return engine.random(n)

    def sample(self, n: int, space: SpaceConfig) -> SampleMatrix:
        """Draws an n-row sample matrix.

        Args:
            n (int): Number of rows.
            space (SpaceConfig): Distribution of each of the four growth
                parameters, keyed by name.

        Returns:
            SampleMatrix: Samples in canonical column order. No truncation
                is applied, so invalid values (e.g. negative K) pass through.

        Raises:
            ValueError: If n is not positive.
            DesignMismatch: If the space does not name exactly the growth
                parameters.
        """
        if n <= 0:
            raise ValueError(f"Sample count must be positive, got {n}")
        if set(space.keys()) != set(PARAMETER_NAMES) or len(space) != len(PARAMETER_NAMES):
            raise DesignMismatch(
                f"Distributions given for {sorted(space.keys())}, "
                f"expected {sorted(PARAMETER_NAMES)}"
            )

        dists = space.get_search_space()
        logging.info(f"Drawing {n} samples with the '{self.engine}' engine.")

        if self.engine == 'random':
            values = {
                name: dists[name].rvs(size=n, random_state=self.rng)
                for name in PARAMETER_NAMES
            }
        else:
            u = self._uniform(n, len(PARAMETER_NAMES))  # (n, dim)
            values = {
                name: dists[name].ppf(u[:, i])
                for i, name in enumerate(PARAMETER_NAMES)
            }

        frame = pd.DataFrame(values, columns=list(PARAMETER_NAMES)).astype(float)
        return SampleMatrix(frame)
