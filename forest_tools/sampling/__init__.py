"""
# Parameter Sampling

This module draws the two independent base matrices (A and B) of the Sobol
experiment design from the configured parameter distributions.

## Components

- `ParameterSampler`: Sequential-generator sampler with i.i.d. or
  quasi-random engines
- `SampleMatrix`: N x P table with labelled parameter columns

## Example Usage

```python
from forest_tools.sampling import ParameterSampler
from forest_tools.config import SpaceConfig
from forest_tools.utils.distributions import DISTRIBUTIONS

space = SpaceConfig.from_dict(DISTRIBUTIONS, {
    'r': ['normal', [0.01, 0.001]],
    'K': ['normal', [250.0, 25.0]],
    'g': ['normal', [2.0, 0.2]],
    'canopy_threshold': ['normal', [50.0, 5.0]]
})

sampler = ParameterSampler(seed=42)
A = sampler.sample(512, space)
B = sampler.sample(512, space)
```
"""

from .sampler import *
