"""
# Configuration Management

This module provides configuration classes for parameter spaces and target
metrics used throughout the forest_tools package.

## Components

- **SpaceConfig**: Marginal distribution of each growth parameter
- **MetricConfig**: Trajectory metrics targeted by the sensitivity analysis

## Example Usage

```python
from forest_tools.config import MetricConfig, SpaceConfig
from forest_tools.utils.distributions import DISTRIBUTIONS

metric_config = MetricConfig.from_dict({'metrics': ['peak_value', 'mean_value']})

space_config = SpaceConfig.from_dict(DISTRIBUTIONS, {
    'r': ['normal', [0.01, 0.001]],
    'K': ['normal', [250.0, 25.0]],
    'g': ['normal', [2.0, 0.2]],
    'canopy_threshold': ['normal', [50.0, 5.0]]
})
```
"""

from .metric import *
from .space import *
