"""
# Utilities

This module provides the building blocks shared by the model, the sampler
and the sensitivity analysis.

## Components

- **metric**: Trajectory summary metrics (peak value, time of peak, mean)
- **distributions**: SciPy distribution factories for parameter sampling
- **results**: Data structures for row results and Sobol indices
- **errors**: Exception hierarchy

## Example Usage

```python
from forest_tools.utils.metric import extract
from forest_tools.utils.distributions import get_scipy_normal
from forest_tools.utils.errors import InvalidParameter

metrics = extract(trajectory)
K = get_scipy_normal(loc=250.0, scale=25.0)
```
"""
