"""
# ODE Integration

Adaptive, error-controlled integration of the scalar growth model, with the
regime switch at the canopy threshold handled as an event boundary.

## Components

- `integrate`: Advance a derivative function over a sequence of output times
- `IntegratorConfig`: Tolerances, step bounds and per-run resource limits

## Example Usage

```python
from forest_tools.ode import integrate, IntegratorConfig

config = IntegratorConfig(rtol=1e-8, atol=1e-10)
trajectory = integrate(GrowthModel.derivative, 10.0, range(1, 301), params, config)
```
"""

from .integrator import *
from .config import *
