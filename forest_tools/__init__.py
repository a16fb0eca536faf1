"""
# Forest Tools

A toolkit for simulating two-regime forest growth and measuring how
uncertain growth parameters drive variability in the simulated stock:

- **Model Interface**: Abstract model base class and the forest growth model
- **ODE Integration**: Adaptive Runge-Kutta integration that treats canopy
  closure as an event boundary
- **Sampling**: Independent base matrices from per-parameter distributions
- **Sensitivity Analysis**: Sobol first-order and total indices with
  bootstrap confidence intervals
- **Configuration Management**: Parameter spaces, target metrics, solver settings

## Main Components

- `Model`: Base class for model execution and evaluation
- `GrowthModel`: Forest growth with exponential and capacity-limited regimes
- `ode`: Adaptive integrator
- `sampling`: Parameter sampler and sample matrices
- `sa`: Sobol design and sensitivity analysis
- `config`: Configuration for parameter spaces and metrics
- `utils`: Metrics, distributions, results and errors

## Example Usage

```python
from forest_tools import GrowthModel
from forest_tools.sa import SensitivityAnalysis, SensitivityAnalysisConfig

config = SensitivityAnalysisConfig.from_json("sa_config.json")
model = GrowthModel.from_config(config)

sa = SensitivityAnalysis(model, config)
results = sa.run("results/")
print(results.to_frame())
```
"""

from .model import *
