"""
# Sensitivity Analysis

This module provides variance-based global sensitivity analysis of the
forest growth model: how much of the variance of each trajectory metric is
attributable to each growth parameter, alone and with its interactions.

## Components

- `SensitivityAnalysis`: Runs the design and computes Sobol indices
- `SobolDesign`: A, B and swapped-column blocks built from two base matrices
- `SensitivityAnalysisConfig`: Configuration of an analysis

## Example Usage

```python
from forest_tools.sa import SensitivityAnalysis, SensitivityAnalysisConfig
from forest_tools import GrowthModel

config = SensitivityAnalysisConfig.from_json('sa_config.json')
model = GrowthModel.from_config(config)

sa = SensitivityAnalysis(model, config)
A, B = sa.sample()
results = sa.analyze(A, B)

table = results.to_frame()
first_order = table['first_order']
total = table['total']
```
"""

from .sa import *
from .design import *
from .config import *
