"""
# Parameter Distributions

This module provides the marginal distributions used to sample the growth
model parameters. Every factory returns a frozen SciPy distribution, so the
sampler can draw from it with `rvs` or map quasi-random points through its
`ppf`.

## Functions

- `get_scipy_normal`: Normal distribution from mean and standard deviation
- `get_scipy_truncated_normal`: Normal distribution truncated to [a, b]
- `get_scipy_uniform`: Uniform distribution over [a, b]

## Constants

- `DISTRIBUTIONS`: Mapping of configuration names to the factories above

## Example Usage

```python
from forest_tools.utils.distributions import get_scipy_normal
import numpy as np

# Carrying capacity around 250 with a 10% spread
K = get_scipy_normal(loc=250.0, scale=25.0)
draws = K.rvs(size=100, random_state=np.random.default_rng(0))
```
"""

from scipy.stats import (
    truncnorm,
    norm,
    uniform
)


def get_scipy_normal(loc=0.0, scale=1.0):
    """
    Create a SciPy normal distribution.

    This is the distribution the sensitivity analysis uses for every growth
    parameter. Draws are not truncated, so a wide standard deviation can
    produce negative values for strictly positive parameters.

    Args:
        loc (float, optional): Mean of the distribution. Defaults to 0.0.
        scale (float, optional): Standard deviation. Defaults to 1.0.

    Returns:
        scipy.stats.norm: Configured normal distribution.

    Raises:
        ValueError: If scale is negative.
    """
    if scale < 0:
        raise ValueError(f"Standard deviation must be non-negative, got {scale}")
    return norm(loc=loc, scale=scale)


def get_scipy_truncated_normal(loc=0.0, scale=1.0, a=1e-12, b=1e12):
    """
    Create a SciPy truncated normal distribution.

    Useful when a configuration wants to keep a parameter such as the
    canopy threshold away from zero instead of letting invalid rows fail.

    Args:
        loc (float, optional): Mean of the underlying normal. Defaults to 0.0.
        scale (float, optional): Standard deviation. Defaults to 1.0.
        a (float, optional): Lower truncation bound. Defaults to 1e-12.
        b (float, optional): Upper truncation bound. Defaults to 1e12.

    Returns:
        scipy.stats.truncnorm: Configured truncated normal distribution.
    """
    a_scaled = (a - loc) / scale
    b_scaled = (b - loc) / scale
    return truncnorm(a=a_scaled, b=b_scaled, loc=loc, scale=scale)


def get_scipy_uniform(a=0.0, b=1.0):
    """
    Create a SciPy uniform distribution over [a, b].

    Note:
        SciPy's uniform distribution is parameterized as uniform(loc, scale)
        where scale = b - a, so we transform the [a, b] interface accordingly.
    """
    return uniform(loc=a, scale=b - a)


DISTRIBUTIONS = {
    "normal": get_scipy_normal,
    "truncnorm": get_scipy_truncated_normal,
    "uniform": get_scipy_uniform,
}
"""Configuration name to distribution factory."""
