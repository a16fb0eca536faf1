"""
# Parameter Space Configuration

This module provides configuration classes for defining the marginal
distribution of each growth model parameter.

## Classes

- `SampleSpace`: Container for a distribution factory and its parameters
- `SpaceConfig`: Configuration for multiple parameter sampling spaces

## Example Usage

```python
from forest_tools.config.space import SpaceConfig
from forest_tools.utils.distributions import DISTRIBUTIONS

space_config = SpaceConfig.from_dict(DISTRIBUTIONS, {
    'r': ['normal', [0.01, 0.001]],
    'K': ['normal', [250.0, 25.0]],
    'g': ['normal', [2.0, 0.2]],
    'canopy_threshold': ['normal', [50.0, 5.0]]
})

# Frozen SciPy distributions keyed by parameter name
space = space_config.get_search_space()
```
"""

from typing import Callable

from dataclasses import dataclass


@dataclass
class SampleSpace:
    """
    Container for a distribution factory and its parameters.

    Attributes:
        distribution (Callable): Factory returning a frozen SciPy distribution.
        parameters (tuple[float]): Positional arguments for the factory.
        kind (str): Configuration name of the distribution (e.g. 'normal').

    Example:
        ```python
        from forest_tools.utils.distributions import get_scipy_normal

        space = SampleSpace(get_scipy_normal, (250.0, 25.0), 'normal')
        factory, params = space.unpack()
        K = factory(*params)
        ```
    """
    distribution: Callable
    parameters: tuple[float]
    kind: str = "normal"

    def unpack(self):
        """
        Unpack the distribution and parameters.

        Returns:
            tuple: (distribution_factory, parameters_tuple) ready for instantiation.
        """
        return (self.distribution, self.parameters)


class SpaceConfig(dict[str, SampleSpace]):
    """
    Configuration for multiple parameter sampling spaces.

    Inherits from dict[str, SampleSpace] where keys are parameter names and
    values are SampleSpace instances. Insertion order is kept, but the
    sampler always reads the spaces by name.

    The standard marginal is 'normal' with [mean, sd], and it is never
    truncated: draws outside a parameter's valid range (e.g. K <= 0) are
    kept and fail in the model. 'truncnorm' and 'uniform' bound the draws
    only when a configuration asks for them.

    Example:
        ```python
        config_data = {
            'r': ['normal', [0.01, 0.001]],
            'K': ['normal', [250.0, 25.0]],
            'g': ['normal', [2.0, 0.2]],
            'canopy_threshold': ['truncnorm', [50.0, 5.0, 1.0, 1e3]]
        }

        space_config = SpaceConfig.from_dict(DISTRIBUTIONS, config_data)
        space_config['K'].parameters  # (250.0, 25.0)
        ```
    """

    @classmethod
    def from_dict(cls, mapping: dict[str, Callable], data: dict):
        """
        Build the parameter spaces from their JSON form.

        Args:
            mapping (dict[str, Callable]): Distribution kind to factory,
                usually `DISTRIBUTIONS`.
            data (dict): Growth parameter name to `[kind, [args...]]`, e.g.
                `{'K': ['normal', [250.0, 50.0]]}`.

        Returns:
            SpaceConfig: One SampleSpace per growth parameter.

        Raises:
            ValueError: If a kind has no factory in `mapping`.

        Note:
            Kinds are matched case-insensitively. Which parameters are
            present is checked later, by the sampler and the analysis config.
        """
        spaces = {}
        for name, (kind, args) in data.items():
            kind = kind.lower()
            if kind not in mapping:
                raise ValueError(f"Unknown distribution kind for {name}: {kind}")
            spaces[name] = SampleSpace(
                distribution=mapping[kind],
                parameters=tuple(float(a) for a in args),
                kind=kind
            )
        return cls(spaces)

    def get_search_space(self):
        """
        Instantiate the configured distributions.

        Returns:
            dict[str, rv_frozen]: Parameter name to frozen SciPy distribution.
                Each call creates new distribution instances.
        """
        space = {}
        for param_name, samplespace in self.items():
            sampler, parameters = samplespace.unpack()
            space[param_name] = sampler(*parameters)

        return space

    def means(self) -> dict[str, float]:
        """Mean of each configured distribution, keyed by parameter name."""
        return {
            name: float(dist.mean())
            for name, dist in self.get_search_space().items()
        }

    def to_dict(self) -> dict:
        """Inverse of `from_dict`: {name: [kind, [params...]]}."""
        return {
            name: [space.kind, list(space.parameters)]
            for name, space in self.items()
        }
