import numpy as np
import pytest
from forest_tools.model import PARAMETER_NAMES
from forest_tools.config import SpaceConfig
from forest_tools.sampling import ParameterSampler, SampleMatrix
from forest_tools.utils.distributions import DISTRIBUTIONS
from forest_tools.utils.errors import DesignMismatch


def get_space(K_scale=50.0) -> SpaceConfig:
    # Insertion order differs from the canonical order on purpose
    return SpaceConfig.from_dict(DISTRIBUTIONS, {
        'canopy_threshold': ['normal', [50.0, 10.0]],
        'K': ['normal', [250.0, K_scale]],
        'g': ['normal', [2.0, 0.5]],
        'r': ['normal', [0.01, 0.002]],
    })


def test_sample_shape_and_column_order():
    A = ParameterSampler(seed=1).sample(100, get_space())
    assert isinstance(A, SampleMatrix)
    assert A.n == 100
    assert A.names == list(PARAMETER_NAMES)
    assert A.column('K').mean() == pytest.approx(250.0, abs=20.0)


def test_successive_draws_are_independent():
    sampler = ParameterSampler(seed=1)
    A = sampler.sample(50, get_space())
    B = sampler.sample(50, get_space())
    assert not np.allclose(A.frame.to_numpy(), B.frame.to_numpy())


def test_sampling_is_reproducible():
    A1 = ParameterSampler(seed=3).sample(20, get_space())
    A2 = ParameterSampler(seed=3).sample(20, get_space())
    assert A1.frame.equals(A2.frame)


def test_negative_draws_pass_through():
    A = ParameterSampler(seed=0).sample(1000, get_space(K_scale=200.0))
    assert (A.column('K') < 0).any()


def test_quasi_random_engines():
    A = ParameterSampler(seed=0, engine='latin').sample(64, get_space())
    assert A.n == 64

    sobol = ParameterSampler(seed=0, engine='sobol')
    assert sobol.sample(64, get_space()).n == 64
    with pytest.raises(ValueError):
        sobol.sample(100, get_space())


def test_invalid_sample_requests():
    sampler = ParameterSampler()
    with pytest.raises(ValueError):
        sampler.sample(0, get_space())

    space = get_space()
    del space['g']
    with pytest.raises(DesignMismatch):
        sampler.sample(10, space)

    with pytest.raises(ValueError):
        ParameterSampler(engine='grid')


def test_sample_matrix_from_array_reorders_by_label():
    names = ['K', 'r', 'g', 'canopy_threshold']
    A = SampleMatrix.from_array([[250.0, 0.01, 2.0, 50.0]], names=names)
    assert A.names == list(PARAMETER_NAMES)
    assert A.rows() == [{'r': 0.01, 'K': 250.0, 'g': 2.0, 'canopy_threshold': 50.0}]

    with pytest.raises(DesignMismatch):
        SampleMatrix.from_array([[1.0, 2.0, 3.0]], names=['r', 'K', 'g'])


def test_truncation_only_when_requested():
    space = get_space(K_scale=200.0)
    space.update(SpaceConfig.from_dict(DISTRIBUTIONS, {'K': ['truncnorm', [250.0, 200.0, 1.0, 1000.0]]}))
    A = ParameterSampler(seed=0).sample(1000, space)
    assert A.column('K').min() >= 1.0
    assert A.column('K').max() <= 1000.0
