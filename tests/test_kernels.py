import numpy as np
import pytest

from flowlenia.core.errors import KernelError
from flowlenia.core.kernels import KERNEL_TYPES, generate_kernel


@pytest.mark.parametrize('kind', [k for k in KERNEL_TYPES if k != 'mexican_hat'])
def test_kernels_are_normalized(kind):
    kernel = generate_kernel(kind, 10)
    assert kernel.weights.shape == (21, 21)
    assert kernel.size == 21
    assert kernel.total == pytest.approx(1.0)
    assert kernel.weights.min() >= 0.0


def test_mexican_hat_normalized_by_absolute_sum():
    kernel = generate_kernel('mexican_hat', 10)
    assert np.sum(np.abs(kernel.weights)) == pytest.approx(1.0)
    assert kernel.weights.min() < 0.0


def test_ring_is_zero_outside_radius():
    kernel = generate_kernel('ring', 6)
    assert kernel.weights[0, 0] == 0.0
    assert kernel.weights[6, 0] > 0.0


def test_peaks_change_ring_profile():
    one = generate_kernel('ring', 12, {'peaks': 1}).weights
    two = generate_kernel('ring', 12, {'peaks': 2}).weights
    assert not np.allclose(one, two)


def test_asymmetric_kernel_leans_toward_positive_x():
    k = generate_kernel('asymmetric', 10, {'bias': 0.3}).weights
    assert k[10, 15] > k[10, 5]


def test_unused_params_are_ignored():
    kernel = generate_kernel('gaussian', 5, {'peaks': 3, 'bias': 0.2})
    assert kernel.params == {}


def test_unknown_kind_raises():
    with pytest.raises(KernelError):
        generate_kernel('hexagon', 10)


def test_radius_below_one_raises():
    with pytest.raises(ValueError):
        generate_kernel('ring', 0)
