import numpy as np
import pytest

from core.errors import InvalidBinningFactor, NonDivisibleDimensions, ValidationError
from processing.binning import bin_pixels, validate_binning_factor


def test_bin_by_two_sums_blocks():
    image = np.arange(16, dtype=float).reshape(4, 4)
    binned = bin_pixels(image, 2)

    expected = np.array([[0 + 1 + 4 + 5, 2 + 3 + 6 + 7],
                         [8 + 9 + 12 + 13, 10 + 11 + 14 + 15]], dtype=float)
    np.testing.assert_array_equal(binned, expected)


@pytest.mark.parametrize("n", [1, 2, 4, 8, 16, 32])
def test_binning_conserves_total_intensity(n):
    rng = np.random.default_rng(0)
    image = rng.uniform(0, 100, size=(64, 32))

    binned = bin_pixels(image, n)

    assert binned.shape == (64 // n, 32 // n)
    assert binned.sum() == pytest.approx(image.sum())


def test_factor_one_returns_copy():
    image = np.ones((3, 5))
    binned = bin_pixels(image, 1)

    np.testing.assert_array_equal(binned, image)
    binned[0, 0] = 7
    assert image[0, 0] == 1


@pytest.mark.parametrize("first,second", [(2, 2), (4, 8), (8, 4), (2, 16)])
def test_binning_composes(first, second):
    rng = np.random.default_rng(1)
    image = rng.uniform(size=(64, 64))

    np.testing.assert_allclose(bin_pixels(bin_pixels(image, first), second),
                               bin_pixels(image, first * second))


@pytest.mark.parametrize("n", [0, 3, 6, 64, 2.5, True, "2"])
def test_unsupported_factor(n):
    with pytest.raises(InvalidBinningFactor):
        bin_pixels(np.ones((64, 64)), n)


def test_validate_accepts_integral_float():
    assert validate_binning_factor(4.0) == 4


def test_non_divisible_dimensions():
    with pytest.raises(NonDivisibleDimensions) as excinfo:
        bin_pixels(np.ones((6, 8)), 4)
    assert excinfo.value.field == "binning"


def test_non_2d_image():
    with pytest.raises(ValidationError) as excinfo:
        bin_pixels(np.ones((2, 4, 4)), 2)
    assert excinfo.value.field == "image"
    assert excinfo.value.value == (2, 4, 4)
