"""
Pixel Binning

Sums non-overlapping n x n blocks of a detector image. Binning raises
signal-to-noise ratio at the cost of spatial resolution.
"""

import numbers
import numpy as np

from config import VALID_BINNING_FACTORS
from core.errors import InvalidBinningFactor, NonDivisibleDimensions, ValidationError


def validate_binning_factor(n) -> int:
    """Return ``n`` as an int, or raise InvalidBinningFactor."""
    if isinstance(n, bool) or not isinstance(n, numbers.Real):
        raise InvalidBinningFactor(n)
    if n not in VALID_BINNING_FACTORS:
        raise InvalidBinningFactor(n)
    return int(n)


def bin_pixels(image: np.ndarray, n: int) -> np.ndarray:
    """
    Bin an image by summing n x n pixel blocks.

    Args:
        image: 2D image (rows, cols)
        n: Binning factor, one of 1, 2, 4, 8, 16, 32

    Returns:
        Image of shape (rows / n, cols / n); each pixel is the sum
        (not the mean) of its block

    Raises:
        ValidationError: image is not 2D
        InvalidBinningFactor: n is not a supported factor
        NonDivisibleDimensions: n does not divide both dimensions
    """
    n = validate_binning_factor(n)
    image = np.asarray(image, dtype=np.float64)
    if image.ndim != 2:
        raise ValidationError(
            f"bin_pixels expects a 2D image, got shape {image.shape}",
            field="image",
            value=image.shape,
            expected="2D array",
        )

    rows, cols = image.shape
    if rows % n != 0 or cols % n != 0:
        raise NonDivisibleDimensions(image.shape, n)

    if n == 1:
        return image.copy()
    return image.reshape(rows // n, n, cols // n, n).sum(axis=(1, 3))
