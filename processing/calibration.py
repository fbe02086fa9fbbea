"""
Intensity Calibration

Converts detector readings to attenuation via the Beer-Lambert law,
using the unattenuated (free-ray) intensity as reference:

    A = -ln(I / I0)
"""

import numpy as np

from core.errors import NonFiniteAttenuation, NonPositiveBackground


def background_intensity(window: np.ndarray) -> float:
    """Mean pixel value of the free-ray window."""
    return float(np.mean(window))


def calibrate(image: np.ndarray, background: float) -> np.ndarray:
    """
    Log-transform a projection into attenuation values.

    Args:
        image: Raw (optionally binned) projection
        background: Free-ray intensity I0 on the same binning scale

    Returns:
        Attenuation image of the same shape

    Raises:
        NonPositiveBackground: background is zero, negative or not finite
        NonFiniteAttenuation: some pixel reading is zero or negative
    """
    if not np.isfinite(background) or background <= 0:
        raise NonPositiveBackground(background)

    image = np.asarray(image, dtype=np.float64)
    with np.errstate(divide="ignore", invalid="ignore"):
        attenuation = -np.log(image / background)

    bad = np.count_nonzero(~np.isfinite(attenuation))
    if bad:
        raise NonFiniteAttenuation(bad)
    return attenuation
