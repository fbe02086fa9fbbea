"""
CT Project Transforms

Operations on an existing CtProject. Each returns a new project; the
input is never modified.
"""

from typing import Sequence
import logging
import numbers
import numpy as np

from config import DEFAULT_CALIBRATION
from core.errors import InvalidShift, ValidationError
from core.project import CtProject


def validate_shift(n) -> int:
    """Return ``n`` as an int, or raise InvalidShift."""
    if isinstance(n, bool) or not isinstance(n, numbers.Real):
        raise InvalidShift(n)
    if not float(n).is_integer():
        raise InvalidShift(n)
    return int(n)


def correct_cor(project: CtProject, n: int) -> CtProject:
    """
    Shift the center of rotation by ``n`` pixels.

    Every projection is rolled along the detector columns with circular
    boundary conditions; positive values shift right. Works for both 2D
    and 3D projects.

    Args:
        project: Project to correct
        n: Shift in pixels

    Returns:
        New CtProject with the same parameters
    """
    n = validate_shift(n)
    axis = project.column_axis
    sinograms = {
        energy_bin: np.roll(buffer, n, axis=axis)
        for energy_bin, buffer in project.sinograms.items()
    }
    logging.info(f"Center of rotation shifted by {n} pixels")
    return CtProject(
        mode=project.mode,
        parameters=project.parameters,
        sinograms=sinograms,
    )


def angle_mask(
    angles: Sequence[float],
    requested: Sequence[float],
    tolerance: float = DEFAULT_CALIBRATION.angle_tolerance
) -> np.ndarray:
    """
    Boolean mask of ``angles`` found in ``requested`` within tolerance.

    The tolerance is relative to the largest magnitude in either list.
    """
    angles = np.asarray(angles, dtype=np.float64)
    requested = np.asarray(requested, dtype=np.float64)
    if angles.size == 0 or requested.size == 0:
        return np.zeros(angles.shape, dtype=bool)

    scale = max(np.max(np.abs(angles)), np.max(np.abs(requested)))
    difference = np.abs(angles[:, np.newaxis] - requested[np.newaxis, :])
    return np.any(difference <= tolerance * scale, axis=1)


def subsample_sinogram(project: CtProject, angles: Sequence[float]) -> CtProject:
    """
    Keep only the projections taken at the given angles.

    Requested angles that are not in the project are ignored, so the
    result may hold fewer angles than requested, or none at all.

    Args:
        project: Project to subsample
        angles: Desired angles in degrees

    Returns:
        New CtProject with updated number_images and angles
    """
    requested = np.atleast_1d(np.asarray(angles))
    if requested.ndim != 1 or not (
        np.issubdtype(requested.dtype, np.integer)
        or np.issubdtype(requested.dtype, np.floating)
    ):
        raise ValidationError(
            "Parameter 'angles' must be a real-valued vector.",
            field="angles",
            value=angles,
            expected="real-valued vector",
        )

    mask = angle_mask(project.parameters.angles, requested)
    axis = project.angle_axis
    sinograms = {
        energy_bin: np.compress(mask, buffer, axis=axis)
        for energy_bin, buffer in project.sinograms.items()
    }
    kept = np.asarray(project.parameters.angles, dtype=np.float64)[mask]
    logging.info(
        f"Subsampled sinogram to {kept.size} of "
        f"{project.parameters.number_images} angles"
    )
    return CtProject(
        mode=project.mode,
        parameters=project.parameters.with_angles(kept),
        sinograms=sinograms,
    )
