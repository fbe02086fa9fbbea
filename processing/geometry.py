"""
Geometry Mapping

Expresses the physical scan geometry in the unit system used by the
projection engine: distances in effective detector pixels (binned pitch
divided by magnification) and angles in radians.
"""

from dataclasses import dataclass, replace
from typing import Optional, Sequence
import numpy as np

from core.errors import InvalidParameter, ValidationError
from core.parameters import ScanParameters


@dataclass(frozen=True, eq=False)
class NormalizedGeometry:
    """
    Fan/cone-beam geometry in effective-pixel units.

    Attributes:
        magnification: DSD / DSO, also the detector pitch in effective pixels
        source_origin_pixels: Source to rotation axis distance
        origin_detector_pixels: Rotation axis to detector distance
        angles_rad: Projection angles in radians
        detector_columns: Post-binning detector columns
        detector_rows: Post-binning detector rows (3D only)
    """
    magnification: float
    source_origin_pixels: float
    origin_detector_pixels: float
    angles_rad: np.ndarray
    detector_columns: Optional[int] = None
    detector_rows: Optional[int] = None


def normalize_geometry(
    distance_source_detector: float,
    distance_source_origin: float,
    effective_pixel_size: float,
    angles: Sequence[float]
) -> NormalizedGeometry:
    """
    Convert physical distances (mm) and angles (degrees).

    Args:
        distance_source_detector: DSD in mm
        distance_source_origin: DSO in mm
        effective_pixel_size: Binned pixel pitch / magnification, in mm
        angles: Projection angles in degrees
    """
    if effective_pixel_size <= 0:
        raise InvalidParameter(
            "effective_pixel_size", effective_pixel_size, "> 0"
        )
    distance_origin_detector = distance_source_detector - distance_source_origin
    return NormalizedGeometry(
        magnification=distance_source_detector / distance_source_origin,
        source_origin_pixels=distance_source_origin / effective_pixel_size,
        origin_detector_pixels=distance_origin_detector / effective_pixel_size,
        angles_rad=np.deg2rad(np.asarray(angles, dtype=np.float64)),
    )


def map_geometry(parameters: ScanParameters) -> NormalizedGeometry:
    """
    Normalized geometry of a created project.

    Raises:
        ValidationError: The parameters lack derived detector fields
    """
    if not parameters.is_processed:
        raise ValidationError(
            "Scan parameters have no derived detector fields; "
            "create the CT project first.",
            field="binning_post",
        )

    geometry = normalize_geometry(
        parameters.distance_source_detector,
        parameters.distance_source_origin,
        parameters.effective_pixel_size_post,
        parameters.angles,
    )
    if parameters.num_detectors_post is not None:
        columns, rows = parameters.num_detectors_post, None
    else:
        columns, rows = parameters.projection_cols, parameters.projection_rows

    return replace(geometry, detector_columns=columns, detector_rows=rows)
