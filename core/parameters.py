"""
CT Scan Parameters

Immutable description of a single CT scan: acquisition geometry,
detector, X-ray source and the detector fields derived while the
project is created.

All distances are in millimeters and all angles in degrees.
"""

from dataclasses import dataclass, fields, replace
from enum import Enum
from typing import Any, Dict, Optional, Tuple

from .errors import AngleCountMismatch, InvalidParameter, MalformedValue


class DetectorType(Enum):
    """X-ray detector technologies."""
    EID = "EID"  # Energy-integrating detector
    PCD = "PCD"  # Photon-counting detector

    @classmethod
    def parse(cls, value: Any) -> "DetectorType":
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().upper())
        except ValueError:
            raise MalformedValue(
                "DetectorType", value, expected="one of 'EID', 'PCD'"
            ) from None


class ReconstructionMode(Enum):
    """Sinogram dimensionality and its axis layout."""
    TWO_D = "2D"
    THREE_D = "3D"

    @classmethod
    def parse(cls, value: Any) -> "ReconstructionMode":
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().upper())
        except ValueError:
            raise MalformedValue(
                "reconMode", value, expected="'2D' or '3D'"
            ) from None

    @property
    def axes(self) -> Tuple[str, ...]:
        """Names of the sinogram axes, in storage order."""
        if self is ReconstructionMode.TWO_D:
            return ("angle", "column")
        return ("column", "angle", "row")

    @property
    def angle_axis(self) -> int:
        return self.axes.index("angle")

    @property
    def column_axis(self) -> int:
        return self.axes.index("column")


@dataclass(frozen=True)
class ScanParameters:
    """
    Metadata of a CT scan.

    Fields without a default are compulsory in the scan parameter file.
    Detector fields below ``detector_rows`` are populated only once a
    project has been created, via ``with_detector``.
    """
    project_name: str
    geometry_type: str
    distance_source_detector: float  # mm
    distance_source_origin: float  # mm
    number_images: int
    angle_first: float  # degrees
    angle_interval: float  # degrees
    angle_last: float  # degrees
    angles: Tuple[float, ...]
    detector_type: DetectorType
    pixel_size: float  # mm, raw detector pitch

    # Informational fields
    scanner: Optional[str] = None
    measurers: Optional[str] = None
    date: Optional[str] = None
    date_format: Optional[str] = None
    distance_unit: Optional[str] = None
    detector: Optional[str] = None
    binning: Optional[str] = None
    pixel_size_unit: Optional[str] = None
    exposure_time: Optional[str] = None
    exposure_time_unit: Optional[str] = None
    tube: Optional[str] = None
    target: Optional[str] = None
    voltage: Optional[str] = None
    voltage_unit: Optional[str] = None
    current: Optional[str] = None
    current_unit: Optional[str] = None
    xray_filter: Optional[str] = None
    xray_filter_thickness: Optional[str] = None
    xray_filter_thickness_unit: Optional[str] = None

    # Derived while creating a project
    detector_rows: Optional[int] = None
    detector_cols: Optional[int] = None
    free_ray: Optional[Tuple[int, int, int, int]] = None
    binning_post: Optional[int] = None
    num_detectors_post: Optional[int] = None  # 2D only
    projection_rows: Optional[int] = None  # 3D only
    projection_cols: Optional[int] = None  # 3D only

    def __post_init__(self):
        object.__setattr__(
            self, "angles", tuple(float(a) for a in self.angles)
        )
        if self.number_images != len(self.angles):
            raise AngleCountMismatch(self.number_images, len(self.angles))
        if self.distance_source_detector <= 0:
            raise InvalidParameter(
                "DistanceSourceDetector", self.distance_source_detector, "> 0"
            )
        if not 0 < self.distance_source_origin < self.distance_source_detector:
            raise InvalidParameter(
                "DistanceSourceOrigin",
                self.distance_source_origin,
                f"between 0 and {self.distance_source_detector} (exclusive)",
            )
        if self.pixel_size <= 0:
            raise InvalidParameter("PixelSize", self.pixel_size, "> 0")

    @property
    def geometric_magnification(self) -> float:
        """DSD / DSO, always greater than one."""
        return self.distance_source_detector / self.distance_source_origin

    @property
    def pixel_size_post(self) -> Optional[float]:
        """Detector pitch after binning (mm)."""
        if self.binning_post is None:
            return None
        return self.pixel_size * self.binning_post

    @property
    def effective_pixel_size_post(self) -> Optional[float]:
        """Binned pitch projected back to the rotation axis (mm)."""
        if self.binning_post is None:
            return None
        return self.pixel_size_post / self.geometric_magnification

    @property
    def is_processed(self) -> bool:
        return self.binning_post is not None

    def with_detector(
        self,
        rows: int,
        cols: int,
        free_ray: Tuple[int, int, int, int],
        binning: int,
        mode: ReconstructionMode
    ) -> "ScanParameters":
        """
        Return a copy augmented with the detector-derived fields.

        Args:
            rows: Raw detector rows (from the first projection)
            cols: Raw detector columns
            free_ray: Calibration window [row1, row2, col1, col2], 1-based
            binning: Binning factor actually applied
            mode: Reconstruction mode selecting which counts are stored
        """
        derived: Dict[str, Any] = dict(
            detector_rows=int(rows),
            detector_cols=int(cols),
            free_ray=tuple(int(v) for v in free_ray),
            binning_post=int(binning),
            num_detectors_post=None,
            projection_rows=None,
            projection_cols=None,
        )
        if mode is ReconstructionMode.TWO_D:
            derived["num_detectors_post"] = int(cols) // int(binning)
        else:
            derived["projection_rows"] = int(rows) // int(binning)
            derived["projection_cols"] = int(cols) // int(binning)
        return replace(self, **derived)

    def with_angles(self, angles) -> "ScanParameters":
        """Return a copy restricted to the given angle list."""
        angles = tuple(float(a) for a in angles)
        return replace(self, angles=angles, number_images=len(angles))

    def to_dict(self) -> Dict[str, Any]:
        """Flatten to plain values, skipping unset optional fields."""
        result: Dict[str, Any] = {}
        for f in fields(self):
            value = getattr(self, f.name)
            if value is None:
                continue
            if isinstance(value, Enum):
                value = value.value
            elif isinstance(value, tuple):
                value = list(value)
            result[f.name] = value
        return result

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ScanParameters":
        """Inverse of ``to_dict``; tolerates array-valued and squeezed entries."""
        known = {f.name for f in fields(cls)}
        kwargs: Dict[str, Any] = {}
        for key, value in data.items():
            if key not in known:
                continue
            kwargs[key] = value

        kwargs["angles"] = _as_float_tuple(kwargs.get("angles", ()))
        kwargs["detector_type"] = DetectorType.parse(kwargs["detector_type"])
        kwargs["number_images"] = int(kwargs["number_images"])
        for name in (
            "distance_source_detector", "distance_source_origin",
            "angle_first", "angle_interval", "angle_last", "pixel_size",
        ):
            kwargs[name] = float(kwargs[name])
        for name in (
            "detector_rows", "detector_cols", "binning_post",
            "num_detectors_post", "projection_rows", "projection_cols",
        ):
            if name in kwargs:
                kwargs[name] = int(kwargs[name])
        if "free_ray" in kwargs:
            kwargs["free_ray"] = tuple(
                int(v) for v in _as_float_tuple(kwargs["free_ray"])
            )
        for f in fields(cls):
            if f.type == Optional[str] and f.name in kwargs:
                kwargs[f.name] = str(kwargs[f.name])
        return cls(**kwargs)


def _as_float_tuple(value) -> Tuple[float, ...]:
    """Normalize scalars, lists and numpy arrays to a tuple of floats."""
    if hasattr(value, "ravel"):
        value = value.ravel().tolist()
    elif not isinstance(value, (list, tuple)):
        value = [value]
    return tuple(float(v) for v in value)
