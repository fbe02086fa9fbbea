"""
Scan Parameter Loader

Reads the CT scan parameter text file. The file has one ``Key = Value``
pair per line; unknown keys are ignored.
"""

from pathlib import Path
from typing import Dict, Iterable, Optional
import logging
import math

import numpy as np

from config import DEFAULT_CALIBRATION, DEFAULT_FILE_LAYOUT
from core.errors import (
    AngleCountMismatch,
    InvalidParameter,
    IOFailure,
    MalformedValue,
    MissingField,
    ValidationError,
)
from core.parameters import DetectorType, ScanParameters


REQUIRED_KEYS = (
    "ProjectName",
    "GeometryType",
    "DistanceSourceDetector",
    "DistanceSourceOrigin",
    "NumberImages",
    "AngleFirst",
    "AngleInterval",
    "AngleLast",
    "DetectorType",
    "PixelSize",
)

# File key -> ScanParameters field, kept as text
OPTIONAL_KEYS: Dict[str, str] = {
    "Scanner": "scanner",
    "Measurers": "measurers",
    "Date": "date",
    "DateFormat": "date_format",
    "DistanceUnit": "distance_unit",
    "Detector": "detector",
    "Binning": "binning",
    "PixelSizeUnit": "pixel_size_unit",
    "ExposureTime": "exposure_time",
    "ExposureTimeUnit": "exposure_time_unit",
    "Tube": "tube",
    "Target": "target",
    "Voltage": "voltage",
    "VoltageUnit": "voltage_unit",
    "Current": "current",
    "CurrentUnit": "current_unit",
    "XRayFilter": "xray_filter",
    "XRayFilterThickness": "xray_filter_thickness",
    "XRayFilterThicknessUnit": "xray_filter_thickness_unit",
}


def read_key_values(lines: Iterable[str]) -> Dict[str, str]:
    """Split ``Key = Value`` lines into a dict (later keys win)."""
    data: Dict[str, str] = {}
    for line in lines:
        if "=" not in line:
            continue
        key, value = line.split("=", 1)
        key = key.strip()
        if key:
            data[key] = value.strip()
    return data


def _require(data: Dict[str, str], key: str) -> str:
    value = data.get(key)
    if value is None or value == "":
        raise MissingField(key)
    return value


def _require_float(data: Dict[str, str], key: str) -> float:
    raw = _require(data, key)
    try:
        value = float(raw)
    except ValueError:
        raise MalformedValue(key, raw) from None
    if not math.isfinite(value):
        raise MalformedValue(key, raw, expected="a finite number")
    return value


def expand_angles(first: float, interval: float, last: float) -> np.ndarray:
    """
    Arithmetic angle sequence first, first+interval, ... up to last.

    The endpoint is included when it is reachable without overshoot.
    """
    if interval == 0:
        raise InvalidParameter("AngleInterval", interval, "non-zero")
    steps = (last - first) / interval
    count = int(math.floor(steps + DEFAULT_CALIBRATION.angle_count_epsilon)) + 1
    if count <= 0:
        return np.empty(0, dtype=np.float64)
    return first + interval * np.arange(count, dtype=np.float64)


def parse_scan_parameters(lines: Iterable[str]) -> ScanParameters:
    """
    Build validated ScanParameters from key/value lines.

    Raises:
        MissingField: A compulsory key is absent
        MalformedValue: A numeric field is not a number
        InvalidParameter: A value is out of range
        AngleCountMismatch: NumberImages disagrees with the angle range
    """
    data = read_key_values(lines)

    project_name = _require(data, "ProjectName")
    geometry_type = _require(data, "GeometryType")
    dsd = _require_float(data, "DistanceSourceDetector")
    dso = _require_float(data, "DistanceSourceOrigin")

    number_images = _require_float(data, "NumberImages")
    if number_images <= 0 or not number_images.is_integer():
        raise InvalidParameter(
            "NumberImages", data["NumberImages"], "a positive integer"
        )

    angle_first = _require_float(data, "AngleFirst")
    angle_interval = _require_float(data, "AngleInterval")
    angle_last = _require_float(data, "AngleLast")
    angles = expand_angles(angle_first, angle_interval, angle_last)
    if len(angles) != int(number_images):
        raise AngleCountMismatch(int(number_images), len(angles))

    detector_type = DetectorType.parse(_require(data, "DetectorType"))
    pixel_size = _require_float(data, "PixelSize")

    optional = {
        attr: data[key] for key, attr in OPTIONAL_KEYS.items() if data.get(key)
    }

    return ScanParameters(
        project_name=project_name,
        geometry_type=geometry_type,
        distance_source_detector=dsd,
        distance_source_origin=dso,
        number_images=int(number_images),
        angle_first=angle_first,
        angle_interval=angle_interval,
        angle_last=angle_last,
        angles=tuple(angles.tolist()),
        detector_type=detector_type,
        pixel_size=pixel_size,
        **optional,
    )


def read_ct_scan_parameters(
    filename: str | Path,
    encoding: Optional[str] = "utf-8"
) -> ScanParameters:
    """
    Read CT scan parameters from a .txt file.

    Args:
        filename: Path to the scan parameter file
        encoding: Text encoding of the file

    Returns:
        Validated ScanParameters (without derived detector fields)
    """
    path = Path(filename)
    if path.suffix != DEFAULT_FILE_LAYOUT.parameter_extension:
        raise ValidationError(
            f"Scan parameter file must be a "
            f"{DEFAULT_FILE_LAYOUT.parameter_extension} file, found: {path.name}.",
            field="filename",
            value=str(path),
            expected=DEFAULT_FILE_LAYOUT.parameter_extension,
        )

    try:
        text = path.read_text(encoding=encoding)
    except OSError as e:
        raise IOFailure(
            f"Cannot read scan parameter file {path}: {e}",
            field="filename",
            value=str(path),
        ) from e

    parameters = parse_scan_parameters(text.splitlines())
    logging.info(
        f"Read scan parameters for '{parameters.project_name}': "
        f"{parameters.number_images} images, "
        f"M = {parameters.geometric_magnification:.4f}"
    )
    return parameters
