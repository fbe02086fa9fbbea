"""
Shared fixtures: a small synthetic scan with 4 projections of 8 x 8
pixels, taken at 0, 90, 180 and 270 degrees.

Every projection has a free-ray background of 1000 counts and an
object covering the central rows and the lower half, whose intensity
depends on the angle index.
"""

from pathlib import Path
import numpy as np
import pytest

from core.base import ArrayProjectionSource
from core.parameters import DetectorType, ScanParameters


BACKGROUND = 1000.0
DETECTOR_SHAPE = (8, 8)
FREE_RAY = (1, 2, 1, 2)

SCAN_FIELDS = {
    "ProjectName": "sample",
    "Scanner": "Nikon XT H 225",
    "Measurers": "Test Lab",
    "GeometryType": "cone",
    "DistanceSourceDetector": "553.74",
    "DistanceSourceOrigin": "410.66",
    "DistanceUnit": "mm",
    "NumberImages": "4",
    "AngleFirst": "0",
    "AngleInterval": "90",
    "AngleLast": "270",
    "DetectorType": "EID",
    "PixelSize": "0.05",
    "PixelSizeUnit": "mm",
}


def _projection(index: int, shape=DETECTOR_SHAPE) -> np.ndarray:
    rows, cols = shape
    image = np.full(shape, BACKGROUND)
    image[rows // 2 - 1:, 2:cols - 2] = 500.0 + 10.0 * index
    image[rows // 2 - 1, 3] = 250.0 + index
    return image


@pytest.fixture
def scan_lines():
    """Build scan parameter file lines; None drops a key."""
    def build(**overrides):
        fields = dict(SCAN_FIELDS)
        fields.update(overrides)
        return [f"{key} = {value}" for key, value in fields.items()
                if value is not None]
    return build


@pytest.fixture
def write_scan(tmp_path, scan_lines):
    """Write ``<tmp>/sample.txt`` and return the project prefix."""
    def write(name: str = "sample", **overrides) -> Path:
        path = tmp_path / f"{name}.txt"
        path.write_text("\n".join(scan_lines(**overrides)) + "\n")
        return tmp_path / name
    return write


@pytest.fixture
def make_projection():
    return _projection


@pytest.fixture
def projections():
    return [_projection(i) for i in range(4)]


@pytest.fixture
def source(projections):
    return ArrayProjectionSource(projections)


@pytest.fixture
def parameters():
    return ScanParameters(
        project_name="sample",
        geometry_type="cone",
        distance_source_detector=553.74,
        distance_source_origin=410.66,
        number_images=4,
        angle_first=0.0,
        angle_interval=90.0,
        angle_last=270.0,
        angles=(0.0, 90.0, 180.0, 270.0),
        detector_type=DetectorType.EID,
        pixel_size=0.05,
        pixel_size_unit="mm",
    )


@pytest.fixture
def tiff_scan(write_scan, projections):
    """Scan parameter file plus ``sample0001.tif`` ... ``sample0004.tif``."""
    from skimage import io as skio

    prefix = write_scan()
    for i, image in enumerate(projections, start=1):
        skio.imsave(f"{prefix}{i:04d}.tif", image.astype(np.uint16),
                    check_contrast=False, photometric="minisblack")
    return prefix
