"""
CT Project Builder Configuration

Contains constants and default settings for sinogram assembly.
"""

from dataclasses import dataclass
from typing import Optional, Tuple


# Binning factors supported by the pixel binner
VALID_BINNING_FACTORS: Tuple[int, ...] = (1, 2, 4, 8, 16, 32)


@dataclass
class ProjectConfig:
    """Default options for creating a CT project."""
    free_ray: Tuple[int, int, int, int] = (1, 128, 1, 128)  # [row1 row2 col1 col2], 1-based
    cor_fix: int = 0  # Center of rotation shift in pixels (positive = right)
    binning: int = 1  # Binning factor applied to projections
    save: bool = False  # Write the project to a .mat file
    filename: Optional[str] = None  # Output name; generated when None
    max_workers: int = 1  # Threads used for per-image processing


@dataclass
class FileLayoutConfig:
    """Naming convention of the scanner output files."""
    parameter_extension: str = ".txt"
    image_extension: str = ".tif"
    index_width: int = 4  # e.g. sample0001.tif


@dataclass
class CalibrationConfig:
    """Numerical tolerances."""
    angle_tolerance: float = 1e-12  # Relative tolerance for angle matching
    angle_count_epsilon: float = 1e-10  # Slack when expanding the angle range


# Default configurations
DEFAULT_PROJECT = ProjectConfig()
DEFAULT_FILE_LAYOUT = FileLayoutConfig()
DEFAULT_CALIBRATION = CalibrationConfig()
