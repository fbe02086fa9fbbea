"""
Processing package for CT projects.

Contains the sinogram assembly pipeline: pixel binning, intensity
calibration, geometry normalization and project transforms.
"""

from .binning import bin_pixels
from .calibration import background_intensity, calibrate
from .geometry import NormalizedGeometry, normalize_geometry, map_geometry
from .detectors import (
    AssemblyStrategy,
    EnergyIntegratingAssembly,
    PhotonCountingAssembly,
    get_assembly_strategy,
)
from .sinogram_builder import SinogramBuilder
from .transforms import correct_cor, subsample_sinogram
from .pipeline import create_ct_project

__all__ = [
    "bin_pixels",
    "background_intensity",
    "calibrate",
    "NormalizedGeometry",
    "normalize_geometry",
    "map_geometry",
    "AssemblyStrategy",
    "EnergyIntegratingAssembly",
    "PhotonCountingAssembly",
    "get_assembly_strategy",
    "SinogramBuilder",
    "correct_cor",
    "subsample_sinogram",
    "create_ct_project",
]
