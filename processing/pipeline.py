"""
CT Project Pipeline

Creates a CT project from the files written by the scanner: a scan
parameter file ``<name>.txt`` and projections ``<name>0001.tif``, ...
"""

from pathlib import Path
from typing import Callable, Optional, Sequence
import logging

from config import DEFAULT_FILE_LAYOUT, DEFAULT_PROJECT
from core.parameters import ReconstructionMode
from core.project import CtProject
from exporters.project_io import save_ct_project
from loaders.parameter_loader import read_ct_scan_parameters
from loaders.projection_loader import TiffProjectionSource

from .sinogram_builder import SinogramBuilder


def create_ct_project(
    project_name: str | Path,
    recon_mode: ReconstructionMode | str,
    free_ray: Sequence[int] = DEFAULT_PROJECT.free_ray,
    cor_fix: int = DEFAULT_PROJECT.cor_fix,
    binning: int = DEFAULT_PROJECT.binning,
    save: bool = DEFAULT_PROJECT.save,
    filename: Optional[str] = DEFAULT_PROJECT.filename,
    max_workers: int = DEFAULT_PROJECT.max_workers,
    progress_callback: Optional[Callable[[float], None]] = None
) -> CtProject:
    """
    Pre-process tomography data for reconstruction.

    Args:
        project_name: Common prefix of the project files (may include a
            directory)
        recon_mode: '2D' or '3D'
        free_ray: Unattenuated calibration area [row1 row2 col1 col2]
        cor_fix: Center of rotation correction in pixels
        binning: Binning factor, one of 1, 2, 4, 8, 16, 32
        save: Whether to write the project to a .mat file
        filename: Output filename; generated from the metadata when None
        max_workers: Threads processing projections concurrently
        progress_callback: Optional callback(progress: 0.0-1.0)

    Returns:
        The created CtProject

    Note:
        Center of rotation correction is performed before binning, and
        binning before extracting the center row of a 2D sinogram.
    """
    # Validate every option before touching any file
    mode = ReconstructionMode.parse(recon_mode)
    builder = SinogramBuilder(
        free_ray=free_ray,
        cor_fix=cor_fix,
        binning=binning,
        max_workers=max_workers,
    )

    prefix = str(project_name)
    logging.info("Reading CT scan parameter file...")
    parameters = read_ct_scan_parameters(
        prefix + DEFAULT_FILE_LAYOUT.parameter_extension
    )

    source = TiffProjectionSource(prefix, parameters.number_images)
    project = builder.build(parameters, mode, source, progress_callback)

    if save:
        save_ct_project(project, filename)
    return project
