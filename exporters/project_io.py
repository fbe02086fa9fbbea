"""
CT Project Persistence

Saves and loads CT projects as MATLAB .mat files, so that projects can
be exchanged with existing MATLAB tomography code.
"""

from pathlib import Path
from typing import Optional
import logging

import numpy as np
from scipy import io as sio

from core.errors import IOFailure, ValidationError
from core.parameters import ReconstructionMode, ScanParameters
from core.project import CtProject, EnergyBin, expected_sinogram_shape


def default_project_filename(project: CtProject) -> str:
    """
    Output name generated from the project metadata.

    Format: ``{projectName}ct_project_{2d|3d}_binning_{factor}``
    """
    parameters = project.parameters
    first_part = parameters.project_name or "unknown"
    return (
        f"{first_part}ct_project_{project.type.lower()}"
        f"_binning_{parameters.binning_post}"
    )


def save_ct_project(
    project: CtProject,
    filename: Optional[str] = None,
    directory: str | Path = "."
) -> Path:
    """
    Save a CT project into a .mat file.

    Args:
        project: Project to save
        filename: Output name, used verbatim; generated when None or empty
        directory: Directory to write into

    Returns:
        Path of the written file
    """
    if filename is not None and not isinstance(filename, str):
        raise ValidationError(
            "Filename must be a string.",
            field="filename",
            value=filename,
            expected="str",
        )
    name = filename if filename else default_project_filename(project)
    path = Path(directory) / name
    if path.suffix != ".mat":
        path = path.with_name(path.name + ".mat")

    contents = {
        "type": project.type,
        "parameters": project.parameters.to_dict(),
    }
    for energy_bin, buffer in project.sinograms.items():
        contents[_sinogram_key(energy_bin)] = buffer

    logging.info("Saving CT project...")
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        sio.savemat(path, {"CtData": contents}, do_compression=True)
    except OSError as e:
        raise IOFailure(
            f"Cannot write CT project {path}: {e}",
            field="filename",
            value=str(path),
        ) from e

    logging.info(f"CT project saved as {path}.")
    return path


def load_ct_project(path: str | Path) -> CtProject:
    """
    Load a CT project written by ``save_ct_project``.

    Args:
        path: .mat file path

    Returns:
        The stored CtProject
    """
    path = Path(path)
    try:
        contents = sio.loadmat(path, simplify_cells=True)["CtData"]
    except (OSError, ValueError, KeyError) as e:
        raise IOFailure(
            f"Cannot read CT project {path}: {e}",
            field="filename",
            value=str(path),
        ) from e

    parameters = ScanParameters.from_dict(contents["parameters"])
    mode = ReconstructionMode.parse(contents["type"])
    # loadmat squeezes singleton axes away
    shape = expected_sinogram_shape(parameters, mode)
    sinograms = {
        energy_bin: np.reshape(contents[_sinogram_key(energy_bin)], shape)
        for energy_bin in EnergyBin
        if _sinogram_key(energy_bin) in contents
    }
    project = CtProject(
        mode=mode,
        parameters=parameters,
        sinograms=sinograms,
    )
    logging.info(f"Loaded CT project {path}: sinogram {project.shape}")
    return project


def _sinogram_key(energy_bin: EnergyBin) -> str:
    if energy_bin is EnergyBin.TOTAL:
        return "sinogram"
    return f"sinogram{energy_bin.value.capitalize()}"
