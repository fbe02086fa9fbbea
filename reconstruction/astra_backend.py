"""
ASTRA Reconstruction Backend

Fan-beam (2D) and cone-beam (3D) reconstruction with the ASTRA Toolbox.
Distances are handed to ASTRA in effective-pixel units, so reconstructed
voxels have the effective pixel size of the project.
"""

from typing import Optional, Sequence, Tuple
import logging
import time
import numpy as np

try:
    import astra
    HAS_ASTRA = True
except ImportError:
    HAS_ASTRA = False
    astra = None

from core.parameters import ReconstructionMode
from core.project import CtProject, EnergyBin
from processing.geometry import NormalizedGeometry, map_geometry

from .base import ReconstructionBackend, require_mode, validate_dims
from .volume import ReconstructedVolume


def fan_projection_geometry(geometry: NormalizedGeometry) -> dict:
    """ASTRA 'fanflat' geometry; detector pitch is M effective pixels."""
    return astra.create_proj_geom(
        "fanflat",
        geometry.magnification,
        geometry.detector_columns,
        geometry.angles_rad,
        geometry.source_origin_pixels,
        geometry.origin_detector_pixels,
    )


def cone_projection_geometry(geometry: NormalizedGeometry) -> dict:
    """ASTRA 'cone' geometry with square M x M detector pixels."""
    return astra.create_proj_geom(
        "cone",
        geometry.magnification,
        geometry.magnification,
        geometry.detector_rows,
        geometry.detector_columns,
        geometry.angles_rad,
        geometry.source_origin_pixels,
        geometry.origin_detector_pixels,
    )


def volume_geometry(dims: Tuple[int, ...]) -> dict:
    """
    ASTRA volume geometry for (x, y) or (x, y, z).

    ASTRA orders volume dimensions (rows, cols[, slices]), so x is passed
    second and counts columns. MATLAB scripts that call
    astra_create_vol_geom(xDim, yDim, zDim) pass x first and get x rows
    instead; both agree for square slices, but for xDim != yDim the
    reconstruction here is the transpose of theirs.
    """
    if len(dims) == 2:
        x_dim, y_dim = dims
        return astra.create_vol_geom(y_dim, x_dim)
    x_dim, y_dim, z_dim = dims
    return astra.create_vol_geom(y_dim, x_dim, z_dim)


def to_astra_projections(sinogram: np.ndarray) -> np.ndarray:
    """Reorder a [cols, angles, rows] sinogram to ASTRA's (rows, angles, cols)."""
    return np.ascontiguousarray(np.transpose(sinogram, (2, 1, 0)), dtype=np.float32)


class AstraBackend(ReconstructionBackend):
    """
    Reconstruction with the ASTRA Toolbox.

    FBP and FDK run on the GPU (FBP_CUDA, FDK_CUDA); the 2D forward
    operator and system matrix use the CPU strip projector.
    """

    def __init__(self):
        if not HAS_ASTRA:
            raise ImportError(
                "astra-toolbox is required for reconstruction. "
                "Install it with: pip install astra-toolbox"
            )
        logging.info("ASTRA Backend initialized")

    @property
    def name(self) -> str:
        return "ASTRA Toolbox"

    def reconstruct(
        self,
        project: CtProject,
        dims: Sequence[int],
        energy_bin: Optional[EnergyBin] = None
    ) -> ReconstructedVolume:
        dims = validate_dims(dims, project.mode)
        sinogram = project.get_sinogram(energy_bin)
        geometry = map_geometry(project.parameters)

        start_time = time.perf_counter()
        if project.mode is ReconstructionMode.TWO_D:
            logging.info(f"Running FBP_CUDA in {self.name} for {dims} image...")
            data = self._run_fbp(sinogram, geometry, dims)
        else:
            logging.info(f"Running FDK_CUDA in {self.name} for {dims} volume...")
            data = self._run_fdk(sinogram, geometry, dims)
        logging.info(
            f"Reconstruction finished in {time.perf_counter() - start_time:.2f}s"
        )

        voxel_size = project.parameters.effective_pixel_size_post
        return ReconstructedVolume(
            data=data,
            voxel_size=voxel_size,
            origin=_centered_origin(dims, voxel_size),
        )

    def forward_operator(self, project: CtProject, dims: Sequence[int]):
        """
        ``astra.OpTomo`` for the project geometry.

        The operator keeps its ASTRA projector alive; it expects volumes
        of shape (y, x) or (z, y, x) and produces sinograms in ASTRA order,
        (angles, columns) or (rows, angles, columns).
        """
        dims = validate_dims(dims, project.mode)
        geometry = map_geometry(project.parameters)
        vol_geom = volume_geometry(dims)

        if project.mode is ReconstructionMode.TWO_D:
            proj_geom = fan_projection_geometry(geometry)
            projector_id = astra.create_projector("strip_fanflat", proj_geom, vol_geom)
            delete = astra.projector.delete
        else:
            proj_geom = cone_projection_geometry(geometry)
            projector_id = astra.create_projector("cuda3d", proj_geom, vol_geom)
            delete = astra.projector3d.delete

        try:
            operator = astra.OpTomo(projector_id)
        except Exception:
            delete(projector_id)
            raise
        logging.info(f"Created {project.type} forward operator {operator.shape}")
        return operator

    def system_matrix(self, project: CtProject, dims: Sequence[int]):
        """
        Explicit 2D fan-beam projection matrix as a scipy sparse matrix.

        Rows index (angle, detector) pairs, columns index (y, x) pixels.
        """
        require_mode(project, ReconstructionMode.TWO_D)
        dims = validate_dims(dims, project.mode)
        geometry = map_geometry(project.parameters)

        proj_geom = fan_projection_geometry(geometry)
        vol_geom = volume_geometry(dims)
        projector_id = astra.create_projector("strip_fanflat", proj_geom, vol_geom)
        matrix_id = None
        try:
            matrix_id = astra.projector.matrix(projector_id)
            matrix = astra.matrix.get(matrix_id)
        finally:
            if matrix_id is not None:
                astra.matrix.delete(matrix_id)
            astra.projector.delete(projector_id)

        logging.info(f"Created system matrix {matrix.shape}, {matrix.nnz} non-zeros")
        return matrix

    def _run_fbp(
        self,
        sinogram: np.ndarray,
        geometry: NormalizedGeometry,
        dims: Tuple[int, int]
    ) -> np.ndarray:
        proj_geom = fan_projection_geometry(geometry)
        vol_geom = volume_geometry(dims)

        recon_id = astra.data2d.create("-vol", vol_geom, 0)
        sino_id = None
        algorithm_id = None
        try:
            sino_id = astra.data2d.create("-sino", proj_geom, sinogram)
            cfg = astra.astra_dict("FBP_CUDA")
            cfg["ReconstructionDataId"] = recon_id
            cfg["ProjectionDataId"] = sino_id
            algorithm_id = astra.algorithm.create(cfg)
            astra.algorithm.run(algorithm_id)
            return astra.data2d.get(recon_id)
        finally:
            if algorithm_id is not None:
                astra.algorithm.delete(algorithm_id)
            if sino_id is not None:
                astra.data2d.delete(sino_id)
            astra.data2d.delete(recon_id)

    def _run_fdk(
        self,
        sinogram: np.ndarray,
        geometry: NormalizedGeometry,
        dims: Tuple[int, int, int]
    ) -> np.ndarray:
        proj_geom = cone_projection_geometry(geometry)
        vol_geom = volume_geometry(dims)

        recon_id = astra.data3d.create("-vol", vol_geom, 0)
        proj_id = None
        algorithm_id = None
        try:
            proj_id = astra.data3d.create(
                "-proj3d", proj_geom, to_astra_projections(sinogram)
            )
            cfg = astra.astra_dict("FDK_CUDA")
            cfg["ReconstructionDataId"] = recon_id
            cfg["ProjectionDataId"] = proj_id
            algorithm_id = astra.algorithm.create(cfg)
            astra.algorithm.run(algorithm_id)
            return astra.data3d.get(recon_id)
        finally:
            if algorithm_id is not None:
                astra.algorithm.delete(algorithm_id)
            if proj_id is not None:
                astra.data3d.delete(proj_id)
            astra.data3d.delete(recon_id)


def _centered_origin(dims: Tuple[int, ...], voxel_size: float) -> np.ndarray:
    """World position (x, y, z) of the first voxel, volume centered on the axis."""
    extent = np.zeros(3)
    extent[:len(dims)] = np.asarray(dims, dtype=np.float64) - 1
    return -extent / 2 * voxel_size
