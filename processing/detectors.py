"""
Detector Assembly Strategies

Each detector technology produces its own set of sinogram buffers.
Energy-integrating detectors yield a single buffer; photon-counting
detectors need per-energy-bin calibration, which this pipeline does
not provide.
"""

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Callable, Dict, Optional
import logging
import numpy as np

from core.base import ProjectionSource
from core.errors import UnsupportedDetector
from core.parameters import DetectorType, ReconstructionMode, ScanParameters
from core.project import EnergyBin, expected_sinogram_shape

if TYPE_CHECKING:
    from .sinogram_builder import SinogramBuilder


class AssemblyStrategy(ABC):
    """Turns a projection source into the sinogram buffers of a project."""

    @property
    @abstractmethod
    def detector_type(self) -> DetectorType:
        pass

    @abstractmethod
    def check_supported(self) -> None:
        """Raise UnsupportedDetector if this pipeline cannot build the data."""
        pass

    @abstractmethod
    def assemble(
        self,
        builder: "SinogramBuilder",
        parameters: ScanParameters,
        mode: ReconstructionMode,
        source: ProjectionSource,
        progress_callback: Optional[Callable[[float], None]] = None,
        first_image: Optional[np.ndarray] = None
    ) -> Dict[EnergyBin, np.ndarray]:
        pass


class EnergyIntegratingAssembly(AssemblyStrategy):
    """Single log-transformed sinogram from an energy-integrating detector."""

    @property
    def detector_type(self) -> DetectorType:
        return DetectorType.EID

    def check_supported(self) -> None:
        return None

    def assemble(
        self,
        builder: "SinogramBuilder",
        parameters: ScanParameters,
        mode: ReconstructionMode,
        source: ProjectionSource,
        progress_callback: Optional[Callable[[float], None]] = None,
        first_image: Optional[np.ndarray] = None
    ) -> Dict[EnergyBin, np.ndarray]:
        logging.info(
            "Found CT scan collected with an energy-integrating X-ray detector."
        )
        shape = expected_sinogram_shape(parameters, mode)
        sinogram = np.zeros(shape, dtype=np.float64)
        angle_axis = mode.angle_axis
        rows = None
        if mode is ReconstructionMode.TWO_D:
            # 0-based index of the 1-based row rows_post / 2
            rows_post = parameters.detector_rows // parameters.binning_post
            center_row = max(rows_post // 2 - 1, 0)
            rows = slice(center_row, center_row + 1)

        def insert(index: int, calibrated: np.ndarray) -> None:
            if mode is ReconstructionMode.TWO_D:
                sinogram[index, :] = calibrated[0, :]
            else:
                # (rows, cols) -> (cols, rows) slice at this angle
                np.moveaxis(sinogram, angle_axis, 0)[index] = calibrated.T

        builder.process_all(
            source,
            (parameters.detector_rows, parameters.detector_cols),
            insert,
            progress_callback,
            rows=rows,
            first_image=first_image,
        )
        return {EnergyBin.TOTAL: sinogram}


class PhotonCountingAssembly(AssemblyStrategy):
    """Placeholder for photon-counting data, which needs energy thresholds."""

    @property
    def detector_type(self) -> DetectorType:
        return DetectorType.PCD

    def check_supported(self) -> None:
        raise UnsupportedDetector(self.detector_type.value, supported="EID")

    def assemble(
        self,
        builder: "SinogramBuilder",
        parameters: ScanParameters,
        mode: ReconstructionMode,
        source: ProjectionSource,
        progress_callback: Optional[Callable[[float], None]] = None,
        first_image: Optional[np.ndarray] = None
    ) -> Dict[EnergyBin, np.ndarray]:
        raise UnsupportedDetector(self.detector_type.value, supported="EID")


_STRATEGIES = {
    DetectorType.EID: EnergyIntegratingAssembly,
    DetectorType.PCD: PhotonCountingAssembly,
}


def get_assembly_strategy(detector_type: DetectorType) -> AssemblyStrategy:
    """
    Get the assembly strategy for a detector type.

    Args:
        detector_type: Detector technology from the scan parameters

    Returns:
        AssemblyStrategy instance
    """
    return _STRATEGIES[DetectorType.parse(detector_type)]()
