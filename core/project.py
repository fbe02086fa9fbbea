"""
CT Project Data Structure

A CT project bundles the sinogram buffer(s) of a scan with its
parameters. Projects are read-only: corrections produce new projects.
"""

from dataclasses import dataclass
from enum import Enum
from types import MappingProxyType
from typing import Mapping, Optional, Tuple
import numpy as np

from .errors import ConsistencyError, ValidationError
from .parameters import DetectorType, ReconstructionMode, ScanParameters


class EnergyBin(Enum):
    """Energy channels of a photon-counting detector."""
    TOTAL = "total"
    LOW = "low"
    HIGH = "high"

    @classmethod
    def parse(cls, value) -> "EnergyBin":
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            raise ValidationError(
                f"Energy bin must be 'total', 'low' or 'high', found: {value!r}.",
                field="energy_bin",
                value=value,
                expected="total, low or high",
            ) from None


def expected_sinogram_shape(
    parameters: ScanParameters,
    mode: ReconstructionMode
) -> Tuple[int, ...]:
    """Buffer shape for parameters with derived detector fields."""
    if mode is ReconstructionMode.TWO_D:
        return (parameters.number_images, parameters.num_detectors_post)
    return (
        parameters.projection_cols,
        parameters.number_images,
        parameters.projection_rows,
    )


# Buffers each detector type must provide
REQUIRED_BINS = {
    DetectorType.EID: (EnergyBin.TOTAL,),
    DetectorType.PCD: (EnergyBin.TOTAL, EnergyBin.LOW, EnergyBin.HIGH),
}


@dataclass(frozen=True, eq=False)
class CtProject:
    """
    Sinogram(s) and imaging parameters of a CT scan.

    Sinogram layout follows ``mode.axes``:
        2D: (angle, column)         shape [number_images, columns]
        3D: (column, angle, row)    shape [columns, number_images, rows]

    Attributes:
        mode: 2D or 3D reconstruction mode
        parameters: Scan parameters including derived detector fields
        sinograms: One read-only buffer per energy bin
    """
    mode: ReconstructionMode
    parameters: ScanParameters
    sinograms: Mapping[EnergyBin, np.ndarray]

    def __post_init__(self):
        mode = ReconstructionMode.parse(self.mode)
        object.__setattr__(self, "mode", mode)

        required = REQUIRED_BINS[self.parameters.detector_type]
        given = {EnergyBin.parse(k): v for k, v in self.sinograms.items()}
        if set(given) != set(required):
            raise ConsistencyError(
                f"{self.parameters.detector_type.value} project requires "
                f"sinogram(s) {[b.value for b in required]}, "
                f"found {[b.value for b in given]}.",
                field="sinograms",
                value=[b.value for b in given],
                expected=str([b.value for b in required]),
            )

        ndim = len(mode.axes)
        owned = {}
        for energy_bin, buffer in given.items():
            array = np.array(buffer, dtype=np.float64)
            if array.ndim != ndim:
                raise ConsistencyError(
                    f"{mode.value} sinogram must have {ndim} dimensions, "
                    f"found shape {array.shape}.",
                    field="sinogram",
                    value=array.shape,
                    expected=f"{ndim} dimensions",
                )
            if array.shape[mode.angle_axis] != self.parameters.number_images:
                raise ConsistencyError(
                    f"Sinogram holds {array.shape[mode.angle_axis]} angles, "
                    f"parameters declare {self.parameters.number_images}.",
                    field="number_images",
                    value=array.shape[mode.angle_axis],
                    expected=str(self.parameters.number_images),
                )
            array.flags.writeable = False
            owned[energy_bin] = array
        object.__setattr__(self, "sinograms", MappingProxyType(owned))

    @property
    def type(self) -> str:
        """'2D' or '3D'."""
        return self.mode.value

    @property
    def angle_axis(self) -> int:
        return self.mode.angle_axis

    @property
    def column_axis(self) -> int:
        return self.mode.column_axis

    @property
    def shape(self) -> Tuple[int, ...]:
        return self.get_sinogram(EnergyBin.TOTAL).shape

    @property
    def sinogram(self) -> np.ndarray:
        """The total-energy sinogram (the only one for EID data)."""
        return self.sinograms[EnergyBin.TOTAL]

    def get_sinogram(self, energy_bin: Optional[EnergyBin] = None) -> np.ndarray:
        """
        Select a sinogram buffer.

        EID projects ignore ``energy_bin``. PCD projects require one of
        'total', 'low' or 'high'.
        """
        if self.parameters.detector_type is DetectorType.EID:
            return self.sinograms[EnergyBin.TOTAL]
        if energy_bin is None:
            raise ValidationError(
                "For PCD data, specify energy bin (total, low or high).",
                field="energy_bin",
                expected="total, low or high",
            )
        return self.sinograms[EnergyBin.parse(energy_bin)]
