"""
Reconstructed Volume Data Structure

Defines the structure for images reconstructed from a CT project.
"""

from dataclasses import dataclass, field
from typing import Tuple
import numpy as np


@dataclass
class ReconstructedVolume:
    """
    Reconstructed attenuation image with metadata.

    Attributes:
        data: 2D (Y, X) or 3D (Z, Y, X) array of attenuation values
        voxel_size: Voxel edge length in mm (effective pixel size)
        origin: World coordinates of volume origin
    """
    data: np.ndarray
    voxel_size: float  # mm per voxel
    origin: np.ndarray = field(default_factory=lambda: np.zeros(3))

    @property
    def shape(self) -> Tuple[int, ...]:
        return self.data.shape

    @property
    def slices(self) -> np.ndarray:
        """Data as a (Z, Y, X) stack; a 2D image is a single slice."""
        if self.data.ndim == 2:
            return self.data[np.newaxis, :, :]
        return self.data

    @property
    def num_slices(self) -> int:
        return self.slices.shape[0]

    def get_slice(self, index: int, axis: int = 0) -> np.ndarray:
        """Get a 2D slice along specified axis (0=axial, 1=coronal, 2=sagittal)."""
        stack = self.slices
        if axis == 0:
            return stack[index, :, :]
        elif axis == 1:
            return stack[:, index, :]
        else:
            return stack[:, :, index]
