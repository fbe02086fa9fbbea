"""
Core Base Classes

Abstract interface for projection image sources. The sinogram builder
only needs a real-valued matrix per acquisition index; how the bytes are
decoded is up to the source.
"""

from abc import ABC, abstractmethod
from typing import Sequence
import numpy as np

from .errors import IOFailure


class ProjectionSource(ABC):
    """
    Ordered sequence of raw projection images.

    Indices are 1-based acquisition indices, matching the numbering of
    the files written by the scanner.
    """

    @abstractmethod
    def __len__(self) -> int:
        """Number of projections available."""
        pass

    @abstractmethod
    def read(self, index: int) -> np.ndarray:
        """
        Read a single projection.

        Args:
            index: 1-based acquisition index

        Returns:
            2D float64 array (rows, cols)

        Raises:
            IOFailure: If the projection cannot be read or decoded
        """
        pass

    def _check_index(self, index: int) -> None:
        if not 1 <= index <= len(self):
            raise IOFailure(
                f"Projection index {index} out of range 1..{len(self)}.",
                field="index",
                value=index,
                expected=f"1..{len(self)}",
            )


class ArrayProjectionSource(ProjectionSource):
    """Projections held in memory, e.g. from a detector SDK or a test."""

    def __init__(self, images: Sequence[np.ndarray]):
        """
        Args:
            images: Projections in acquisition order (first is index 1)
        """
        self._images = list(images)

    def __len__(self) -> int:
        return len(self._images)

    def read(self, index: int) -> np.ndarray:
        self._check_index(index)
        image = np.asarray(self._images[index - 1], dtype=np.float64)
        if image.ndim != 2:
            raise IOFailure(
                f"Projection {index} is not a 2D image (shape {image.shape}).",
                field="image",
                value=image.shape,
                expected="2D array",
            )
        return image
