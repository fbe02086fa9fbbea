"""
Projection Image Loader

Reads the numbered TIFF projections written by the scanner, e.g.
``sample0001.tif``, ``sample0002.tif``, ...
"""

from pathlib import Path
from typing import Optional
import logging
import numpy as np

try:
    from skimage import io as skio
    HAS_SKIMAGE = True
except ImportError:
    HAS_SKIMAGE = False

from config import DEFAULT_FILE_LAYOUT, FileLayoutConfig
from core.base import ProjectionSource
from core.errors import IOFailure


class TiffProjectionSource(ProjectionSource):
    """
    Projection source backed by a numbered TIFF stack on disk.

    Files are named ``{prefix}{index:0{width}d}{extension}``, so the
    prefix is usually the project name, possibly with a directory.
    """

    def __init__(
        self,
        prefix: str | Path,
        count: int,
        layout: Optional[FileLayoutConfig] = None
    ):
        """
        Args:
            prefix: Path prefix shared by all projection files
            count: Number of projections (NumberImages)
            layout: File naming convention (default: 4-digit .tif)
        """
        if not HAS_SKIMAGE:
            raise ImportError(
                "scikit-image is required for reading projections. "
                "Install with: pip install scikit-image"
            )
        self.prefix = str(prefix)
        self.count = int(count)
        self.layout = layout or DEFAULT_FILE_LAYOUT

    def __len__(self) -> int:
        return self.count

    def path_for(self, index: int) -> Path:
        """File path of the projection with the given 1-based index."""
        return Path(
            f"{self.prefix}{index:0{self.layout.index_width}d}"
            f"{self.layout.image_extension}"
        )

    def read(self, index: int) -> np.ndarray:
        self._check_index(index)
        path = self.path_for(index)
        try:
            image = skio.imread(str(path))
        except (OSError, ValueError) as e:
            raise IOFailure(
                f"Cannot read projection {path}: {e}",
                field="image",
                value=str(path),
            ) from e

        image = np.asarray(image, dtype=np.float64)
        if image.ndim != 2:
            raise IOFailure(
                f"Projection {path} is not a single-channel image "
                f"(shape {image.shape}).",
                field="image",
                value=image.shape,
                expected="2D array",
            )
        logging.debug(f"Read projection {path} {image.shape}")
        return image
