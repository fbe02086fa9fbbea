"""
Sinogram Builder

Assembles raw projection images into a calibrated sinogram.

Per projection, in this order:
1. Extract the free-ray window from the raw image
2. Shift the raw image along the detector columns (center of rotation fix)
3. Bin the image and the window with the same factor
4. Take the mean of the window as background intensity
5. Log-transform the image against the background
6. Insert the result into the sinogram at the projection's angle index
"""

from typing import Callable, Optional, Sequence, Tuple
import concurrent.futures
import logging
import numbers
import time
import numpy as np

from config import DEFAULT_PROJECT
from core.base import ProjectionSource
from core.errors import (
    ConsistencyError,
    InconsistentImageShape,
    InvalidParameter,
    NonDivisibleDimensions,
)
from core.parameters import ReconstructionMode, ScanParameters
from core.project import CtProject

from .binning import bin_pixels, validate_binning_factor
from .calibration import background_intensity, calibrate
from .detectors import get_assembly_strategy
from .transforms import validate_shift


FREE_RAY_EXPECTED = (
    "[row1, row2, col1, col2] of positive integers "
    "with row1 < row2 and col1 < col2"
)


def validate_free_ray(free_ray: Sequence) -> Tuple[int, int, int, int]:
    """Return the free-ray window as four ints, or raise InvalidParameter."""
    values = list(np.ravel(free_ray)) if free_ray is not None else []
    if len(values) != 4 or not all(
        isinstance(v, numbers.Real) and not isinstance(v, bool)
        and float(v).is_integer() and v > 0
        for v in values
    ):
        raise InvalidParameter("FreeRay", free_ray, FREE_RAY_EXPECTED)
    row1, row2, col1, col2 = (int(v) for v in values)
    if row1 >= row2 or col1 >= col2:
        raise InvalidParameter("FreeRay", free_ray, FREE_RAY_EXPECTED)
    return row1, row2, col1, col2


class SinogramBuilder:
    """
    Builds a CtProject from raw projections.

    All options are validated on construction, before any image is read.
    """

    def __init__(
        self,
        free_ray: Sequence[int] = DEFAULT_PROJECT.free_ray,
        cor_fix: int = DEFAULT_PROJECT.cor_fix,
        binning: int = DEFAULT_PROJECT.binning,
        max_workers: int = DEFAULT_PROJECT.max_workers
    ):
        """
        Initialize the builder.

        Args:
            free_ray: Unattenuated calibration area [row1 row2 col1 col2],
                1-based and inclusive
            cor_fix: Center of rotation shift in pixels; positive shifts
                the projections right, with circular boundary conditions
            binning: Binning factor, one of 1, 2, 4, 8, 16, 32
            max_workers: Threads processing projections concurrently
        """
        self.free_ray = validate_free_ray(free_ray)
        self.cor_fix = validate_shift(cor_fix)
        self.binning = validate_binning_factor(binning)

        row1, row2, col1, col2 = self.free_ray
        window_shape = (row2 - row1 + 1, col2 - col1 + 1)
        if window_shape[0] % self.binning or window_shape[1] % self.binning:
            raise NonDivisibleDimensions(
                window_shape, self.binning, what="free-ray window"
            )

        if isinstance(max_workers, bool) or int(max_workers) != max_workers \
                or max_workers < 1:
            raise InvalidParameter("max_workers", max_workers, "a positive integer")
        self.max_workers = int(max_workers)

    def build(
        self,
        parameters: ScanParameters,
        mode: ReconstructionMode | str,
        source: ProjectionSource,
        progress_callback: Optional[Callable[[float], None]] = None
    ) -> CtProject:
        """
        Create a CT project.

        Args:
            parameters: Scan parameters read from the parameter file
            mode: '2D' (center-row fan-beam sinogram) or '3D' (cone-beam)
            source: Projections in acquisition order
            progress_callback: Optional callback(progress: 0.0-1.0)

        Returns:
            CtProject with derived detector fields in its parameters
        """
        total_start = time.perf_counter()
        mode = ReconstructionMode.parse(mode)
        strategy = get_assembly_strategy(parameters.detector_type)
        strategy.check_supported()

        if len(source) != parameters.number_images:
            raise ConsistencyError(
                f"Projection source holds {len(source)} images, "
                f"parameters declare {parameters.number_images}.",
                field="NumberImages",
                value=len(source),
                expected=str(parameters.number_images),
            )

        logging.info(f"Creating CT project '{parameters.project_name}'.")

        # Detector size comes from the first projection
        first_image = source.read(1)
        rows, cols = first_image.shape
        if rows % self.binning or cols % self.binning:
            raise NonDivisibleDimensions((rows, cols), self.binning, what="detector")
        _, row2, _, col2 = self.free_ray
        if row2 > rows or col2 > cols:
            raise InvalidParameter(
                "FreeRay", self.free_ray, f"inside the {rows}x{cols} detector"
            )

        derived = parameters.with_detector(rows, cols, self.free_ray, self.binning, mode)

        logging.info(f"Creating {mode.value} sinogram...")
        buffers = strategy.assemble(
            self, derived, mode, source, progress_callback, first_image=first_image
        )
        project = CtProject(mode=mode, parameters=derived, sinograms=buffers)

        logging.info(
            f"CT project creation completed: sinogram {project.shape} "
            f"in {time.perf_counter() - total_start:.3f}s"
        )
        return project

    def process_projection(
        self,
        image: np.ndarray,
        rows: Optional[slice] = None
    ) -> np.ndarray:
        """
        Calibrate a single raw projection (steps 1-5).

        Args:
            image: Raw projection, full detector size
            rows: Binned detector rows to keep. Only these rows are
                log-transformed and checked for non-finite values.

        Returns:
            Attenuation image of the kept rows
        """
        row1, row2, col1, col2 = self.free_ray
        background = image[row1 - 1:row2, col1 - 1:col2]

        if self.cor_fix != 0:
            image = np.roll(image, self.cor_fix, axis=1)

        if self.binning != 1:
            image = bin_pixels(image, self.binning)
            background = bin_pixels(background, self.binning)

        if rows is not None:
            image = image[rows]

        return calibrate(image, background_intensity(background))

    def process_all(
        self,
        source: ProjectionSource,
        detector_shape: Tuple[int, int],
        insert: Callable[[int, np.ndarray], None],
        progress_callback: Optional[Callable[[float], None]] = None,
        rows: Optional[slice] = None,
        first_image: Optional[np.ndarray] = None
    ) -> None:
        """
        Calibrate every projection and hand it to ``insert``.

        ``insert(index, calibrated)`` receives the 0-based angle index and
        is always called from the calling thread. Any failure aborts the
        whole run. ``rows`` is passed on to ``process_projection``, and
        ``first_image``, when given, stands in for image 1 so it is not
        read twice.
        """
        num_images = len(source)
        detector_shape = tuple(detector_shape)

        def process(i: int):
            if i == 0 and first_image is not None:
                image = first_image
            else:
                image = source.read(i + 1)
            if image.shape != detector_shape:
                raise InconsistentImageShape(i + 1, image.shape, detector_shape)
            logging.debug(f"Processing image {i + 1}/{num_images}")
            return i, self.process_projection(image, rows)

        def accept(i: int, calibrated: np.ndarray, done: int):
            insert(i, calibrated)
            if progress_callback is not None:
                progress_callback(done / num_images)

        if self.max_workers == 1:
            for i in range(num_images):
                accept(*process(i), done=i + 1)
            return

        with concurrent.futures.ThreadPoolExecutor(self.max_workers) as executor:
            future_to_index = {
                executor.submit(process, i): i for i in range(num_images)
            }
            completed = 0
            try:
                for future in concurrent.futures.as_completed(future_to_index):
                    completed += 1
                    accept(*future.result(), done=completed)
            except Exception:
                for pending in future_to_index:
                    pending.cancel()
                raise
