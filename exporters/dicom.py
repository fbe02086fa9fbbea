"""
DICOM Exporter

Exports reconstructed CT volumes as DICOM series so that they can be
inspected in standard imaging software.
"""

from pathlib import Path
from datetime import datetime
from typing import TYPE_CHECKING, Callable, List, Optional, Tuple
import logging
import numpy as np

try:
    import pydicom
    from pydicom.dataset import FileDataset, FileMetaDataset
    from pydicom.uid import (
        generate_uid,
        ExplicitVRLittleEndian,
        CTImageStorage,
    )
    HAS_PYDICOM = True
except ImportError:
    HAS_PYDICOM = False

from core.errors import IOFailure

if TYPE_CHECKING:
    from reconstruction.volume import ReconstructedVolume


# Largest value of an unsigned 16-bit stored pixel
MAX_STORED_VALUE = 65535


def linear_rescale(data: np.ndarray) -> Tuple[float, float]:
    """
    Rescale slope and intercept mapping ``data`` onto [0, 65535].

    DICOM stores: Stored Value = (Value - Intercept) / Slope
    """
    low = float(np.min(data))
    high = float(np.max(data))
    if high <= low:
        return 1.0, low
    return (high - low) / MAX_STORED_VALUE, low


class DICOMExporter:
    """
    Exports reconstructed volumes as DICOM series.

    Creates one file per axial slice. Attenuation values are stored as
    uint16 with a linear rescale shared by the whole series.
    """

    def __init__(
        self,
        patient_name: str = "Anonymous^Sample",
        patient_id: str = "CTPROJECT001",
        study_description: str = "CT Reconstruction",
        series_description: str = "Reconstructed CT Series",
        manufacturer: str = "CT Project Tools"
    ):
        """
        Initialize DICOM exporter with metadata.

        Args:
            patient_name: Sample name in DICOM format (Family^Given)
            patient_id: Sample ID
            study_description: Description of the study
            series_description: Description of the series
            manufacturer: Equipment manufacturer
        """
        if not HAS_PYDICOM:
            raise ImportError(
                "pydicom is required for DICOM export. "
                "Install it with: pip install pydicom"
            )

        self.patient_name = patient_name
        self.patient_id = patient_id
        self.study_description = study_description
        self.series_description = series_description
        self.manufacturer = manufacturer
        self.reset_uids()

    def export(
        self,
        volume: "ReconstructedVolume",
        output_dir: str | Path,
        progress_callback: Optional[Callable[[float], None]] = None
    ) -> List[Path]:
        """
        Export a reconstructed volume as DICOM series.

        Args:
            volume: ReconstructedVolume to export (2D images become one slice)
            output_dir: Directory to save DICOM files
            progress_callback: Optional callback(progress: 0.0-1.0)

        Returns:
            List of paths to created DICOM files
        """
        output_dir = Path(output_dir)
        try:
            output_dir.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise IOFailure(
                f"Cannot create output directory {output_dir}: {e}",
                field="output_dir",
                value=str(output_dir),
            ) from e

        stack = np.asarray(volume.slices, dtype=np.float64)
        num_slices, rows, cols = stack.shape
        rescale_slope, rescale_intercept = linear_rescale(stack)
        window_width = max(float(np.ptp(stack)), rescale_slope)
        window_center = rescale_intercept + window_width / 2

        logging.info(
            f"Exporting {num_slices} DICOM slice(s) to {output_dir} "
            f"(slope {rescale_slope:.6g}, intercept {rescale_intercept:.6g})"
        )

        created_files = []
        for i in range(num_slices):
            stored_values = np.rint((stack[i] - rescale_intercept) / rescale_slope)
            stored_values = np.clip(stored_values, 0, MAX_STORED_VALUE).astype(np.uint16)

            ds = self._create_dataset(
                slice_index=i,
                rows=rows,
                cols=cols,
                voxel_size=volume.voxel_size,
                origin=np.asarray(volume.origin, dtype=np.float64),
                window_center=window_center,
                window_width=window_width,
                rescale_slope=rescale_slope,
                rescale_intercept=rescale_intercept
            )
            ds.PixelData = stored_values.tobytes()

            filename = output_dir / f"CT_{i:04d}.dcm"
            try:
                ds.save_as(filename, enforce_file_format=True)
            except OSError as e:
                raise IOFailure(
                    f"Cannot write DICOM file {filename}: {e}",
                    field="output_dir",
                    value=str(filename),
                ) from e
            created_files.append(filename)

            if progress_callback is not None:
                progress_callback((i + 1) / num_slices)

        return created_files

    def _create_dataset(
        self,
        slice_index: int,
        rows: int,
        cols: int,
        voxel_size: float,
        origin: np.ndarray,
        window_center: float,
        window_width: float,
        rescale_slope: float,
        rescale_intercept: float
    ) -> "FileDataset":
        """Create a DICOM dataset for a single slice."""
        file_meta = FileMetaDataset()
        file_meta.MediaStorageSOPClassUID = CTImageStorage
        file_meta.MediaStorageSOPInstanceUID = generate_uid()
        file_meta.TransferSyntaxUID = ExplicitVRLittleEndian
        file_meta.ImplementationClassUID = generate_uid()

        ds = FileDataset(
            filename_or_obj="",
            dataset={},
            file_meta=file_meta,
            preamble=b"\x00" * 128
        )

        # Patient Module
        ds.PatientName = self.patient_name
        ds.PatientID = self.patient_id

        # General Study Module
        ds.StudyInstanceUID = self.study_instance_uid
        ds.StudyDate = self.study_date
        ds.StudyTime = self.study_time
        ds.StudyDescription = self.study_description

        # General Series Module
        ds.SeriesInstanceUID = self.series_instance_uid
        ds.SeriesNumber = 1
        ds.Modality = "CT"
        ds.SeriesDescription = self.series_description

        # Frame of Reference Module
        ds.FrameOfReferenceUID = self.frame_of_reference_uid

        # General Equipment Module
        ds.Manufacturer = self.manufacturer

        # CT Image Module
        ds.ImageType = ["DERIVED", "SECONDARY", "AXIAL"]
        ds.SamplesPerPixel = 1
        ds.PhotometricInterpretation = "MONOCHROME2"
        ds.Rows = rows
        ds.Columns = cols
        ds.BitsAllocated = 16
        ds.BitsStored = 16
        ds.HighBit = 15
        ds.PixelRepresentation = 0  # Unsigned

        spacing = _decimal_string(voxel_size)
        ds.PixelSpacing = [spacing, spacing]
        ds.SliceThickness = spacing

        slice_position_z = origin[2] + slice_index * voxel_size
        ds.ImagePositionPatient = [
            _decimal_string(origin[0]),
            _decimal_string(origin[1]),
            _decimal_string(slice_position_z)
        ]
        ds.ImageOrientationPatient = [1, 0, 0, 0, 1, 0]
        ds.SliceLocation = _decimal_string(slice_position_z)
        ds.InstanceNumber = slice_index + 1

        ds.SOPClassUID = CTImageStorage
        ds.SOPInstanceUID = file_meta.MediaStorageSOPInstanceUID

        # Attenuation values, not Hounsfield Units
        ds.RescaleSlope = _decimal_string(rescale_slope)
        ds.RescaleIntercept = _decimal_string(rescale_intercept)
        ds.RescaleType = "US"

        ds.WindowCenter = _decimal_string(window_center)
        ds.WindowWidth = _decimal_string(window_width)

        return ds

    def reset_uids(self) -> None:
        """Generate new UIDs for a new series."""
        self.study_instance_uid = generate_uid()
        self.series_instance_uid = generate_uid()
        self.frame_of_reference_uid = generate_uid()

        now = datetime.now()
        self.study_date = now.strftime("%Y%m%d")
        self.study_time = now.strftime("%H%M%S.%f")


def _decimal_string(value: float) -> str:
    """Format a float within the 16 characters allowed for DS values."""
    return f"{float(value):.8g}"
