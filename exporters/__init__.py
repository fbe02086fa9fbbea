"""
Exporters Package

Contains writers for CT projects (.mat) and reconstructed volumes (DICOM).
"""

from .dicom import DICOMExporter, HAS_PYDICOM
from .project_io import default_project_filename, load_ct_project, save_ct_project

__all__ = [
    'DICOMExporter',
    'HAS_PYDICOM',
    'default_project_filename',
    'load_ct_project',
    'save_ct_project',
]
