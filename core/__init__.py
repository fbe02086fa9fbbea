"""
Core Package

Contains the CT project data structures, the projection source
interface and the error taxonomy.
"""

from .base import ProjectionSource, ArrayProjectionSource
from .parameters import DetectorType, ReconstructionMode, ScanParameters
from .project import CtProject, EnergyBin
from .errors import (
    CTProjectError,
    ValidationError,
    ConstraintViolation,
    CalibrationError,
    ConsistencyError,
    IOFailure,
)

__all__ = [
    'ProjectionSource',
    'ArrayProjectionSource',
    'DetectorType',
    'ReconstructionMode',
    'ScanParameters',
    'CtProject',
    'EnergyBin',
    'CTProjectError',
    'ValidationError',
    'ConstraintViolation',
    'CalibrationError',
    'ConsistencyError',
    'IOFailure',
]
