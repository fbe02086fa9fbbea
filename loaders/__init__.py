"""
Loaders Package

Contains readers for scan parameter files and projection images.
"""

from .parameter_loader import (
    read_ct_scan_parameters,
    parse_scan_parameters,
    expand_angles,
    REQUIRED_KEYS,
)
from .projection_loader import TiffProjectionSource

__all__ = [
    'read_ct_scan_parameters',
    'parse_scan_parameters',
    'expand_angles',
    'REQUIRED_KEYS',
    'TiffProjectionSource',
]
