"""
Reconstruction Backends

Provides reconstruction engines for created CT projects.
"""

from core.errors import ValidationError

from .base import ReconstructionBackend, validate_dims
from .volume import ReconstructedVolume
from .astra_backend import AstraBackend, HAS_ASTRA


_BACKENDS = {
    "astra": AstraBackend,
}


def get_backend(name: str = "astra") -> ReconstructionBackend:
    """
    Get a reconstruction backend by name.

    Args:
        name: Backend name ('astra')

    Returns:
        ReconstructionBackend instance

    Raises:
        ValidationError: Unknown backend name
        ImportError: The backend's library is not installed
    """
    try:
        backend_class = _BACKENDS[name.lower()]
    except KeyError:
        raise ValidationError(
            f"Unknown reconstruction backend: {name!r}.",
            field="backend",
            value=name,
            expected=", ".join(_BACKENDS),
        ) from None
    return backend_class()


__all__ = [
    'ReconstructionBackend',
    'ReconstructedVolume',
    'AstraBackend',
    'HAS_ASTRA',
    'get_backend',
    'validate_dims',
]
