"""
Base Reconstruction Backend

Abstract interface for tomographic reconstruction engines.
"""

from abc import ABC, abstractmethod
from typing import Any, Optional, Sequence, Tuple
import numbers

from core.errors import ValidationError
from core.parameters import ReconstructionMode
from core.project import CtProject, EnergyBin

from .volume import ReconstructedVolume


class ReconstructionBackend(ABC):
    """Abstract base class for reconstruction backends."""

    @property
    @abstractmethod
    def name(self) -> str:
        """Backend name for logging."""
        pass

    @abstractmethod
    def reconstruct(
        self,
        project: CtProject,
        dims: Sequence[int],
        energy_bin: Optional[EnergyBin] = None
    ) -> ReconstructedVolume:
        """
        Filtered backprojection of the project's sinogram.

        Args:
            project: Created CT project
            dims: (x, y) for 2D projects, (x, y, z) for 3D projects
            energy_bin: Sinogram to reconstruct, required for PCD data

        Returns:
            ReconstructedVolume, (y, x) or (z, y, x)
        """
        pass

    @abstractmethod
    def forward_operator(self, project: CtProject, dims: Sequence[int]) -> Any:
        """
        Linear operator mapping a volume of ``dims`` to the sinogram.
        """
        pass

    @abstractmethod
    def system_matrix(self, project: CtProject, dims: Sequence[int]) -> Any:
        """
        Explicit sparse forward projection matrix (2D only).
        """
        pass


def validate_dims(dims: Sequence[int], mode: ReconstructionMode) -> Tuple[int, ...]:
    """
    Check that ``dims`` holds one positive integer per volume axis.

    Raises:
        ValidationError: Wrong count or a non-positive/non-integer value
    """
    count = 2 if mode is ReconstructionMode.TWO_D else 3
    names = ("xDim", "yDim", "zDim")[:count]
    dims = tuple(dims)
    if len(dims) != count:
        raise ValidationError(
            f"{mode.value} reconstruction needs {count} dimensions "
            f"({', '.join(names)}), found {len(dims)}.",
            field="dims",
            value=dims,
            expected=f"{count} positive integers",
        )
    for name, value in zip(names, dims):
        if (
            isinstance(value, bool)
            or not isinstance(value, numbers.Real)
            or not float(value).is_integer()
            or value < 1
        ):
            raise ValidationError(
                f"Parameter '{name}' must be a positive integer.",
                field=name,
                value=value,
                expected="positive integer",
            )
    return tuple(int(v) for v in dims)


def require_mode(project: CtProject, mode: ReconstructionMode) -> None:
    """Raise ValidationError unless the project has the given mode."""
    if project.mode is not mode:
        raise ValidationError(
            f"CT project must be of type '{mode.value}', found '{project.type}'.",
            field="type",
            value=project.type,
            expected=mode.value,
        )
