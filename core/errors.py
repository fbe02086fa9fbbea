"""
Error Taxonomy

Exceptions raised while parsing scan parameters, assembling sinograms
and transforming CT projects. Every error carries enough context
(field name, offending value, expected constraint) to diagnose the
problem without re-running the pipeline.
"""

from typing import Any, Optional


class CTProjectError(Exception):
    """Base class for all CT project errors."""

    def __init__(
        self,
        message: str,
        field: Optional[str] = None,
        value: Any = None,
        expected: Optional[str] = None
    ):
        super().__init__(message)
        self.field = field
        self.value = value
        self.expected = expected


# Validation ---------------------------------------------------------------

class ValidationError(CTProjectError, ValueError):
    """Bad or missing configuration field, or an out-of-range argument."""


class MissingField(ValidationError):
    """A compulsory scan parameter key is absent."""

    def __init__(self, field: str):
        super().__init__(
            f"Compulsory field '{field}' missing in scan parameter file.",
            field=field,
        )


class MalformedValue(ValidationError):
    """A field could not be converted to the expected type."""

    def __init__(self, field: str, value: Any, expected: str = "a number"):
        super().__init__(
            f"Field '{field}' must be {expected}, found: {value!r}.",
            field=field,
            value=value,
            expected=expected,
        )


class InvalidParameter(ValidationError):
    """A parsed value lies outside its permitted range."""

    def __init__(self, field: str, value: Any, expected: str):
        super().__init__(
            f"Parameter '{field}' must be {expected}, found: {value!r}.",
            field=field,
            value=value,
            expected=expected,
        )


class InvalidBinningFactor(ValidationError):
    """Binning factor is not a power of two in [1, 32]."""

    def __init__(self, value: Any):
        super().__init__(
            "Binning factor must be a member of the set "
            f"{{1, 2, 4, 8, 16, 32}}, found: {value!r}.",
            field="binning",
            value=value,
            expected="one of 1, 2, 4, 8, 16, 32",
        )


class InvalidShift(ValidationError):
    """Center of rotation shift is not an integer."""

    def __init__(self, value: Any):
        super().__init__(
            f"Center of rotation shift must be an integer, found: {value!r}.",
            field="cor_fix",
            value=value,
            expected="an integer",
        )


# Constraints --------------------------------------------------------------

class ConstraintViolation(CTProjectError, ValueError):
    """Inputs are individually valid but cannot be combined."""


class NonDivisibleDimensions(ConstraintViolation):
    """Binning factor does not evenly divide an image dimension."""

    def __init__(self, shape: tuple, factor: int, what: str = "image"):
        super().__init__(
            f"Binning factor {factor} does not evenly divide the "
            f"{what} size {tuple(shape)}.",
            field="binning",
            value=factor,
            expected=f"a divisor of {tuple(shape)}",
        )


class UnsupportedDetector(ConstraintViolation):
    """The selected pipeline cannot process this detector type."""

    def __init__(self, detector_type: Any, supported: str = "EID"):
        super().__init__(
            f"Unsupported detector type. Expected '{supported}', "
            f"found: {detector_type}.",
            field="DetectorType",
            value=detector_type,
            expected=supported,
        )


# Calibration --------------------------------------------------------------

class CalibrationError(CTProjectError, ArithmeticError):
    """Degenerate calibration data."""


class NonPositiveBackground(CalibrationError):
    """Free-ray background intensity is zero, negative or not finite."""

    def __init__(self, value: float):
        super().__init__(
            "Background intensity of the free-ray window must be positive "
            f"and finite, found: {value!r}.",
            field="free_ray",
            value=value,
            expected="> 0",
        )


class NonFiniteAttenuation(CalibrationError):
    """Log transform produced Inf or NaN values."""

    def __init__(self, count: int):
        super().__init__(
            f"Log transform produced {count} non-finite attenuation "
            "value(s); the projection contains zero or negative readings.",
            field="image",
            value=count,
            expected="strictly positive pixel readings",
        )


# Consistency --------------------------------------------------------------

class ConsistencyError(CTProjectError, ValueError):
    """Image count or shape disagrees with the declared parameters."""


class InconsistentImageShape(ConsistencyError):
    """A projection differs in shape from the first one."""

    def __init__(self, index: int, shape: tuple, expected: tuple):
        super().__init__(
            f"Projection {index} has shape {tuple(shape)}, "
            f"expected {tuple(expected)}.",
            field="image",
            value=tuple(shape),
            expected=str(tuple(expected)),
        )


class AngleCountMismatch(ConsistencyError):
    """NumberImages disagrees with the generated angle list."""

    def __init__(self, number_images: int, generated: int):
        super().__init__(
            f"NumberImages is {number_images}, but AngleFirst, AngleInterval "
            f"and AngleLast generate {generated} angles.",
            field="NumberImages",
            value=number_images,
            expected=str(generated),
        )


# I/O ----------------------------------------------------------------------

class IOFailure(CTProjectError, OSError):
    """Unreadable configuration or image source."""
