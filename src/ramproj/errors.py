"""User-facing error taxonomy.

Every problem with the arguments of a projection call is reported with a
subclass of ``ProjectionInputError``. It derives from ``ValueError`` so that
callers which only care about "bad input" can catch the builtin.

Key distinction (same as the contracts package):
- ProjectionInputError: caller passed something unusable
- ContractViolation: a stage broke its own guarantee (bug)
"""

__all__ = [
    "ProjectionInputError",
    "UnknownVariableError",
    "UnknownUnitError",
    "InvalidResolutionError",
    "InvalidRangeError",
    "MaskLengthError",
    "InvalidOptionError",
    "InvalidLevelError",
]


class ProjectionInputError(ValueError):
    """Base class for invalid projection arguments."""


class UnknownVariableError(ProjectionInputError):
    """Variable name is neither a column, a derived quantity nor an alias."""


class UnknownUnitError(ProjectionInputError):
    """Unit symbol is not present in the scale table."""


class InvalidResolutionError(ProjectionInputError):
    """Pixel count or pixel size is not a positive value."""


class InvalidRangeError(ProjectionInputError):
    """Spatial range is inverted, empty or not finite."""


class MaskLengthError(ProjectionInputError):
    """Boolean mask does not have one entry per table row."""


class InvalidOptionError(ProjectionInputError):
    """Keyword has a value outside its closed set (direction, plane, mode...)."""


class InvalidLevelError(ProjectionInputError):
    """Refinement level ceiling is out of bounds."""
