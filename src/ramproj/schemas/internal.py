"""ProjectionOptions: Authoritative runtime configuration.

This is the ONLY config schema that engine code sees. It is fully validated,
frozen, and read once at the start of a projection call.
"""

from typing import Literal
from pydantic import ConfigDict, Field
from ramproj.schemas.base import RamprojBaseModel


class InternalProjectionConfig(RamprojBaseModel):
    """Runtime projection defaults."""
    direction: Literal["x", "y", "z"]
    mode: Literal["sum", "mean"]
    range_unit: str


class InternalParallelConfig(RamprojBaseModel):
    """Runtime worker pool configuration."""
    max_workers: int = Field(ge=1, le=256)
    min_variables_parallel: int = Field(ge=1)
    min_cells_parallel: int = Field(ge=0)
    chunk_pixels: int = Field(ge=1)


class InternalReportingConfig(RamprojBaseModel):
    """Runtime reporting settings."""
    verbose: bool
    show_progress: bool


class InternalLoggingConfig(RamprojBaseModel):
    """Runtime logging configuration."""
    level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]


class ProjectionOptions(RamprojBaseModel):
    """Authoritative runtime configuration.

    Engine classes receive ProjectionOptions and access fields directly:

        def __init__(self, options: ProjectionOptions):
            self.max_workers = options.parallel.max_workers

    Rules
    -----
    - NO .get() calls
    - NO fallback defaults
    - NO global state; the value is threaded through the call
    """

    projection: InternalProjectionConfig
    parallel: InternalParallelConfig
    reporting: InternalReportingConfig
    logging: InternalLoggingConfig

    model_config = ConfigDict(
        extra='forbid',
        validate_assignment=True,
        use_enum_values=True,
        str_strip_whitespace=True,
        frozen=True,  # Immutable after construction
    )
