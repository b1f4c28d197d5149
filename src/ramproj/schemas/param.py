"""ParamConfig: Expert defaults for the projection engine.

This module defines the complete default configuration. ALL tunable engine
parameters have defaults here. No runtime code defines fallback values.

Runtime code NEVER reads from ParamConfig directly - it only receives
ProjectionOptions.
"""

from typing import Literal
from pydantic import Field, field_validator
from ramproj.schemas.base import RamprojBaseModel


# =============================================================================
# Nested Configuration Models
# =============================================================================

class ProjectionDefaultsConfig(RamprojBaseModel):
    """Defaults applied when a projection call leaves a keyword unset."""
    direction: Literal["x", "y", "z"] = "z"
    mode: Literal["sum", "mean"] = "sum"
    range_unit: str = "standard"

    @field_validator("direction", "mode", mode="before")
    @classmethod
    def normalize_names(cls, v):
        """Normalize keyword values to lowercase; 'standard' means mean."""
        if isinstance(v, str):
            v = v.lower().strip()
            return "mean" if v == "standard" else v
        return v


class ParallelConfig(RamprojBaseModel):
    """Worker pool configuration.

    Variables are projected concurrently when at least
    ``min_variables_parallel`` variables are requested over at least
    ``min_cells_parallel`` selected rows. Otherwise the image of a single
    variable is filled in blocks of about ``chunk_pixels`` pixels on the pool.
    """
    max_workers: int = Field(4, ge=1, le=256)
    min_variables_parallel: int = Field(2, ge=1)
    min_cells_parallel: int = Field(50_000, ge=0)
    chunk_pixels: int = Field(250_000, ge=1)


class ReportingConfig(RamprojBaseModel):
    """Console reporting settings."""
    verbose: bool = False
    show_progress: bool = False


class LoggingConfig(RamprojBaseModel):
    """Logging configuration."""
    level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = "INFO"

    @field_validator("level", mode="before")
    @classmethod
    def uppercase_level(cls, v):
        """Accept 'debug', 'Info', ..."""
        if isinstance(v, str):
            return v.upper().strip()
        return v


# =============================================================================
# Main ParamConfig
# =============================================================================

class ParamConfig(RamprojBaseModel):
    """Complete expert configuration with all defaults.

    This is the single source of truth for engine parameters.

    Usage
    -----
    This config is NOT used directly by runtime code. It serves as the
    base layer in config resolution:

        options = resolve_config(param_cfg, user_cfg)

    Runtime code only sees ProjectionOptions.
    """

    projection: ProjectionDefaultsConfig = Field(default_factory=ProjectionDefaultsConfig)
    parallel: ParallelConfig = Field(default_factory=ParallelConfig)
    reporting: ReportingConfig = Field(default_factory=ReportingConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)
