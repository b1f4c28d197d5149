"""UserConfig: Forgiving, minimal user-facing configuration.

This schema accepts user inputs with aliases for common naming patterns
(e.g., MAX_WORKERS -> parallel.max_workers, MODE -> projection.mode).

Users only specify what they want to override from the expert defaults.
"""

from typing import Optional
from pydantic import Field, field_validator
from ramproj.schemas.base import RamprojBaseModel


class UserProjectionConfig(RamprojBaseModel):
    """User-facing projection defaults."""
    direction: Optional[str] = None
    mode: Optional[str] = None
    range_unit: Optional[str] = None


class UserParallelConfig(RamprojBaseModel):
    """User-facing worker pool config."""
    max_workers: Optional[int] = None
    min_variables_parallel: Optional[int] = None
    min_cells_parallel: Optional[int] = None
    chunk_pixels: Optional[int] = None


class UserConfig(RamprojBaseModel):
    """User-facing configuration schema.

    Minimal, forgiving, and uses common aliases.

    Usage
    -----
        user_cfg = UserConfig(MODE="mean", MAX_WORKERS=8, VERBOSE=True)
        options = resolve_config(param_cfg, user_cfg)
    """

    # Projection defaults (flat aliases)
    direction: Optional[str] = Field(None, alias="DIRECTION")
    mode: Optional[str] = Field(None, alias="MODE")
    range_unit: Optional[str] = Field(None, alias="RANGE_UNIT")

    # Worker pool (flat aliases)
    max_workers: Optional[int] = Field(None, alias="MAX_WORKERS")
    min_cells_parallel: Optional[int] = Field(None, alias="MIN_CELLS_PARALLEL")
    chunk_pixels: Optional[int] = Field(None, alias="CHUNK_PIXELS")

    # Reporting
    verbose: Optional[bool] = Field(None, alias="VERBOSE")
    show_progress: Optional[bool] = Field(None, alias="SHOW_PROGRESS")
    log_level: Optional[str] = Field(None, alias="LOG_LEVEL")

    # Nested overrides (advanced users)
    projection: Optional[UserProjectionConfig] = None
    parallel: Optional[UserParallelConfig] = None

    model_config = RamprojBaseModel.model_config.copy()
    # Allow forgiving input dictionaries (ignore unknown keys)
    model_config.update({"populate_by_name": True, "extra": "ignore"})

    @field_validator("direction", "mode", mode="before")
    @classmethod
    def normalize_names(cls, v):
        """Normalize keyword values to lowercase."""
        if isinstance(v, str):
            return v.lower().strip()
        return v

    def to_internal_overrides(self) -> dict:
        """Convert flat UserConfig to the nested ProjectionOptions structure.

        Returns
        -------
        dict
            Nested dictionary matching ProjectionOptions structure
        """
        overrides = {}

        projection = {}
        if self.direction is not None:
            projection["direction"] = self.direction
        if self.mode is not None:
            projection["mode"] = self.mode
        if self.range_unit is not None:
            projection["range_unit"] = self.range_unit
        if self.projection is not None:
            projection.update(self.projection.model_dump(exclude_none=True))
        if projection:
            overrides["projection"] = projection

        parallel = {}
        if self.max_workers is not None:
            parallel["max_workers"] = self.max_workers
        if self.min_cells_parallel is not None:
            parallel["min_cells_parallel"] = self.min_cells_parallel
        if self.chunk_pixels is not None:
            parallel["chunk_pixels"] = self.chunk_pixels
        if self.parallel is not None:
            parallel.update(self.parallel.model_dump(exclude_none=True))
        if parallel:
            overrides["parallel"] = parallel

        reporting = {}
        if self.verbose is not None:
            reporting["verbose"] = self.verbose
        if self.show_progress is not None:
            reporting["show_progress"] = self.show_progress
        if reporting:
            overrides["reporting"] = reporting

        if self.log_level is not None:
            overrides["logging"] = {"level": self.log_level}

        return overrides
