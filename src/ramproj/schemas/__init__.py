"""Pydantic configuration schemas for the projection engine.

Exports
-------
resolve_config : function
    Single entrypoint for configuration resolution
default_options : function
    Runtime configuration from expert defaults
ProjectionOptions : class
    Fully validated, authoritative runtime configuration
ParamConfig : class
    Expert defaults (complete)
UserConfig : class
    User-facing configuration (forgiving, minimal)
"""

from ramproj.schemas.resolve import resolve_config, default_options, deep_merge
from ramproj.schemas.internal import ProjectionOptions
from ramproj.schemas.param import ParamConfig
from ramproj.schemas.user import UserConfig

__all__ = [
    'resolve_config',
    'default_options',
    'deep_merge',
    'ProjectionOptions',
    'ParamConfig',
    'UserConfig',
]
