"""Projection pipeline: per-variable processor and multi-variable orchestrator."""

from ramproj.pipeline.processor import ProjectionContext, VariableProcessor, VariableResult
from ramproj.pipeline.orchestrator import ProjectionOrchestrator

__all__ = [
    'ProjectionContext',
    'VariableProcessor',
    'VariableResult',
    'ProjectionOrchestrator',
]
