"""Projection contracts - fail-fast enforcement of stage invariants.

This package enforces semantic guarantees between projection stages.
Contracts fail immediately and loudly when a stage doesn't produce its
promised invariants.

Key principle:
- Pydantic validates config correctness
- ProjectionInputError reports bad call arguments
- Contracts validate pipeline correctness
"""

from ramproj.contracts.failure import ContractViolation
from ramproj.contracts.base import require
from ramproj.contracts.tables import assert_cell_table, assert_particle_table
from ramproj.contracts.grid import assert_pixel_grid
from ramproj.contracts.projection import assert_projected

__all__ = [
    "ContractViolation",
    "require",
    "assert_cell_table",
    "assert_particle_table",
    "assert_pixel_grid",
    "assert_projected",
]
