"""Base Pydantic model with strict defaults for ramproj configs.

All ramproj config schemas inherit from this base to ensure consistent
validation behavior across parameter, user, and runtime configs.
"""

from pydantic import BaseModel, ConfigDict


class RamprojBaseModel(BaseModel):
    """Base model for all ramproj configuration schemas.

    Enforces strict validation:
    - No extra fields allowed
    - Validates assignments after initialization
    - Strips whitespace from strings
    """

    model_config = ConfigDict(
        extra='forbid',           # Reject unknown fields
        validate_assignment=True, # Validate on field mutation
        use_enum_values=True,     # Convert enums to values
        str_strip_whitespace=True,# Strip whitespace from strings
    )
