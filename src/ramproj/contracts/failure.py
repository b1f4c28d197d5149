"""Failure type for contract violations.

Contracts fail fast, loud, and once. All violations raise the same
exception type, allowing callers to handle engine bugs uniformly.
"""


class ContractViolation(RuntimeError):
    """Raised when a projection stage contract is violated.

    This indicates a bug in engine logic or a malformed input table, not a
    bad keyword argument. It means a stage did not receive or produce the
    invariants it relies on.

    Key distinction:
    - ProjectionInputError: bad call arguments (ValueError subclass)
    - ValidationError: bad configuration (raised by Pydantic)
    - ContractViolation: broken stage invariant
    """
    pass
