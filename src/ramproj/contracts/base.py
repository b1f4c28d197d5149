"""Base contract enforcement utility.

The require() function is the single enforcement mechanism for all contracts.
"""

from ramproj.contracts.failure import ContractViolation


def require(condition: bool, message: str) -> None:
    """Enforce a stage contract.

    Called at stage boundaries to verify the preceding stage produced the
    guaranteed invariants. No recovery, no fallback.

    Parameters
    ----------
    condition : bool
        The invariant that must be true. If False, ContractViolation is raised.

    message : str
        Error message explaining the contract violation.

    Raises
    ------
    ContractViolation
        If condition is False.

    Examples
    --------
    >>> require("level" in df.columns, "Cell table contract: missing 'level' column")
    >>> require(grid.nx > 0, "Grid contract: empty pixel axis")
    """
    if not condition:
        raise ContractViolation(message)
