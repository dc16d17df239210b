"""Structural errors raised by the rate oracle.

Oracle-level failures are deliberately absent: they are absorbed by
:class:`~offchain_oracle.src.OracleAdapter.OracleAdapter` and only ever show up
as zero-weight samples.
"""


class OracleError(Exception):
    """Base exception for rate oracle errors."""

    pass


class InvalidRequest(OracleError):
    """Raised when an aggregation request is rejected before any work is done."""

    pass


class DuplicateEntry(OracleError):
    """Raised when adding an entry that is already registered."""

    pass


class UnknownEntry(OracleError):
    """Raised when removing an entry that is not registered."""

    pass


class NotAuthorized(OracleError):
    """Raised when a non-owner attempts a registry mutation.

    :ivar caller: Address that attempted the call.
    """

    def __init__(self, caller: str):
        """Initialize the error.

        :param caller: Address that attempted the call.
        """
        self.caller = caller
        super().__init__(f"Caller {caller} is not the owner")


class ArithmeticOverflow(OracleError):
    """Raised when a fixed-point computation exceeds the uint256 range."""

    pass
