"""Domain errors raised by the ledger services."""


class LedgerError(Exception):
    """Base class for ledger failures reported to the caller."""

    status_code = 400

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class AllocationInputError(LedgerError):
    """The caller supplied input that violates an allocation precondition."""


class NotFoundError(LedgerError):
    """A referenced lead or donation does not exist."""

    status_code = 404


class AllocationConflictError(LedgerError):
    """A concurrent write changed a row between read and compare-and-swap."""

    status_code = 409
