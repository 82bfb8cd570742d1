from fastapi import HTTPException


class LedgerError(HTTPException):
    """Base class for ledger errors; carries the HTTP status it maps to."""

    status_code = 500

    def __init__(self, detail: str):
        super().__init__(status_code=self.status_code, detail=detail)


class NotFound(LedgerError):
    """Referenced campaign or slot does not exist."""

    status_code = 404


class InvalidState(LedgerError):
    """Operation not allowed in the current lifecycle state."""

    status_code = 409


class InvalidArgument(LedgerError):
    """Malformed or contradictory patch."""

    status_code = 400


class Conflict(LedgerError):
    """Contention outlasted the retry bound; the caller may retry."""

    status_code = 409
