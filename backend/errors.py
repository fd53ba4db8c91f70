"""Errors raised by the ledger, the team snapshot and the user directory.

Caller-fixable errors carry a field-addressed ``errors`` mapping so a form
can attach each message to its input. ServiceError carries none.
"""


class LedgerError(Exception):
    """Base for every error the core hands back to a caller."""

    message = "Validation failed"

    def __init__(self, errors: dict[str, str] | None = None, message: str | None = None):
        self.errors = dict(errors or {})
        if message is not None:
            self.message = message
        super().__init__(self.message if not self.errors else f"{self.message}: {self.errors}")

    def to_dict(self) -> dict:
        body = {"message": self.message}
        if self.errors:
            body["errors"] = self.errors
        return body


class ValidationError(LedgerError):
    """Missing or too-short input."""


class ConflictError(LedgerError):
    """A standup already exists for this user today."""


class NotFoundError(LedgerError):
    """Unknown record or user, or a record the caller does not own."""


class EditWindowError(LedgerError):
    """The standup belongs to a day that has already passed."""


class ServiceError(LedgerError):
    """Unexpected storage failure. Safe for the caller to retry."""

    message = "Server error"
