"""Custom exceptions for dutyjobs."""

from typing import Any


class DutyJobsError(Exception):
    """Base exception for dutyjobs."""

    pass


class ConfigurationError(DutyJobsError):
    """Processor or executor wiring is invalid."""

    pass


class JobValidationError(DutyJobsError):
    """A job submission is missing required metadata."""

    pass


class ExecutorError(DutyJobsError):
    """An executor could not run its job at all."""

    pass


class CollaboratorError(DutyJobsError):
    """An external domain collaborator failed."""

    pass


class PersistenceError(DutyJobsError):
    """Writing to or reading from the record store failed."""

    def __init__(self, message: str, table: str | None = None):
        super().__init__(message)
        self.table = table


class PostgrestError(PersistenceError):
    """The PostgREST endpoint rejected a request."""

    def __init__(
        self,
        message: str,
        table: str | None = None,
        status_code: int | None = None,
        details: Any = None,
    ):
        super().__init__(message, table=table)
        self.status_code = status_code
        self.details = details
