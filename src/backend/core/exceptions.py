"""
Error taxonomy for the scheduling core.

- NotFoundError: a referenced request, technician or assignment does not exist.
- BusinessRuleViolation: the operation conflicts with a scheduling rule
  (technician unavailable, invalid state transition, no suitable technician).
- ServiceError: infrastructure failure (store access, lock timeout), raised
  after the underlying error has been logged.
"""


class SchedulerError(Exception):
    """Base class for errors surfaced to callers with a readable reason."""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class NotFoundError(SchedulerError):
    """Raised when a referenced entity does not exist."""


class BusinessRuleViolation(SchedulerError):
    """Raised when a scheduling rule forbids the requested operation."""


class ServiceError(SchedulerError):
    """Raised when an infrastructure dependency fails."""
