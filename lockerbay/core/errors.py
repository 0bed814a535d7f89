from __future__ import annotations


class LockerBayError(Exception):
    """Base class for every typed failure an operation can report."""


class InvalidInputError(LockerBayError):
    """Raise to map to HTTP 422. Raised before any store access."""


class NotFoundError(LockerBayError):
    """Raise to map to HTTP 404."""


class ForbiddenError(LockerBayError):
    """Raise to map to HTTP 403 (ownership mismatch)."""


class ConflictError(LockerBayError):
    """Raise to map to HTTP 409 (lost a state-transition race or entity already terminal)."""


class ResourceUnavailableError(ConflictError):
    """The locker was not AVAILABLE when the transaction tried to claim it."""


class TransientError(LockerBayError):
    """Store timeout or connection failure. Safe to retry."""


class InternalError(LockerBayError):
    """Unexpected failure."""


class InvalidTransition(ConflictError):
    """A status change that is not in the entity's transition table."""
