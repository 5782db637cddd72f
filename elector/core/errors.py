"""Error types shared by the storage backends and the facade."""

from __future__ import annotations


class ElectorError(Exception):
    """Base class for all domain errors."""


class InvalidInputError(ElectorError, ValueError):
    """Rejected input: empty required field, malformed recurrence, etc.

    The message is safe to show to the user.
    """


class NotFoundError(ElectorError, LookupError):
    """The entity does not exist or is not owned by the caller.

    Both cases produce the same message, so callers can't learn whether
    another user's record exists.
    """

    def __init__(self, entity: str) -> None:
        super().__init__(f"{entity} not found")
        self.entity = entity


class NotAuthenticatedError(ElectorError, PermissionError):
    """The operation requires a signed-in session."""
