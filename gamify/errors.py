"""
gamify.errors — Error Taxonomy
===============================

Every service raises one of these types so the HTTP layer (and any other
caller) can tell "input was invalid" from "referenced entity missing" from
"storage failed".  An empty rule match is *not* an error.

=====================  ======  ===========================================
Exception              HTTP    Raised when
=====================  ======  ===========================================
NotFoundError          404     An event/rule/metric/achievement/user row
                               does not resolve.
ValidationError        400     Payload shape/type mismatch, duplicate
                               metric ids, malformed rule logic.
InvalidArgumentError   400     A referenced id in a create body is unknown.
ConflictError          409     Duplicate create where uniqueness is required.
InternalError          500     Storage or transaction failure.
=====================  ======  ===========================================
"""

from __future__ import annotations

__all__ = [
    "ConflictError",
    "GamifyError",
    "InternalError",
    "InvalidArgumentError",
    "NotFoundError",
    "ValidationError",
]


class GamifyError(Exception):
    """Base class for every error raised by the gamification services."""

    status_code: int = 500

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class NotFoundError(GamifyError):
    status_code = 404


class ValidationError(GamifyError):
    status_code = 400


class InvalidArgumentError(ValidationError):
    """A create body references an id that does not exist."""


class ConflictError(GamifyError):
    status_code = 409


class InternalError(GamifyError):
    status_code = 500
