"""Exception taxonomy for rejected ledger operations.

Any of these raised inside a transaction rolls back every state change made
by that transaction before it propagates to the caller.
"""

from __future__ import annotations


class SingularityError(Exception):
    """Base class for all rejected operations."""


class AuthorizationError(SingularityError):
    """The sender lacks the role or ownership the operation requires."""


class StateError(SingularityError):
    """The operation is not valid for the current state."""


class ValidationError(SingularityError, ValueError):
    """Malformed input such as an unknown pool or a zero amount."""


__all__ = ["SingularityError", "AuthorizationError", "StateError", "ValidationError"]
