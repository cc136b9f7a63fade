"""Domain exceptions raised by the ping engine services.

Routers translate these into HTTP responses; workers log them.
"""

from __future__ import annotations


class PruufError(Exception):
    """Base class for engine errors."""


class CompletionValidationError(PruufError, ValueError):
    """Malformed completion request (e.g. in-person without a location)."""


class BreakValidationError(PruufError, ValueError):
    """Break dates are invalid or overlap an existing break."""


class InvalidTransitionError(PruufError, ValueError):
    """A ping status change that the state machine does not allow."""


class NotFoundError(PruufError, LookupError):
    """A referenced connection, break, or user does not exist."""


class GenerationError(PruufError):
    """A daily generation run failed while writing to storage."""
