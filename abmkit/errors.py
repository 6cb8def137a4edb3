"""abmkit-specific exception hierarchy.

All errors raised by the core derive from ``AbmError``. The concrete
classes additionally derive from the closest builtin exception so that
code written against plain Python containers keeps working, e.g.
``NotFound`` is a ``LookupError`` and ``InvalidPosition`` is a ``ValueError``.
"""

import abmkit


class AbmError(Exception):
    """Base class for all abmkit-specific exceptions.

    It automatically prefixes the abmkit version to help with debugging reports.
    """

    def __init__(self, message: str):
        self.abmkit_version = getattr(abmkit, "__version__", "unknown")
        # Store the original message cleanly for programmatic access
        self.original_message = message
        full_message = f"[abmkit {self.abmkit_version}] {message}"
        super().__init__(full_message)


class ConfigurationError(AbmError):
    """Raised when model or space parameters are invalid or missing."""

    def __init__(self, param_name: str | None = None, reason: str | None = None):
        # Allow flexible usage: raise ConfigurationError("Generic message")
        # OR: raise ConfigurationError("dims", "must be positive")
        if param_name and reason:
            message = f"Invalid configuration for '{param_name}': {reason}"
            self.param_name = param_name
        else:
            message = param_name if param_name else "Invalid configuration"
            self.param_name = None

        super().__init__(message)


class NotFound(AbmError, LookupError):  # noqa: N818
    """Raised when an agent identifier is unknown to the storage or the scheduler."""

    def __init__(self, unique_id, where: str = "model"):
        self.unique_id = unique_id
        super().__init__(f"Agent {unique_id!r} not found in {where}.")


# Space Errors
class SpaceError(AbmError):
    """Generic errors related to spaces and movement."""


class InvalidPosition(SpaceError, ValueError):  # noqa: N818
    """Raised when a position is out of bounds or has the wrong dimensionality."""

    def __init__(self, pos, reason: str):
        self.pos = pos
        super().__init__(f"Invalid position {pos!r}: {reason}.")


class CellOccupied(SpaceError):  # noqa: N818
    """Raised in single-occupancy spaces when adding or moving into an occupied cell."""

    def __init__(self, pos, occupant: int):
        self.pos = pos
        self.occupant = occupant
        super().__init__(f"Cell {pos} is already occupied by agent {occupant}.")


class ExhaustedRetries(SpaceError):  # noqa: N818
    """Raised when a randomized placement could not find a position."""

    def __init__(self, attempts: int, what: str = "an empty position"):
        self.attempts = attempts
        super().__init__(f"Could not find {what} after {attempts} attempts.")
