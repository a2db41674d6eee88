"""
errors.py

Exceptions raised by the tracker.

Caller mistakes (bad window length, non-positive goal, invalid activity input)
raise InvalidArgumentError. Anomalies in stored data are never raised; the
aggregation code absorbs them.
"""


class TrackerError(Exception):
    """Base class for tracker errors."""


class InvalidArgumentError(TrackerError, ValueError):
    """An argument violates the contract of the function it was passed to."""


class MissingFieldError(InvalidArgumentError):
    """A required activity field is absent or blank."""

    def __init__(self, field: str):
        super().__init__(f"Missing required field: {field}")
        self.field = field


class ActivityNotFoundError(TrackerError, LookupError):
    """No activity with this id exists for the current user."""
