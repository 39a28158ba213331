"""
srs_engine.errors
-----------------

Exceptions raised while grading cards or advancing a study session.

All of them subclass ValueError: each one means the caller handed the engine
something it must not act on.
"""


class SchedulingError(ValueError):
    """
    Base class for every error raised by srs_engine.
    """


class InvalidState(SchedulingError):
    """
    Raised when a card's state and learning step already contradict each other.

    This is a programming fault upstream of the engine. The card is rejected
    as-is and never repaired.
    """


class UnknownRating(SchedulingError):
    """
    Raised when a rating outside of the closed grading set {1, 4, 5} is supplied.
    """


class SessionPositionError(SchedulingError):
    """
    Raised when a grade is reported for a position other than the session's read position.
    """


__all__ = ["SchedulingError", "InvalidState", "UnknownRating", "SessionPositionError"]
