"""
Exception hierarchy for the mystery engine.

Only state-invariant violations are raised to callers. Language-model
failures and sparse data are absorbed by the components that meet them,
so the player never sees a technical error.
"""

from __future__ import annotations

from typing import Any


class MysteryError(Exception):
    """Base exception for all mystery engine errors.

    Attributes:
        message: Human-readable error message
        details: Optional dictionary of additional error context
    """

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}


class StateError(MysteryError):
    """A call that would break a state invariant."""
    pass


class PuzzleStateError(StateError):
    """Raised when answering a puzzle that is no longer pending.

    Attributes:
        puzzle_id: ID of the puzzle that was answered
        status: The terminal status the puzzle is already in
    """

    def __init__(
        self,
        message: str,
        puzzle_id: str,
        status: str,
        details: dict[str, Any] | None = None,
    ):
        super().__init__(message, details)
        self.puzzle_id = puzzle_id
        self.status = status


class NoActivePuzzleError(StateError):
    """Raised when an answer arrives but no puzzle is waiting for one."""
    pass


class InvalidAnswerError(MysteryError):
    """Raised when a player answer cannot be an answer to the puzzle at all."""
    pass


__all__ = [
    "MysteryError",
    "StateError",
    "PuzzleStateError",
    "NoActivePuzzleError",
    "InvalidAnswerError",
]
