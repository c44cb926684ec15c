"""Exception types raised by the quest core."""

from __future__ import annotations


class QuestError(Exception):
    """Base error for goal tracking failures surfaced to the caller."""


class SaveFileError(QuestError, ValueError):
    """Save file content could not be parsed; nothing was loaded."""

    def __init__(self, message: str, line_number: int | None = None) -> None:
        self.line_number = line_number
        if line_number is not None:
            message = f"line {line_number}: {message}"
        super().__init__(message)


class UnknownGoalKindError(SaveFileError):
    """Goal line carries a variant tag with no registered decoder."""


class RewardError(QuestError):
    """Reward claim was rejected."""
