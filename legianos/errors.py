"""
Exception taxonomy for the goal service.
Ambiguous extraction is not an error; it is reported as needs_more_info.
"""

from typing import Optional


class GoalServiceError(Exception):
    """Base class for goal service failures."""
    pass


class GoalValidationError(GoalServiceError):
    """Raised when required input is empty or malformed, before the pipeline runs."""
    pass


class GoalCreationError(GoalServiceError):
    """Raised when a goal record cannot be assembled."""
    pass


class GoalExportError(GoalServiceError):
    """Raised when a goal collection cannot be rendered."""
    pass


class CollaboratorError(GoalServiceError):
    """
    Raised when the conversation store or the language model is unavailable.
    `hint` is set when the failure looks like a missing or invalid credential.
    """

    def __init__(self, message: str, hint: Optional[str] = None):
        super().__init__(message)
        self.hint = hint
