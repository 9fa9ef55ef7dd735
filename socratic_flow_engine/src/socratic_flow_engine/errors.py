"""
Engine Errors

Exception types raised by the dialogue engine. Only eligibility exhaustion
aborts a turn; everything else degrades to defaults or warnings.
"""

from enum import Enum
from typing import Any, Dict, Optional


class ErrorType(Enum):
    """Error categories for consistent handling in the host."""
    VALIDATION_ERROR = "validation_error"
    NOT_FOUND = "not_found"
    CONFLICT = "conflict"
    INTERNAL_ERROR = "internal_error"


class DialogueEngineError(Exception):
    """Base error for the dialogue engine."""

    def __init__(
        self,
        message: str,
        error_type: ErrorType = ErrorType.INTERNAL_ERROR,
        details: Optional[Dict[str, Any]] = None
    ):
        super().__init__(message)
        self.error_type = error_type
        self.details = details or {}


class NoEligiblePatternsError(DialogueEngineError):
    """No catalog pattern passed the eligibility filter for this context."""

    def __init__(self, session_id: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(
            f"No eligible patterns found for session {session_id}",
            ErrorType.CONFLICT,
            details
        )
        self.session_id = session_id


class UnknownPatternError(DialogueEngineError):
    """Pattern identifier is not registered in the catalog."""

    def __init__(self, pattern: str):
        super().__init__(f"Unknown pattern: {pattern}", ErrorType.NOT_FOUND, {"pattern": pattern})
        self.pattern = pattern


class ConfigurationError(DialogueEngineError):
    """Configuration values failed validation."""

    def __init__(self, errors):
        self.errors = list(errors)
        super().__init__(
            "Configuration validation failed:\n" + "\n".join(self.errors),
            ErrorType.VALIDATION_ERROR,
            {"errors": self.errors}
        )
