from __future__ import annotations

from enum import Enum


class HyperTuneError(Exception):
    """Base class for anticipated, user-recoverable failures."""


class ValidationError(HyperTuneError, ValueError):
    """Bad user input: empty code-owner name, missing or unknown target column, ..."""


class IngestError(HyperTuneError):
    """Raised when an uploaded file cannot be turned into a DatasetPreview."""


class FormatError(IngestError):
    pass


class SizeError(IngestError):
    pass


class MalformedError(IngestError):
    pass


class ErrorCategory(str, Enum):
    RATE_LIMIT = "rate_limit"
    AUTH = "auth"
    UNAVAILABLE = "unavailable"
    BLOCKED = "blocked"
    MALFORMED = "malformed"
    GENERIC = "generic"


class RemoteError(HyperTuneError):
    """A generation-service failure, already classified for the user."""

    def __init__(self, message: str, category: ErrorCategory = ErrorCategory.GENERIC):
        super().__init__(message)
        self.category = category


class WorkflowError(RuntimeError):
    """An illegal step transition. Indicates a defect, not a user error."""


class ConfigError(HyperTuneError):
    """Invalid runtime settings, e.g. a non-numeric HYPERTUNE_FREE_TRIAL_LIMIT."""
