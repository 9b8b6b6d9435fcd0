"""Remote generation layer.

The training script, simulated logs and best parameters all come from an
LLM. Everything in this package sits behind the GenerationCollaborator
protocol so the rest of the app can run against a stub.
"""

from .collaborator import (
    ERROR_MARKER,
    GenerationCollaborator,
    OpenAICollaborator,
    classify_exception,
    error_result,
    is_error_result,
    normalize_reply,
    parse_reply_text,
)

__all__ = [
    "ERROR_MARKER",
    "GenerationCollaborator",
    "OpenAICollaborator",
    "classify_exception",
    "error_result",
    "is_error_result",
    "normalize_reply",
    "parse_reply_text",
]
