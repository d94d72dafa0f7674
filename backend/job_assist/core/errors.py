"""Error taxonomy for the generation pipeline.

Gateways raise these; the dispatcher turns every one of them into an error
envelope. ``user_message`` is always safe to show in the browser.
"""
from __future__ import annotations

from typing import Iterable, List, Optional


class JobAssistError(Exception):
    """Base class for all pipeline errors."""

    user_message = "An unexpected error occurred."

    def __init__(self, message: Optional[str] = None, *, user_message: Optional[str] = None):
        super().__init__(message or user_message or self.user_message)
        if user_message is not None:
            self.user_message = user_message


class ConfigurationError(JobAssistError):
    """Raised at startup when the model service cannot be configured."""

    user_message = "The service is not configured correctly."


class ValidationError(JobAssistError):
    """Caller input failed one or more schema constraints."""

    def __init__(self, errors: Iterable[str]):
        self.errors: List[str] = [e for e in errors if e] or ["Invalid input."]
        super().__init__(" ".join(self.errors), user_message=" ".join(self.errors))


class ModelInvocationError(JobAssistError):
    """Network, timeout or provider error while calling the model."""

    user_message = "The AI model is unavailable right now. Please try again in a moment."


class OutputShapeError(JobAssistError):
    """The model answered but its output does not match the expected schema."""

    user_message = "The AI model returned an unexpected response. Please try again."

    def __init__(self, message: str, errors: Optional[Iterable[str]] = None):
        self.errors: List[str] = list(errors or [])
        super().__init__(message)


class UnsupportedContentTypeError(JobAssistError):
    """Revision was requested for a content type that cannot be revised."""

    user_message = "Revision is not supported for this format."
