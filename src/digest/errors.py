"""Digest exception hierarchy.

All digest-specific exceptions inherit from DigestError. The ``retryable``
flag tells the step executor whether re-entering the step can help.
"""


class DigestError(Exception):
    """Base exception for all digest errors."""

    def __init__(self, message: str = "", *, retryable: bool = False) -> None:
        super().__init__(message)
        self.retryable = retryable


class ToolError(DigestError):
    """A tool collaborator failed or returned an unusable payload."""

    def __init__(self, message: str = "", *, retryable: bool = True) -> None:
        super().__init__(message, retryable=retryable)


class ProviderError(DigestError):
    """Error communicating with an LLM provider."""

    def __init__(self, message: str = "", *, retryable: bool = True) -> None:
        super().__init__(message, retryable=retryable)


class EmptyChoicesError(ProviderError):
    """Provider response carried no choice list."""


class EmptyContentError(ProviderError):
    """Top choice of a provider response had no message content."""


class CombinedProviderError(ProviderError):
    """Both the primary and the fallback provider failed."""

    def __init__(self, primary_error: str, fallback_error: str) -> None:
        super().__init__(
            f"Primary API failed: {primary_error}\nFallback API failed: {fallback_error}"
        )
        self.primary_error = primary_error
        self.fallback_error = fallback_error


class ConfigError(DigestError):
    """Invalid or missing configuration."""
