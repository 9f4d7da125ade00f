"""
Exceptions raised by provider adapters and the provider resolver.
"""

from typing import Optional


class ProviderError(Exception):
    """Base exception for provider failures."""

    def __init__(self, message: str, provider: Optional[str] = None):
        self.provider = provider
        self.message = message
        super().__init__(message)


class MissingCredentialError(ProviderError):
    """Raised when a hosted provider is called without an API key."""

    def __init__(self, provider: str, message: str = None):
        super().__init__(
            message or f"{provider} API key not found. Set it in the environment or a key file.",
            provider,
        )


class ProviderUnavailableError(ProviderError):
    """Raised when the provider could not be reached on any candidate URL."""

    pass


class ModelPullError(ProviderError):
    """Raised when a model could not be pulled via the API or the CLI."""

    def __init__(self, model: str, message: str = None, provider: str = "ollama"):
        self.model = model
        super().__init__(message or f"Failed to pull model '{model}'", provider)


class GenerationError(ProviderError):
    """Raised when the provider returns an error payload or a non-success status."""

    pass


class QuotaExhaustedError(GenerationError):
    """Raised when Gemini quota is exhausted (429 error)."""

    def __init__(self, model: str, message: str = None):
        self.model = model
        super().__init__(
            message or f"Gemini quota exhausted for model {model}. Try again later or switch models.",
            "gemini",
        )


class CatalogUnavailableError(ProviderError):
    """Raised internally when model discovery fails. Always recovered with defaults."""

    pass
