"""
LLM Provider adapters for dynamic model source switching.

Implements the Adapter/Strategy pattern for switching between:
- Local or remote Ollama instances
- Cloud APIs (OpenAI, Gemini)
"""

from providers.base import (
    BaseProvider,
    GenerationRequest,
    GenerationResult,
    ProviderKind,
    PullOutcome,
)
from providers.exceptions import (
    CatalogUnavailableError,
    GenerationError,
    MissingCredentialError,
    ModelPullError,
    ProviderError,
    ProviderUnavailableError,
    QuotaExhaustedError,
)

__all__ = [
    "BaseProvider",
    "GenerationRequest",
    "GenerationResult",
    "ProviderKind",
    "PullOutcome",
    "CatalogUnavailableError",
    "GenerationError",
    "MissingCredentialError",
    "ModelPullError",
    "ProviderError",
    "ProviderUnavailableError",
    "QuotaExhaustedError",
]
