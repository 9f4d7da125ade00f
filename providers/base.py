"""
Base provider interface for LLM adapters.

Defines the contract that all provider implementations must follow, plus the
request/result records passed across it.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional


class ProviderKind(str, Enum):
    """Supported LLM backends."""

    OPENAI = "openai"
    GEMINI = "gemini"
    OLLAMA = "ollama"

    @classmethod
    def parse(cls, value) -> "ProviderKind":
        """Accept a ProviderKind or a case-insensitive provider name."""
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            valid = [k.value for k in cls]
            raise ValueError(f"Unknown provider: {value!r}. Valid: {valid}")


@dataclass
class GenerationRequest:
    """A single stateless prompt."""

    prompt: str
    model: Optional[str] = None  # overrides the provider default
    image_data: Optional[str] = None  # base64 or data URL


@dataclass
class GenerationResult:
    """Text returned by a provider for one request."""

    text: str
    model_used: str
    provider: str
    pulled: bool = False
    usage: Dict[str, Any] = field(default_factory=dict)


@dataclass
class PullOutcome:
    """Result of an Ollama model pull."""

    success: bool
    message: str
    source: Optional[str] = None  # "installed", "api" or "cli"


class BaseProvider(ABC):
    """
    Abstract base class for LLM providers.

    All providers must implement list_models(), generate(), and health_check().
    Providers should set id and name class/instance attributes.
    """

    id: str  # Unique identifier (e.g., "ollama", "gemini")
    name: str  # Human readable name (e.g., "Ollama (Local)")

    @abstractmethod
    async def list_models(self) -> List[str]:
        """
        Returns the model catalog for this provider.

        Never raises; falls back to a static default list when discovery fails.

        Returns:
            List[str]: Model names/IDs
        """
        pass

    @abstractmethod
    async def generate(self, request: GenerationRequest) -> GenerationResult:
        """
        Generates text for a single prompt.

        Args:
            request: Prompt, optional model override and optional image

        Returns:
            GenerationResult: Response text and metadata

        Raises:
            ProviderError: Subclass describing why generation failed
        """
        pass

    @abstractmethod
    async def health_check(self) -> bool:
        """
        Quick check to see if provider is usable.

        Returns:
            bool: True if provider is configured/reachable, False otherwise
        """
        pass
