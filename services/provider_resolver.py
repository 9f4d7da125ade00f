"""
ProviderResolver - the service the HTTP API and CLI talk to.

Owns one adapter per provider (and through the Ollama adapter, the
last-known-good Ollama URL), picks the provider and model for each request,
and exposes catalog, system-info and pull operations.
"""

import asyncio
import logging
from typing import Any, Dict, List, Optional

from providers.aliases import default_models
from providers.base import (
    BaseProvider,
    GenerationRequest,
    GenerationResult,
    ProviderKind,
    PullOutcome,
)
from providers.config import Settings, load_settings
from providers.gemini_adapter import GeminiProvider
from providers.ollama_adapter import OllamaProvider
from providers.openai_adapter import OpenAIProvider
from clients.ollama_cli import OllamaCLI

logger = logging.getLogger(__name__)


class ProviderResolver:
    """
    Resolves which provider/model serves a request and delegates to it.

    Each request is independent; the only state shared between requests is
    the Ollama probe's cached base URL.
    """

    def __init__(self, settings: Optional[Settings] = None, providers: Optional[Dict[ProviderKind, BaseProvider]] = None):
        """
        Args:
            settings: Process configuration (default: load_settings())
            providers: Adapter overrides keyed by ProviderKind (used by tests)
        """
        self.settings = settings or load_settings()
        self.providers: Dict[ProviderKind, BaseProvider] = {
            ProviderKind.OPENAI: OpenAIProvider(self.settings.openai),
            ProviderKind.GEMINI: GeminiProvider(self.settings.gemini),
            ProviderKind.OLLAMA: OllamaProvider(
                self.settings.ollama,
                probe_timeout=self.settings.probe_timeout,
                catalog_timeout=self.settings.catalog_timeout,
                cli=OllamaCLI(
                    fallback_executable=self.settings.ollama_cli_path,
                    list_timeout=self.settings.cli_timeout,
                    pull_timeout=self.settings.pull_timeout,
                ),
            ),
        }
        if providers:
            self.providers.update(providers)

    @property
    def ollama(self) -> OllamaProvider:
        return self.providers[ProviderKind.OLLAMA]

    def provider(self, kind) -> BaseProvider:
        return self.providers[ProviderKind.parse(kind)]

    def resolve_kind(self, kind=None) -> ProviderKind:
        """Explicit provider if given, otherwise Ollama when USE_OLLAMA is set, else OpenAI."""
        if kind is None or kind == "":
            return self.settings.default_provider
        return ProviderKind.parse(kind)

    def default_model(self, kind=None) -> str:
        return self.settings.for_kind(self.resolve_kind(kind)).default_model

    async def aclose(self):
        for provider in self.providers.values():
            close = getattr(provider, "aclose", None)
            if close is not None:
                await close()

    async def get_system_info(self) -> Dict[str, Any]:
        """
        Get provider availability and defaults.

        Returns:
            dict: key presence flags, Ollama reachability, URL and installed
            models, default provider/model and temperature
        """
        ollama_url = await self.ollama.probe.probe()
        ollama_models = await self.ollama.installed_models() if ollama_url else []

        return {
            "openai_api_key": self.settings.openai.api_key_present,
            "google_api_key": self.settings.gemini.api_key_present,
            "ollama_running": ollama_url is not None,
            "ollama_url": self.ollama.base_url,
            "available_ollama_models": ollama_models,
            "use_ollama": self.settings.use_ollama,
            "default_provider": self.settings.default_provider.value,
            "default_model": self.default_model(),
            "temperature": self.settings.openai.temperature,
        }

    async def list_provider_models(self, kind) -> List[str]:
        """
        Catalog for one provider. Never raises.

        Ollama falls back to the static list without touching the API or CLI
        when no server answers the probe.
        """
        kind = ProviderKind.parse(kind)
        if kind is ProviderKind.OLLAMA and await self.ollama.probe.probe() is None:
            logger.info("Ollama not reachable, using default Ollama models list")
            return default_models(ProviderKind.OLLAMA)
        return await self.provider(kind).list_models()

    async def list_models(self) -> Dict[str, Any]:
        """
        Catalogs for every provider plus the default selection.

        Returns:
            dict: {"openai", "gemini", "ollama", "default_model", "use_ollama"}
        """
        openai_models, gemini_models, ollama_models = await asyncio.gather(
            self.list_provider_models(ProviderKind.OPENAI),
            self.list_provider_models(ProviderKind.GEMINI),
            self.list_provider_models(ProviderKind.OLLAMA),
        )
        logger.info(
            f"Returning {len(openai_models)} OpenAI models, {len(gemini_models)} Gemini models, "
            f"and {len(ollama_models)} Ollama models"
        )
        return {
            "openai": openai_models,
            "gemini": gemini_models,
            "ollama": ollama_models,
            "default_model": self.default_model(),
            "use_ollama": self.settings.use_ollama,
        }

    async def list_installed_ollama_models(self) -> Dict[str, Any]:
        """Live Ollama models with their source ("api", "cli" or "none")."""
        await self.ollama.probe.probe()
        models, source = await self.ollama.installed_models_with_source()
        return {"models": models, "source": source or "none"}

    async def generate(self, provider=None, request: Optional[GenerationRequest] = None, **kwargs) -> GenerationResult:
        """
        Generate text with the resolved provider.

        Args:
            provider: ProviderKind or name; None selects the configured default
            request: GenerationRequest; alternatively pass prompt/model/image_data
                as keyword arguments

        Raises:
            ProviderError: See the individual adapters
        """
        kind = self.resolve_kind(provider)
        if request is None:
            request = GenerationRequest(**kwargs)
        logger.info(f"Dispatching request to {kind.value} (model={request.model or self.default_model(kind)})")
        return await self.provider(kind).generate(request)

    async def pull_model(self, name: str) -> PullOutcome:
        """
        Pull an Ollama model unless it is already installed.

        The probe runs first so the pull targets a reachable URL; the CLI
        fallback is still attempted when nothing answers.
        """
        if await self.ollama.probe.probe() is None:
            logger.warning(f"Ollama not reachable, pull of '{name}' will rely on the CLI")
        return await self.ollama.pull_model(name)
