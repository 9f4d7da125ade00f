"""
Ollama provider adapter for local and remote Ollama instances.

Handles reachability probing, model discovery (HTTP with CLI fallback), and
generation with a single automatic pull-and-retry when the model is missing.
"""

import logging
import re
from typing import List, Optional, Tuple

import httpx
from ollama import AsyncClient, ResponseError

from clients.fallback import try_primary_then_secondary
from clients.ollama_cli import OllamaCLI, OllamaCLIError
from providers.aliases import default_models
from providers.base import (
    BaseProvider,
    GenerationRequest,
    GenerationResult,
    ProviderKind,
    PullOutcome,
)
from providers.config import ProviderConfig
from providers.exceptions import (
    CatalogUnavailableError,
    GenerationError,
    ModelPullError,
    ProviderUnavailableError,
)
from providers.images import split_data_url
from providers.ollama_catalog import decode_tags, is_installed
from providers.ollama_probe import OllamaProbe

logger = logging.getLogger(__name__)

MODEL_MISSING_PATTERN = re.compile(r"model\b.*\bnot found|no models found", re.IGNORECASE)


def is_model_missing_error(message: str) -> bool:
    """True if an Ollama error message says the model is not installed."""
    return bool(message) and bool(MODEL_MISSING_PATTERN.search(message))


class OllamaProvider(BaseProvider):
    """
    Adapter for Ollama LLM instances (local or remote).

    Args:
        config: Ollama ProviderConfig (base URL, default model, token limit)
        probe_timeout: Per-candidate reachability timeout in seconds
        catalog_timeout: Timeout for /api/tags in seconds
        cli: CLI wrapper used when the HTTP API fails
    """

    def __init__(
        self,
        config: ProviderConfig,
        probe_timeout: float = 3.0,
        catalog_timeout: float = 5.0,
        cli: Optional[OllamaCLI] = None,
    ):
        self.config = config
        self.id = "ollama"
        self.name = "Ollama (Local)"
        self.probe = OllamaProbe(config.base_url, timeout=probe_timeout)
        self.catalog_timeout = catalog_timeout
        self.cli = cli or OllamaCLI()
        self.http: Optional[httpx.AsyncClient] = None
        self._client: Optional[AsyncClient] = None
        self._client_host: Optional[str] = None

    @property
    def base_url(self) -> str:
        """Last known good URL (starts as the configured one)."""
        return self.probe.base_url

    async def _ollama_client(self) -> AsyncClient:
        # Rebuilt when the probe has switched to another candidate URL
        if self._client is None or self._client_host != self.base_url:
            await self._close_ollama_client()
            self._client = AsyncClient(host=self.base_url, timeout=None)
            self._client_host = self.base_url
        return self._client

    async def _close_ollama_client(self):
        if self._client is not None:
            await self._client.close()
            self._client = None
            self._client_host = None

    async def _ensure_http(self):
        if not self.http:
            self.http = httpx.AsyncClient()

    async def aclose(self):
        if self.http:
            await self.http.aclose()
            self.http = None
        await self.probe.aclose()
        await self._close_ollama_client()

    async def health_check(self) -> bool:
        """
        Probe the configured URL and its IPv4/hostname twin.

        Returns:
            bool: True if Ollama is reachable, False otherwise
        """
        return await self.probe.probe() is not None

    # ── Catalog ───────────────────────────────────────

    async def _fetch_tags(self) -> List[str]:
        await self._ensure_http()
        url = f"{self.base_url}/api/tags"
        logger.info(f"Fetching available Ollama models from {self.base_url}...")
        try:
            response = await self.http.get(url, timeout=self.catalog_timeout)
            response.raise_for_status()
            data = response.json()
        except (httpx.HTTPError, ValueError) as e:
            raise CatalogUnavailableError(f"Error fetching Ollama models from {url}: {e}", self.id)
        return decode_tags(data)

    async def installed_models_with_source(self) -> Tuple[List[str], Optional[str]]:
        """
        Live list of installed models, without static defaults.

        Returns:
            (models, source) where source is "api", "cli" or None if nothing
            could be listed
        """
        source = "api"

        async def from_cli():
            nonlocal source
            source = "cli"
            return await self.cli.list_models()

        try:
            models = await try_primary_then_secondary(
                self._fetch_tags, from_cli, description="Ollama model listing"
            )
        except OllamaCLIError as e:
            logger.error(f"Error using Ollama CLI: {e}")
            return [], None

        return models, (source if models else None)

    async def installed_models(self) -> List[str]:
        models, _ = await self.installed_models_with_source()
        return models

    async def list_models(self) -> List[str]:
        """
        Returns available models, falling back to the static catalog.

        Returns:
            list[str]: Non-empty list of model names
        """
        models = await self.installed_models()
        if models:
            return models
        logger.info("Using default Ollama models list")
        return default_models(ProviderKind.OLLAMA)

    # ── Pull ──────────────────────────────────────────

    async def pull_model(self, model: str, check_installed: bool = True) -> PullOutcome:
        """
        Install a model via the pull API, falling back to `ollama pull`.

        Args:
            model: Model name to pull
            check_installed: Skip the pull if the model is already listed

        Returns:
            PullOutcome: Never raises; failure is reported in the outcome
        """
        if check_installed:
            logger.info(f"Checking if Ollama model '{model}' needs to be pulled...")
            if is_installed(model, await self.installed_models()):
                logger.info(f"Model '{model}' is already available.")
                return PullOutcome(True, f"Model '{model}' is already available.", "installed")

        async def via_api():
            logger.info(f"Pulling Ollama model '{model}' from {self.base_url}...")
            client = await self._ollama_client()
            await client.pull(model, stream=False)
            return "api"

        async def via_cli():
            await self.cli.pull(model)
            return "cli"

        try:
            source = await try_primary_then_secondary(
                via_api, via_cli, description=f"Pull of model '{model}'"
            )
        except OllamaCLIError as e:
            logger.error(f"Error pulling model '{model}' with CLI: {e}")
            return PullOutcome(
                False, f"Failed to pull model '{model}' using both API and CLI methods. {e}"
            )

        logger.info(f"Successfully pulled model '{model}' via {source}.")
        return PullOutcome(True, f"Successfully pulled model '{model}' via {source.upper()}.", source)

    async def _pull_or_raise(self, model: str):
        outcome = await self.pull_model(model, check_installed=False)
        if not outcome.success:
            raise ModelPullError(
                model,
                f"Model {model} not found and could not be pulled automatically. "
                f"{outcome.message} You can manually pull a model using 'ollama pull {model}'.",
            )

    # ── Generate ──────────────────────────────────────

    async def _generate_once(self, model: str, request: GenerationRequest):
        """One /api/generate call. ResponseError passes through for the retry logic."""
        kwargs = {
            "model": model,
            "prompt": request.prompt,
            "stream": False,
            "options": {
                "temperature": self.config.temperature,
                "num_predict": self.config.max_tokens,
            },
        }
        if request.image_data:
            _, data = split_data_url(request.image_data)
            kwargs["images"] = [data]

        client = await self._ollama_client()
        try:
            return await client.generate(**kwargs)
        except ResponseError:
            raise
        except (httpx.HTTPError, ConnectionError) as e:
            logger.error(f"Error generating with Ollama: {e}")
            raise GenerationError(f"Error generating with Ollama at {self.base_url}: {e}", self.id)

    def _to_result(self, response, model: str, pulled: bool) -> GenerationResult:
        prompt_tokens = int(response.get("prompt_eval_count") or 0)
        completion_tokens = int(response.get("eval_count") or 0)
        return GenerationResult(
            text=response.get("response") or "",
            model_used=model,
            provider=self.id,
            pulled=pulled,
            usage={
                "prompt_tokens": prompt_tokens,
                "completion_tokens": completion_tokens,
                # Ollama doesn't return a total; approximate it
                "total_tokens": prompt_tokens + completion_tokens,
            },
        )

    async def generate(self, request: GenerationRequest) -> GenerationResult:
        """
        Generate text, pulling the model first if it is missing.

        At most one pull happens per request, so at most two generate calls.

        Raises:
            ProviderUnavailableError: No candidate URL answered
            ModelPullError: The model was missing and could not be pulled
            GenerationError: Ollama returned any other error
        """
        model = request.model or self.config.default_model

        if await self.probe.probe() is None:
            raise ProviderUnavailableError(
                "Ollama server is not running. Please start Ollama and try again.", self.id
            )

        pulled = False
        if not is_installed(model, await self.installed_models()):
            logger.info(f"Model {model} not found, attempting to pull it...")
            await self._pull_or_raise(model)
            pulled = True

        try:
            response = await self._generate_once(model, request)
        except ResponseError as e:
            if pulled or not is_model_missing_error(e.error):
                logger.error(f"Ollama API error: {e.error}")
                raise GenerationError(str(e.error), self.id)

            logger.info(f"Model '{model}' not found. Attempting to pull it...")
            await self._pull_or_raise(model)
            pulled = True

            logger.info(f"Successfully pulled model '{model}'. Trying to generate again...")
            try:
                response = await self._generate_once(model, request)
            except ResponseError as retry_error:
                logger.error(f"Ollama API error after pulling model: {retry_error.error}")
                raise GenerationError(str(retry_error.error), self.id)

        result = self._to_result(response, model, pulled)
        logger.info(f"Generated {len(result.text)} characters with {model}")
        return result
