"""
OpenAI API provider adapter.

Requires an OpenAI API key (environment or key file). Model aliases such as
`o4-mini` are normalised before any request is made.
"""

import logging
from typing import Any, Dict, List, Optional

import openai
from openai import AsyncOpenAI

from providers.aliases import default_models, normalize_model_name
from providers.base import BaseProvider, GenerationRequest, GenerationResult, ProviderKind
from providers.config import ProviderConfig
from providers.exceptions import CatalogUnavailableError, GenerationError, MissingCredentialError
from providers.images import as_data_url

logger = logging.getLogger(__name__)

VISION_MODEL_MARKERS = ("gpt-4o", "gpt-4-vision")


def supports_images(model: str) -> bool:
    return any(marker in model for marker in VISION_MODEL_MARKERS)


class OpenAIProvider(BaseProvider):
    """
    Adapter for the OpenAI chat-completions API.

    The SDK client is built lazily, so a missing key fails before any
    network client exists.
    """

    def __init__(self, config: ProviderConfig, client: Optional[AsyncOpenAI] = None):
        self.config = config
        self.id = "openai"
        self.name = "OpenAI"
        self.client = client

    def _ensure_client(self) -> AsyncOpenAI:
        if not self.config.api_key_present:
            raise MissingCredentialError("OpenAI")
        if self.client is None:
            self.client = AsyncOpenAI(api_key=self.config.api_key, base_url=self.config.base_url)
        return self.client

    async def aclose(self):
        if self.client is not None:
            await self.client.close()
            self.client = None

    async def health_check(self) -> bool:
        """
        Quick health check - verifies API key is set.

        Returns:
            bool: True if API key is configured
        """
        return self.config.api_key_present

    async def _fetch_models(self) -> List[str]:
        try:
            page = await self._ensure_client().models.list()
        except openai.OpenAIError as e:
            raise CatalogUnavailableError(f"Error fetching OpenAI models: {e}", self.id)
        return sorted(m.id for m in page.data if "gpt" in m.id)

    async def list_models(self) -> List[str]:
        """
        Returns chat-capable models (ids containing "gpt"), sorted.

        Falls back to the static list without a key, on API errors, or when
        the API lists nothing usable.
        """
        if not self.config.api_key_present:
            logger.info("OpenAI API key not available, using default models")
            return default_models(ProviderKind.OPENAI)

        try:
            models = await self._fetch_models()
        except CatalogUnavailableError as e:
            logger.warning(f"{e}, using default list")
            return default_models(ProviderKind.OPENAI)

        logger.info(f"Found {len(models)} OpenAI chat models")
        return models or default_models(ProviderKind.OPENAI)

    def _build_messages(self, request: GenerationRequest, model: str) -> List[Dict[str, Any]]:
        content: Any = request.prompt
        if request.image_data:
            if supports_images(model):
                content = [
                    {"type": "text", "text": request.prompt},
                    {
                        "type": "image_url",
                        "image_url": {"url": as_data_url(request.image_data), "detail": "high"},
                    },
                ]
            else:
                logger.info(f"Model {model} does not support images. Sending text only.")
        return [{"role": "user", "content": content}]

    async def generate(self, request: GenerationRequest) -> GenerationResult:
        """
        Single chat-completions call; no retries.

        Raises:
            MissingCredentialError: No API key configured
            GenerationError: The API returned an error
        """
        client = self._ensure_client()
        model = normalize_model_name(request.model or self.config.default_model, ProviderKind.OPENAI)

        try:
            response = await client.chat.completions.create(
                model=model,
                messages=self._build_messages(request, model),
                temperature=self.config.temperature,
                max_tokens=self.config.max_tokens,
            )
        except openai.APIStatusError as e:
            logger.error(f"OpenAI API error ({e.status_code}): {e.message}")
            raise GenerationError(e.message, self.id)
        except openai.OpenAIError as e:
            logger.error(f"Error calling OpenAI: {e}")
            raise GenerationError(str(e), self.id)

        if not response.choices:
            raise GenerationError("OpenAI returned no choices", self.id)

        usage = response.usage.model_dump() if response.usage is not None else {}
        text = response.choices[0].message.content or ""
        logger.info(f"OpenAI ({model}) response: {len(text)} chars")
        return GenerationResult(text=text, model_used=model, provider=self.id, usage=usage)
