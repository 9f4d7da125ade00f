"""
Google Gemini API provider adapter.

Supports inline image payloads and quota handling. Gemini has no usable
discovery API, so the catalog is static.
"""

import base64
import binascii
import logging
from typing import Any, List

import google.generativeai as genai

from providers.aliases import default_models
from providers.base import BaseProvider, GenerationRequest, GenerationResult, ProviderKind
from providers.config import ProviderConfig
from providers.exceptions import GenerationError, MissingCredentialError, QuotaExhaustedError
from providers.images import split_data_url

logger = logging.getLogger(__name__)


def _is_quota_error(error: Exception) -> bool:
    text = str(error).lower()
    return "429" in text or "quota" in text or "resource_exhausted" in text or "resource exhausted" in text


class GeminiProvider(BaseProvider):
    """
    Adapter for Google Gemini API with quota handling.

    The SDK is configured lazily on the first generate call, so a missing key
    fails before the SDK is touched. 429 quota errors are reported separately.
    """

    def __init__(self, config: ProviderConfig):
        self.config = config
        self._configured = False

        self.id = "gemini"
        self.name = "Google Gemini"

    def _configure(self):
        """Configure the genai library on first use."""
        genai.configure(api_key=self.config.api_key)
        self._configured = True
        logger.info(f"Gemini configured with API key ...{self.config.api_key[-4:]}")

    def is_configured(self) -> bool:
        """Check if API key is configured."""
        return self.config.api_key_present

    async def health_check(self) -> bool:
        """
        Check if Gemini is configured.

        Returns:
            True if API key is set
        """
        return self.is_configured()

    async def list_models(self) -> List[str]:
        """
        Returns available Gemini models.

        Returns:
            The static catalog when a key is configured, otherwise []
        """
        if not self.is_configured():
            logger.info("Google API key not available, no Gemini models")
            return []
        return default_models(ProviderKind.GEMINI)

    def _build_contents(self, request: GenerationRequest) -> List[Any]:
        parts: List[Any] = [request.prompt]
        if request.image_data:
            mime_type, data = split_data_url(request.image_data)
            try:
                blob = base64.b64decode(data, validate=True)
            except (binascii.Error, ValueError) as e:
                raise GenerationError(f"Image data is not valid base64: {e}", self.id)
            parts.append({"mime_type": mime_type, "data": blob})
        return parts

    @staticmethod
    def _response_text(response) -> str:
        try:
            return response.text or ""
        except ValueError:
            # Raised by the SDK when the candidate was blocked or empty
            return ""

    @staticmethod
    def _usage(response) -> dict:
        usage = getattr(response, "usage_metadata", None)
        if not usage:
            return {}
        return {
            "prompt_tokens": int(getattr(usage, "prompt_token_count", 0) or 0),
            "completion_tokens": int(getattr(usage, "candidates_token_count", 0) or 0),
            "total_tokens": int(getattr(usage, "total_token_count", 0) or 0),
        }

    async def generate(self, request: GenerationRequest) -> GenerationResult:
        """
        Generate text using Gemini API.

        Raises:
            MissingCredentialError: If no API key configured
            QuotaExhaustedError: If 429 quota error received
            GenerationError: Any other API error
        """
        if not self.is_configured():
            raise MissingCredentialError("Google")

        if not self._configured:
            self._configure()

        model_name = request.model or self.config.default_model
        contents = self._build_contents(request)

        try:
            model = genai.GenerativeModel(model_name)
            response = await model.generate_content_async(
                contents,
                generation_config=genai.GenerationConfig(
                    temperature=self.config.temperature,
                    max_output_tokens=self.config.max_tokens,
                    top_p=0.95,
                    top_k=64,
                ),
            )
        except Exception as e:
            if _is_quota_error(e):
                logger.warning(f"Gemini quota exhausted: {e}")
                raise QuotaExhaustedError(model_name, str(e))
            logger.error(f"Gemini generation error: {e}")
            raise GenerationError(str(e), self.id)

        text = self._response_text(response)
        logger.info(f"Gemini ({model_name}) response: {len(text)} chars")
        return GenerationResult(
            text=text,
            model_used=model_name,
            provider=self.id,
            usage=self._usage(response),
        )
