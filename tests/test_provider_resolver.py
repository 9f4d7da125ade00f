"""
Tests for ProviderResolver - provider selection, catalogs, system info and pulls.

Adapters are replaced with mocks; only the resolver's own logic runs.
"""

import pytest
from unittest.mock import AsyncMock, MagicMock

from providers.aliases import DEFAULT_GEMINI_MODELS, DEFAULT_OLLAMA_MODELS
from providers.base import GenerationRequest, GenerationResult, ProviderKind, PullOutcome
from providers.exceptions import GenerationError
from services.provider_resolver import ProviderResolver


def _hosted(kind, models):
    provider = MagicMock()
    provider.id = kind.value
    provider.list_models = AsyncMock(return_value=models)
    provider.generate = AsyncMock(
        return_value=GenerationResult(text=f"from {kind.value}", model_used="m", provider=kind.value)
    )
    provider.aclose = AsyncMock()
    return provider


def _ollama(reachable=True, installed=None):
    provider = _hosted(ProviderKind.OLLAMA, installed or ["codellama:latest"])
    provider.base_url = "http://127.0.0.1:11434"
    provider.probe = MagicMock()
    provider.probe.probe = AsyncMock(return_value=provider.base_url if reachable else None)
    provider.installed_models = AsyncMock(return_value=installed or ["codellama:latest"])
    provider.installed_models_with_source = AsyncMock(return_value=(installed or ["codellama:latest"], "api"))
    provider.pull_model = AsyncMock(return_value=PullOutcome(True, "Successfully pulled model 'phi' via API.", "api"))
    return provider


@pytest.fixture
def make_resolver(settings):
    def _make(settings_override=None, ollama=None):
        providers = {
            ProviderKind.OPENAI: _hosted(ProviderKind.OPENAI, ["gpt-4o", "gpt-4o-mini"]),
            ProviderKind.GEMINI: _hosted(ProviderKind.GEMINI, DEFAULT_GEMINI_MODELS),
            ProviderKind.OLLAMA: ollama or _ollama(),
        }
        return ProviderResolver(settings_override or settings, providers=providers)

    return _make


class TestProviderSelection:
    """Default provider and model resolution"""

    def test_default_is_openai(self, make_resolver):
        resolver = make_resolver()
        assert resolver.resolve_kind() is ProviderKind.OPENAI
        assert resolver.resolve_kind("") is ProviderKind.OPENAI
        assert resolver.default_model() == "gpt-4o-mini"

    def test_use_ollama_switches_default(self, make_resolver, settings_factory):
        resolver = make_resolver(settings_factory({"USE_OLLAMA": "1"}))
        assert resolver.resolve_kind() is ProviderKind.OLLAMA
        assert resolver.default_model() == "codellama"

    def test_explicit_provider_wins(self, make_resolver, settings_factory):
        resolver = make_resolver(settings_factory({"USE_OLLAMA": "1"}))
        assert resolver.resolve_kind("gemini") is ProviderKind.GEMINI
        assert resolver.default_model("gemini") == "gemini-pro"

    def test_unknown_provider(self, make_resolver):
        with pytest.raises(ValueError):
            make_resolver().resolve_kind("claude")

    def test_real_adapters_built_from_settings(self, settings):
        resolver = ProviderResolver(settings)
        assert resolver.ollama.base_url == "http://localhost:11434"
        assert resolver.ollama.cli.list_timeout == 15.0
        assert resolver.provider("openai").id == "openai"


class TestGenerate:
    """Dispatch to the selected adapter"""

    @pytest.mark.asyncio
    async def test_dispatches_to_default(self, make_resolver):
        resolver = make_resolver()
        result = await resolver.generate(request=GenerationRequest(prompt="hi"))

        assert result.text == "from openai"
        resolver.providers[ProviderKind.OPENAI].generate.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_keyword_request(self, make_resolver):
        resolver = make_resolver()
        await resolver.generate("ollama", prompt="hi", model="phi")

        request = resolver.providers[ProviderKind.OLLAMA].generate.call_args.args[0]
        assert request.prompt == "hi"
        assert request.model == "phi"

    @pytest.mark.asyncio
    async def test_errors_propagate(self, make_resolver):
        resolver = make_resolver()
        resolver.providers[ProviderKind.GEMINI].generate = AsyncMock(side_effect=GenerationError("bad", "gemini"))

        with pytest.raises(GenerationError):
            await resolver.generate("gemini", GenerationRequest(prompt="hi"))


class TestCatalogs:
    """Model listing across providers"""

    @pytest.mark.asyncio
    async def test_list_models(self, make_resolver):
        catalog = await make_resolver().list_models()

        assert catalog["openai"] == ["gpt-4o", "gpt-4o-mini"]
        assert catalog["gemini"] == DEFAULT_GEMINI_MODELS
        assert catalog["ollama"] == ["codellama:latest"]
        assert catalog["default_model"] == "gpt-4o-mini"
        assert catalog["use_ollama"] is False

    @pytest.mark.asyncio
    async def test_unreachable_ollama_uses_defaults(self, make_resolver):
        ollama = _ollama(reachable=False)
        catalog = await make_resolver(ollama=ollama).list_models()

        assert catalog["ollama"] == DEFAULT_OLLAMA_MODELS
        ollama.list_models.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_installed_ollama_models(self, make_resolver):
        assert await make_resolver().list_installed_ollama_models() == {
            "models": ["codellama:latest"],
            "source": "api",
        }

    @pytest.mark.asyncio
    async def test_installed_ollama_models_none(self, make_resolver):
        ollama = _ollama()
        ollama.installed_models_with_source = AsyncMock(return_value=([], None))

        result = await make_resolver(ollama=ollama).list_installed_ollama_models()

        assert result == {"models": [], "source": "none"}


class TestSystemInfo:

    @pytest.mark.asyncio
    async def test_reachable(self, make_resolver):
        info = await make_resolver().get_system_info()

        assert info["openai_api_key"] is True
        assert info["google_api_key"] is True
        assert info["ollama_running"] is True
        assert info["ollama_url"] == "http://127.0.0.1:11434"
        assert info["available_ollama_models"] == ["codellama:latest"]
        assert info["default_provider"] == "openai"
        assert info["temperature"] == 0.7

    @pytest.mark.asyncio
    async def test_unreachable(self, make_resolver, bare_settings):
        ollama = _ollama(reachable=False)
        info = await make_resolver(bare_settings, ollama=ollama).get_system_info()

        assert info["openai_api_key"] is False
        assert info["ollama_running"] is False
        assert info["available_ollama_models"] == []
        ollama.installed_models.assert_not_awaited()


class TestPullAndClose:

    @pytest.mark.asyncio
    async def test_pull_probes_then_pulls(self, make_resolver):
        ollama = _ollama()
        outcome = await make_resolver(ollama=ollama).pull_model("phi")

        assert outcome.success is True
        ollama.probe.probe.assert_awaited_once()
        ollama.pull_model.assert_awaited_once_with("phi")

    @pytest.mark.asyncio
    async def test_pull_attempted_when_unreachable(self, make_resolver):
        ollama = _ollama(reachable=False)
        await make_resolver(ollama=ollama).pull_model("phi")

        ollama.pull_model.assert_awaited_once_with("phi")

    @pytest.mark.asyncio
    async def test_aclose_closes_every_adapter(self, make_resolver):
        resolver = make_resolver()
        await resolver.aclose()

        for provider in resolver.providers.values():
            provider.aclose.assert_awaited_once()
