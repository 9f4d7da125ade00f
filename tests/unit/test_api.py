"""
Unit tests for the FastAPI routes with a mocked ProviderResolver.
"""

import pytest
from unittest.mock import AsyncMock, MagicMock

from fastapi.testclient import TestClient

from providers.base import GenerationResult, ProviderKind, PullOutcome
from providers.exceptions import (
    GenerationError,
    MissingCredentialError,
    ModelPullError,
    ProviderUnavailableError,
)
from services import api


@pytest.fixture
def resolver():
    mock = MagicMock()
    mock.generate = AsyncMock(return_value=GenerationResult(
        text="hello", model_used="gpt-4o-mini", provider="openai", usage={"total_tokens": 5}
    ))
    mock.get_system_info = AsyncMock(return_value={
        "openai_api_key": True,
        "google_api_key": False,
        "ollama_running": True,
        "ollama_url": "http://127.0.0.1:11434",
        "available_ollama_models": ["codellama:latest"],
        "use_ollama": False,
        "default_provider": "openai",
        "default_model": "gpt-4o-mini",
        "temperature": 0.7,
    })
    mock.list_models = AsyncMock(return_value={
        "openai": ["gpt-4o"],
        "gemini": [],
        "ollama": ["codellama"],
        "default_model": "gpt-4o-mini",
        "use_ollama": False,
    })
    mock.list_installed_ollama_models = AsyncMock(return_value={"models": ["codellama:latest"], "source": "cli"})
    mock.pull_model = AsyncMock(return_value=PullOutcome(True, "Model 'codellama' is already available.", "installed"))
    mock.aclose = AsyncMock()
    return mock


@pytest.fixture
def client(resolver):
    api.configure(resolver)
    with TestClient(api.app) as test_client:
        yield test_client
    api.configure(None)


@pytest.mark.unit
class TestInfoRoutes:

    def test_system_info(self, client):
        body = client.get("/api/system-info").json()

        assert body["openaiApiKey"] is True
        assert body["googleApiKey"] is False
        assert body["ollamaRunning"] is True
        assert body["ollamaUrl"] == "http://127.0.0.1:11434"
        assert body["availableOllamaModels"] == ["codellama:latest"]
        assert body["defaultModel"] == "gpt-4o-mini"

    def test_models(self, client):
        body = client.get("/api/models").json()

        assert body == {
            "openai": ["gpt-4o"],
            "gemini": [],
            "ollama": ["codellama"],
            "defaultModel": "gpt-4o-mini",
            "useOllama": False,
        }

    def test_installed_ollama_models(self, client):
        assert client.get("/api/ollama/models").json() == {"models": ["codellama:latest"], "source": "cli"}


@pytest.mark.unit
class TestGenerationRoutes:

    @pytest.mark.parametrize("path,kind", [
        ("/api/openai", ProviderKind.OPENAI),
        ("/api/gemini", ProviderKind.GEMINI),
        ("/api/ollama", ProviderKind.OLLAMA),
    ])
    def test_routes_dispatch_to_provider(self, client, resolver, path, kind):
        response = client.post(path, json={"message": "hi", "model": "m", "imageData": "AAAA"})

        assert response.status_code == 200
        assert response.json() == {
            "response": "hello",
            "model": "gpt-4o-mini",
            "pulled": False,
            "usage": {"total_tokens": 5},
        }
        called_kind, request = resolver.generate.call_args.args
        assert called_kind is kind
        assert request.prompt == "hi"
        assert request.model == "m"
        assert request.image_data == "AAAA"

    def test_empty_message_rejected(self, client, resolver):
        response = client.post("/api/openai", json={"message": ""})

        assert response.status_code == 422
        resolver.generate.assert_not_awaited()

    @pytest.mark.parametrize("error,status", [
        (MissingCredentialError("OpenAI"), 400),
        (GenerationError("invalid model", "openai"), 400),
        (ModelPullError("nope", "Model nope not found"), 404),
        (ProviderUnavailableError("Ollama server is not running", "ollama"), 503),
    ])
    def test_error_mapping(self, client, resolver, error, status):
        resolver.generate = AsyncMock(side_effect=error)

        response = client.post("/api/ollama", json={"message": "hi"})

        assert response.status_code == status
        assert response.json() == {"error": error.message}


@pytest.mark.unit
class TestPullRoute:

    def test_pull(self, client, resolver):
        body = client.post("/api/ollama/pull", json={"model": "codellama"}).json()

        assert body == {
            "success": True,
            "message": "Model 'codellama' is already available.",
            "source": "installed",
        }
        resolver.pull_model.assert_awaited_once_with("codellama")

    def test_pull_failure_is_still_200(self, client, resolver):
        resolver.pull_model = AsyncMock(return_value=PullOutcome(False, "Failed to pull model 'x'"))

        response = client.post("/api/ollama/pull", json={"model": "x"})

        assert response.status_code == 200
        assert response.json()["success"] is False
