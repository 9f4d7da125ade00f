"""
Core pytest fixtures and configuration for the test suite.

This module provides shared fixtures for provider, resolver and API tests.
Every network and subprocess boundary is replaced with a mock so tests run
without API keys, an Ollama server or the ollama CLI.
"""

import sys
from pathlib import Path

# Add parent directory to path so we can import providers, services and clients
sys.path.insert(0, str(Path(__file__).parent.parent))

import pytest
from unittest.mock import AsyncMock, MagicMock
from typing import Any, Dict

import httpx

from providers.base import ProviderKind
from providers.config import ProviderConfig, Settings, load_settings


# ============================================================================
# HTTP helpers
# ============================================================================


def make_response(status_code: int = 200, payload: Any = None) -> MagicMock:
    """
    Build a MagicMock shaped like an httpx.Response.

    raise_for_status() raises httpx.HTTPStatusError for non-2xx codes so the
    code under test sees the same exception type as with a real response.
    """
    response = MagicMock()
    response.status_code = status_code
    response.json.return_value = payload
    if 200 <= status_code < 300:
        response.raise_for_status.return_value = None
    else:
        response.raise_for_status.side_effect = httpx.HTTPStatusError(
            f"HTTP {status_code}", request=MagicMock(), response=response
        )
    return response


@pytest.fixture
def response_factory():
    """Expose make_response to tests as a fixture."""
    return make_response


# ============================================================================
# Configuration Fixtures
# ============================================================================


@pytest.fixture
def key_dir(tmp_path) -> Path:
    """
    Empty directory used as both key dir and home dir.

    Keeps load_settings() from picking up key files from the developer's
    working directory or home folder.
    """
    keys = tmp_path / "keys"
    keys.mkdir()
    return keys


@pytest.fixture
def settings_factory(key_dir):
    """
    Build Settings from an explicit environment mapping.

    Returns:
        Callable taking an env dict and returning Settings
    """

    def _make(env: Dict[str, str] = None) -> Settings:
        return load_settings(environ=env or {}, key_dir=str(key_dir), home_dir=str(key_dir))

    return _make


@pytest.fixture
def settings(settings_factory) -> Settings:
    """Settings with both API keys present and default Ollama URL."""
    return settings_factory({
        "OPENAI_API_KEY": "sk-test",
        "GOOGLE_API_KEY": "google-test",
    })


@pytest.fixture
def bare_settings(settings_factory) -> Settings:
    """Settings with no API keys at all."""
    return settings_factory({})


@pytest.fixture
def ollama_config() -> ProviderConfig:
    """Ollama ProviderConfig pointing at localhost."""
    return ProviderConfig(
        kind=ProviderKind.OLLAMA,
        base_url="http://localhost:11434",
        default_model="codellama",
        max_tokens=32768,
        temperature=0.7,
    )


# ============================================================================
# Ollama Fixtures
# ============================================================================


@pytest.fixture
def mock_cli() -> AsyncMock:
    """
    Mock OllamaCLI whose list/pull calls succeed with no models.

    Tests override list_models / pull side effects as needed.
    """
    cli = AsyncMock()
    cli.list_models = AsyncMock(return_value=[])
    cli.pull = AsyncMock(return_value="success")
    return cli


@pytest.fixture
def tags_payload() -> Dict[str, Any]:
    """Realistic /api/tags response from a current Ollama server."""
    return {
        "models": [
            {
                "name": "codellama:latest",
                "model": "codellama:latest",
                "size": 3825819519,
                "digest": "8fdf8f752f6e",
            },
            {
                "name": "llama3:8b",
                "model": "llama3:8b",
                "size": 4661224676,
                "digest": "365c0bd3c000",
            },
        ]
    }


@pytest.fixture
def generate_payload() -> Dict[str, Any]:
    """Realistic non-streaming /api/generate response."""
    return {
        "model": "codellama",
        "response": "def add(a, b):\n    return a + b",
        "done": True,
        "prompt_eval_count": 12,
        "eval_count": 20,
    }
