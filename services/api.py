"""FastAPI service exposing the provider resolver over HTTP."""
import logging
from typing import Any, Dict, Optional

from fastapi import FastAPI, HTTPException, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict, Field

from providers.base import GenerationRequest, GenerationResult, ProviderKind
from providers.exceptions import (
    GenerationError,
    MissingCredentialError,
    ModelPullError,
    ProviderError,
    ProviderUnavailableError,
)
from services.provider_resolver import ProviderResolver

logger = logging.getLogger(__name__)

# Initialize FastAPI app
app = FastAPI(title="Codex Bridge", version="1.0.0")

# Global resolver (initialized on startup unless configure() supplied one)
resolver: Optional[ProviderResolver] = None

ERROR_STATUS = [
    (MissingCredentialError, 400),
    (ProviderUnavailableError, 503),
    (ModelPullError, 404),
    (GenerationError, 400),
]


class ChatRequest(BaseModel):
    """Body for the per-provider generation routes."""

    model_config = ConfigDict(populate_by_name=True, protected_namespaces=())

    message: str = Field(..., min_length=1, description="Prompt text")
    model: Optional[str] = Field(None, description="Model override")
    image_data: Optional[str] = Field(None, alias="imageData", description="Base64 image or data URL")


class PullRequest(BaseModel):
    model_config = ConfigDict(protected_namespaces=())

    model: str = Field(..., min_length=1, description="Ollama model to pull")


def configure(new_resolver: ProviderResolver):
    """Install a resolver (used by the CLI `serve` command and tests)."""
    global resolver
    resolver = new_resolver


def get_resolver() -> ProviderResolver:
    if resolver is None:
        raise HTTPException(status_code=503, detail="Provider resolver not initialized")
    return resolver


@app.on_event("startup")
async def startup_event():
    """Create the resolver from the environment if none was configured."""
    global resolver
    if resolver is None:
        resolver = ProviderResolver()
    logger.info("Codex bridge API started")


@app.on_event("shutdown")
async def shutdown_event():
    """Cleanup on shutdown."""
    if resolver:
        await resolver.aclose()
    logger.info("Codex bridge API stopped")


@app.exception_handler(ProviderError)
async def provider_error_handler(request: Request, exc: ProviderError):
    status = 500
    for error_type, code in ERROR_STATUS:
        if isinstance(exc, error_type):
            status = code
            break
    logger.error(f"{request.url.path} failed ({type(exc).__name__}): {exc.message}")
    return JSONResponse({"error": exc.message}, status_code=status)


def _result_body(result: GenerationResult) -> Dict[str, Any]:
    return {
        "response": result.text,
        "model": result.model_used,
        "pulled": result.pulled,
        "usage": result.usage,
    }


@app.get("/api/system-info")
async def system_info():
    """Provider availability, Ollama reachability and defaults."""
    info = await get_resolver().get_system_info()
    return {
        "openaiApiKey": info["openai_api_key"],
        "googleApiKey": info["google_api_key"],
        "ollamaRunning": info["ollama_running"],
        "ollamaUrl": info["ollama_url"],
        "availableOllamaModels": info["available_ollama_models"],
        "useOllama": info["use_ollama"],
        "defaultProvider": info["default_provider"],
        "defaultModel": info["default_model"],
        "temperature": info["temperature"],
    }


@app.get("/api/models")
async def models():
    """Model catalogs for every provider."""
    catalog = await get_resolver().list_models()
    return {
        "openai": catalog["openai"],
        "gemini": catalog["gemini"],
        "ollama": catalog["ollama"],
        "defaultModel": catalog["default_model"],
        "useOllama": catalog["use_ollama"],
    }


@app.get("/api/ollama/models")
async def ollama_models():
    """Locally installed Ollama models (API first, then CLI)."""
    return await get_resolver().list_installed_ollama_models()


async def _generate(kind: ProviderKind, body: ChatRequest) -> Dict[str, Any]:
    request = GenerationRequest(prompt=body.message, model=body.model, image_data=body.image_data)
    result = await get_resolver().generate(kind, request)
    return _result_body(result)


@app.post("/api/openai")
async def openai_chat(body: ChatRequest):
    """Send a prompt to OpenAI."""
    return await _generate(ProviderKind.OPENAI, body)


@app.post("/api/gemini")
async def gemini_chat(body: ChatRequest):
    """Send a prompt to Google Gemini."""
    return await _generate(ProviderKind.GEMINI, body)


@app.post("/api/ollama")
async def ollama_chat(body: ChatRequest):
    """Send a prompt to Ollama, pulling the model if needed."""
    return await _generate(ProviderKind.OLLAMA, body)


@app.post("/api/ollama/pull")
async def ollama_pull(body: PullRequest):
    """Pull an Ollama model unless it is already installed."""
    outcome = await get_resolver().pull_model(body.model)
    return {"success": outcome.success, "message": outcome.message, "source": outcome.source}
