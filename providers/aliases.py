"""Model name aliases and static default catalogs."""

from typing import Dict, List

from providers.base import ProviderKind

# Short names accepted on the command line and in requests
OPENAI_MODEL_ALIASES: Dict[str, str] = {
    "o4": "gpt-4o",
    "o4-mini": "gpt-4o-mini",
}

DEFAULT_OPENAI_MODELS: List[str] = [
    "gpt-4o",
    "gpt-4o-mini",
    "gpt-4-turbo",
    "gpt-4",
    "gpt-3.5-turbo",
    "gpt-4-vision",
    "gpt-4-turbo-preview",
    "gpt-4-32k",
    "gpt-3.5-turbo-16k",
]

DEFAULT_GEMINI_MODELS: List[str] = [
    "gemini-pro",
    "gemini-pro-vision",
    "gemini-ultra",
    "gemini-1.5-pro",
    "gemini-1.5-flash",
    "gemini-1.0-pro",
    "gemini-pro-code",
    "gemini-1.5-pro-latest",
    "gemini-1.5-flash-latest",
]

DEFAULT_OLLAMA_MODELS: List[str] = [
    "codellama",
    "llama3",
    "mistral",
    "gemma",
    "phi",
    "mixtral",
    "llama2",
    "llama2-uncensored",
    "llama3-8b",
    "llama3-70b",
    "deepseek-coder",
    "neural-chat",
    "wizard-math",
    "falcon",
    "orca-mini",
    "stable-code",
    "qwen",
    "yi",
]


def normalize_model_name(name: str, provider) -> str:
    """
    Translate informal model names to the provider's canonical name.

    Only OpenAI has aliases; every other name passes through unchanged.
    """
    if not name:
        return name
    if ProviderKind.parse(provider) is ProviderKind.OPENAI:
        return OPENAI_MODEL_ALIASES.get(name.strip(), name.strip())
    return name


def default_models(provider) -> List[str]:
    """Return a copy of the static catalog for a provider."""
    return list({
        ProviderKind.OPENAI: DEFAULT_OPENAI_MODELS,
        ProviderKind.GEMINI: DEFAULT_GEMINI_MODELS,
        ProviderKind.OLLAMA: DEFAULT_OLLAMA_MODELS,
    }[ProviderKind.parse(provider)])
