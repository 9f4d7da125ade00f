"""
Decoder for Ollama tag-listing responses.

Different Ollama versions have answered /api/tags with different shapes.
Each known shape has a matcher; matchers are tried in order and the first
one that recognises the payload wins.
"""

import logging
from typing import Any, Callable, List, Optional, Tuple

logger = logging.getLogger(__name__)

ShapeMatcher = Callable[[Any], Optional[List[Any]]]


def _entry_name(entry: Any) -> Optional[str]:
    """Model name for a catalog entry: a bare string or an object with a name."""
    if isinstance(entry, str):
        return entry
    if isinstance(entry, dict):
        name = entry.get("name") or entry.get("model")
        return str(name) if name else None
    return None


def _models_list(data: Any) -> Optional[List[Any]]:
    if isinstance(data, dict) and isinstance(data.get("models"), list):
        return data["models"]
    return None


def _models_mapping(data: Any) -> Optional[List[Any]]:
    if isinstance(data, dict) and isinstance(data.get("models"), dict):
        return list(data["models"].keys())
    return None


def _tags_list(data: Any) -> Optional[List[Any]]:
    if isinstance(data, dict) and isinstance(data.get("tags"), list):
        return data["tags"]
    return None


def _root_list(data: Any) -> Optional[List[Any]]:
    if isinstance(data, list):
        return data
    return None


# Priority order matters: a payload with both "models" and "tags" uses "models"
TAG_SHAPES: List[Tuple[str, ShapeMatcher]] = [
    ("models array", _models_list),
    ("models object", _models_mapping),
    ("tags array", _tags_list),
    ("root array", _root_list),
]


def decode_tags(data: Any) -> List[str]:
    """
    Extract model names from an /api/tags payload.

    Returns:
        Model names in response order; empty if no shape matched or the
        matched shape held no usable names.
    """
    for shape, matcher in TAG_SHAPES:
        entries = matcher(data)
        if entries is None:
            continue
        names = [name for name in (_entry_name(e) for e in entries) if name]
        logger.info(f"Found {len(names)} Ollama models in {shape}")
        return names

    logger.info("Could not parse Ollama API response")
    return []


def is_installed(model: str, installed: List[str]) -> bool:
    """
    True if `model` is in the installed list.

    Ollama reports untagged models as `name:latest`, so `codellama` and
    `codellama:latest` are the same model.
    """
    if model in installed:
        return True
    if ":" not in model:
        return f"{model}:latest" in installed
    base, tag = model.rsplit(":", 1)
    return tag == "latest" and base in installed
