"""Helpers for image payloads sent alongside prompts."""

import re
from typing import Tuple

DEFAULT_IMAGE_MIME = "image/jpeg"

_DATA_URL = re.compile(r"^data:(?P<mime>[\w.+-]+/[\w.+-]+)?(;[^,]*)?,(?P<data>.*)$", re.DOTALL)


def split_data_url(image_data: str) -> Tuple[str, str]:
    """
    Split `data:image/png;base64,AAAA` into ("image/png", "AAAA").

    Bare base64 strings are returned unchanged with the assumed JPEG type.
    """
    match = _DATA_URL.match(image_data.strip())
    if not match:
        return DEFAULT_IMAGE_MIME, image_data.strip()
    return match.group("mime") or DEFAULT_IMAGE_MIME, match.group("data")


def as_data_url(image_data: str) -> str:
    """Return the image as a URL, wrapping bare base64 as a JPEG data URL."""
    if image_data.strip().startswith(("data:", "http://", "https://")):
        return image_data.strip()
    return f"data:{DEFAULT_IMAGE_MIME};base64,{image_data.strip()}"
